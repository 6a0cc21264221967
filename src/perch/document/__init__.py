"""Document assembly — shell, hydration data, and the two assemblers."""
