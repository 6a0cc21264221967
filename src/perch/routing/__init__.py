"""Page routing: registered pages in front of a catch-all, GET and HEAD only."""
