"""Test utilities for perch applications.

::

    from perch.testing import TestClient
"""

from perch.testing.client import StreamResult, TestClient

__all__ = ["StreamResult", "TestClient"]
