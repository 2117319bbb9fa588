"""War API endpoint modules (internal)."""
