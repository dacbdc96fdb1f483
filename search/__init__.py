"""Search query construction, suggestion ranking, and the search HTTP API."""
