"""HTTP API for verification, search and fraud review."""
