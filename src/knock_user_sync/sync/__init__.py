"""Pipeline stages: directory fetch, source query, payload and run log."""
