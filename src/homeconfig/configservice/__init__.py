"""Configuration service: signed SQLite-backed storage API."""
