"""Service center dashboard backend."""
