"""HTTP API: app factory, dependency container and exception handlers."""
