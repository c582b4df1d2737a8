"""Core configuration, exceptions, and request-scoped helpers."""
