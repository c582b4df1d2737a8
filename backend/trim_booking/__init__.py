"""Trim: multi-tenant barbershop booking engine."""

__version__ = "1.0.0"
