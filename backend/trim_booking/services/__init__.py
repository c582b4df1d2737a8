"""Service layer: booking rules, lifecycle, payments, expiry, notifications."""
