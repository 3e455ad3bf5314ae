"""Notifications domain - document event triggers and resend callables"""

__all__ = []
