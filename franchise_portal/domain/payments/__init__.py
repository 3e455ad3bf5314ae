"""Payments domain - Stripe Connect accounts, payment methods, subscriptions and refunds"""

__all__ = []
