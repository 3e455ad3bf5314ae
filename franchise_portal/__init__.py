"""Franchise portal backend - notifications, templated email, Stripe Connect payments and push"""
