"""
Stripe webhook intake (views) and per-event handlers.
"""
