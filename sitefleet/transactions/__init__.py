"""Checkout-based business transactions."""
