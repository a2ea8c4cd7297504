"""Delivery interfaces exposed to clients."""
