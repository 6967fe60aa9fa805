"""
Shared helpers (input coercion).
"""
