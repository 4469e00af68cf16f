"""
Cache layer for the storefront (Redis, cache-aside).
"""
