"""
Storefront: e-commerce REST API.

Accounts with bearer-token authentication, role-based access control and a
product catalog backed by a relational store with a Redis cache.
"""

__version__ = "1.0.0"
