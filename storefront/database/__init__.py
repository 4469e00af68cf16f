"""
Persistence layer for the storefront.

This package provides:
- SQLAlchemy models (users, products)
- The injectable Database handle
- User and product repositories
"""
