"""
Authentication for the storefront API.

This package provides:
- Password hashing (bcrypt)
- Access token issuing and verification (JWT)
- Authentication and role-based access control dependencies
- The account workflows and their router
"""
