"""
Core application utilities.

This package provides:
- Application-level settings (separate from DB settings)
- Logging setup with correlation/identity context
- Password hashing helpers
- Login attempt tracking and lockout
- The repository exception hierarchy
"""
