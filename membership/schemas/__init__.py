"""
Public Pydantic schemas shared by repositories, services, and tests.
"""

from .pagination import Page, PageRequest, Sort  # noqa: F401
