"""
contactshare models
"""

from .contact import Contact, is_valid_address, is_valid_name

__all__ = [
    "Contact",
    "is_valid_address",
    "is_valid_name",
]
