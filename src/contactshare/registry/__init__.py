"""
Identity registry interface
"""

from .identity_registry import (
    IdentityRegistry,
    RegistryHandle,
    InMemoryIdentityRegistry,
    InMemoryRegistryHandle,
)

__all__ = [
    "IdentityRegistry",
    "RegistryHandle",
    "InMemoryIdentityRegistry",
    "InMemoryRegistryHandle",
]
