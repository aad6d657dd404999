"""Keystone identity API client.

To use the client:
    from keystone_client import KeystoneClient, TokenService

Configuration defaults come from the environment (see keystone_client.config).
"""
from .core.keystone import (
    KeystoneClient,
    TokenService,
    ProjectService,
    RoleService,
    MetaService,
    KeystoneError,
)

__all__ = [
    "KeystoneClient",
    "TokenService",
    "ProjectService",
    "RoleService",
    "MetaService",
    "KeystoneError",
]
