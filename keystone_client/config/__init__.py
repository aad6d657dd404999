"""Configuration module for the Keystone client."""
from .settings import KeystoneConfig, load_settings

__all__ = ["KeystoneConfig", "load_settings"]
