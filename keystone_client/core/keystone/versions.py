"""Keystone protocol versions."""
from __future__ import annotations
from enum import Enum
from typing import Any

from .exceptions import UnknownVersionError


class ApiVersion(str, Enum):
    """Wire protocol spoken by a client instance. Fixed at construction."""

    V2 = "v2"
    V3 = "v3"

    def __str__(self) -> str:
        return self.value

    @classmethod
    def parse(cls, value: Any) -> "ApiVersion":
        """Return the matching version or raise ``UnknownVersionError``."""
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            raise UnknownVersionError(value) from None
