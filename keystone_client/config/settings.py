"""Settings loader with environment variable and Docker secrets integration."""
from __future__ import annotations
import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

logger = logging.getLogger(__name__)

DEFAULT_KEYSTONE_URL = "http://localhost:5000/v3"
DEFAULT_API_VERSION = "v3"
DEFAULT_REQUEST_TIMEOUT = 9.0
SUPPORTED_API_VERSIONS = ("v2", "v3")


def _load_secret_from_file(secret_name: str, env_var: str | None = None) -> str | None:
    """
    Load secret from /run/secrets (Docker secrets pattern).

    Priority:
    1. /run/secrets/{secret_name} (Docker secrets mount)
    2. Environment variable (fallback)

    Args:
        secret_name: Name of the secret file in /run/secrets
        env_var: Optional environment variable name to check as fallback

    Returns:
        Secret value or None if not found
    """
    secret_file = Path("/run/secrets") / secret_name

    if secret_file.exists() and secret_file.is_file():
        try:
            secret_value = secret_file.read_text().strip()
            if secret_value:
                logger.info(f"[settings] Loaded {secret_name} from /run/secrets")
                return secret_value
        except OSError as e:
            logger.warning(f"[settings] Failed to read /run/secrets/{secret_name}: {e}")

    if env_var:
        secret_value = os.getenv(env_var)
        if secret_value:
            logger.info(f"[settings] Loaded {env_var} from environment (fallback)")
            return secret_value

    return None


@dataclass(frozen=True)
class KeystoneConfig:
    """Process-wide Keystone client configuration.

    ``request_timeout`` is the default used by every client instance that has
    no timeout override of its own.
    """
    keystone_url: str = DEFAULT_KEYSTONE_URL
    api_version: str = DEFAULT_API_VERSION
    request_timeout: float = DEFAULT_REQUEST_TIMEOUT

    # Credentials (CLI only)
    username: str = ""
    password: str = ""
    tenant_name: Optional[str] = None


def _parse_timeout(raw: Optional[str]) -> float:
    """Parse KEYSTONE_TIMEOUT (seconds); unset means the built-in default."""
    if raw is None or not raw.strip():
        return DEFAULT_REQUEST_TIMEOUT
    try:
        value = float(raw)
    except ValueError:
        raise RuntimeError(f"KEYSTONE_TIMEOUT must be a number of seconds, got {raw!r}") from None
    if value <= 0:
        raise RuntimeError(f"KEYSTONE_TIMEOUT must be positive, got {raw!r}")
    return value


def load_settings() -> KeystoneConfig:
    """Load Keystone settings from environment and /run/secrets."""
    keystone_url = os.environ.get("KEYSTONE_URL", DEFAULT_KEYSTONE_URL).strip().rstrip("/")

    api_version = os.environ.get("KEYSTONE_API_VERSION", DEFAULT_API_VERSION).strip().lower()
    if api_version not in SUPPORTED_API_VERSIONS:
        raise RuntimeError(
            f"KEYSTONE_API_VERSION must be one of {', '.join(SUPPORTED_API_VERSIONS)}, got {api_version!r}"
        )

    request_timeout = _parse_timeout(os.environ.get("KEYSTONE_TIMEOUT"))

    username = os.environ.get("KEYSTONE_USERNAME", "")
    password = _load_secret_from_file("keystone_password", "KEYSTONE_PASSWORD") or ""
    tenant_name = os.environ.get("KEYSTONE_TENANT_NAME") or None

    logger.debug(f"[settings] url={keystone_url}; api_version={api_version}; timeout={request_timeout}s")

    return KeystoneConfig(
        keystone_url=keystone_url,
        api_version=api_version,
        request_timeout=request_timeout,
        username=username,
        password=password,
        tenant_name=tenant_name,
    )


# Global settings instance (loaded once on first import)
settings: KeystoneConfig = load_settings()
