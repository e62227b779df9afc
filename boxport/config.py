"""
boxport/config.py - Environment-based configuration for the catalog client.
"""
from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field, replace
from typing import Dict, Optional

from boxport.logger import ConfigurationError, safe_bool, safe_float, safe_int

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Defaults
# ---------------------------------------------------------------------------
DEFAULT_MAX_RETRIES = 3
DEFAULT_STEP_DELAY = 0.5  # seconds, base of the exponential backoff
DEFAULT_MAX_TIMEOUT = 60.0  # seconds, backoff cap and per-request timeout

# Status codes worth retrying: request timeout, server error, bad gateway,
# service unavailable, gateway timeout.
RETRY_STATUS_CODES = frozenset({408, 500, 502, 503, 504})


@dataclass(frozen=True)
class RetryConfig:
    max_retries: int = DEFAULT_MAX_RETRIES
    step_delay: float = DEFAULT_STEP_DELAY
    # Doubles as the upper bound of the backoff and as the request timeout.
    max_timeout: float = DEFAULT_MAX_TIMEOUT


@dataclass(frozen=True)
class ClientConfig:
    """Settings for one CatalogClient, fixed at construction.

    base_url:  catalog service root, trailing slashes stripped
    token:     bearer token for the Authorization header
    retry:     retry/backoff policy of the mounted transport
    debug:     log every request and response status
    headers:   extra headers sent with every request
    deadline:  optional absolute time.monotonic() value after which no
               further request is issued
    """

    base_url: str
    token: str = ""
    retry: RetryConfig = field(default_factory=RetryConfig)
    debug: bool = False
    headers: Dict[str, str] = field(default_factory=dict)
    deadline: Optional[float] = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "base_url", (self.base_url or "").rstrip("/"))

    def with_deadline(self, deadline: Optional[float]) -> "ClientConfig":
        return replace(self, deadline=deadline)


def retry_config_from_env() -> RetryConfig:
    max_retries = safe_int(
        os.environ.get("BOXPORT_MAX_RETRIES"), DEFAULT_MAX_RETRIES,
        logger=logger, context="BOXPORT_MAX_RETRIES",
    )
    step_delay = safe_float(
        os.environ.get("BOXPORT_RETRY_STEP_DELAY"), DEFAULT_STEP_DELAY,
        logger=logger, context="BOXPORT_RETRY_STEP_DELAY",
    )
    max_timeout = safe_float(
        os.environ.get("BOXPORT_MAX_TIMEOUT"), DEFAULT_MAX_TIMEOUT,
        logger=logger, context="BOXPORT_MAX_TIMEOUT",
    )
    return RetryConfig(
        max_retries=max(0, max_retries),
        step_delay=max(0.0, step_delay),
        max_timeout=max(0.001, max_timeout),
    )


def load_config(base_url: str | None = None, token: str | None = None) -> ClientConfig:
    """Build a ClientConfig: explicit args > environment > ~/.boxport/auth.json."""
    url = (base_url or os.environ.get("BOXPORT_URL") or "").strip()
    if not url:
        raise ConfigurationError("catalog URL not set (use --url or BOXPORT_URL)")

    if not token:
        from boxport.auth_utils import get_auth_token
        token = get_auth_token(url)

    return ClientConfig(
        base_url=url,
        token=token or "",
        retry=retry_config_from_env(),
        debug=safe_bool(os.environ.get("BOXPORT_DEBUG"), False, logger=logger, context="BOXPORT_DEBUG"),
    )


def log_json_from_env() -> bool:
    """BOXPORT_LOG_JSON: write log records as JSON lines instead of text."""
    return safe_bool(os.environ.get("BOXPORT_LOG_JSON"), False, logger=logger, context="BOXPORT_LOG_JSON")
