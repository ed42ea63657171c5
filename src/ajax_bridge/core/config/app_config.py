from __future__ import annotations

import logging
import os
from collections.abc import Mapping
from typing import Any

from pydantic import ConfigDict, Field, ValidationError, field_validator

from ajax_bridge.core.common.exceptions import ConfigurationError
from ajax_bridge.core.interfaces.model_bases import DomainModel

logger = logging.getLogger(__name__)

ENV_PREFIX = "AJAX_BRIDGE_"


def _env_to_bool(name: str, default: bool, env: Mapping[str, str]) -> bool:
    """Return an environment variable parsed as a boolean flag."""
    value = env.get(name)
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


def _env_to_float(name: str, default: float, env: Mapping[str, str]) -> float:
    """Return an environment variable parsed as a float."""
    value = env.get(name)
    if value is None:
        return default
    try:
        return float(value)
    except (TypeError, ValueError):
        logger.warning("Ignoring invalid %s=%r; using %s", name, value, default)
        return default


class BridgeConfig(DomainModel):
    """Client-wide settings for the AJAX bridge.

    ``debug`` replaces the process-wide ajax debug toggle: when set, every
    call emits a structured trace of its progress.
    """

    model_config = ConfigDict(frozen=True)

    debug: bool = False
    use_blob: bool = False
    base_url: str = ""
    timeout: float = 30.0
    enable_abort: bool = True
    default_headers: dict[str, str] = Field(default_factory=dict)

    @field_validator("timeout")
    @classmethod
    def _positive_timeout(cls, value: float) -> float:
        if value <= 0:
            raise ValueError("timeout must be positive")
        return value

    @field_validator("base_url")
    @classmethod
    def _strip_base_url(cls, value: str) -> str:
        return value.strip()

    @classmethod
    def from_env(
        cls, env: Mapping[str, str] | None = None, **overrides: Any
    ) -> BridgeConfig:
        """Build a configuration from ``AJAX_BRIDGE_*`` environment variables."""
        env = os.environ if env is None else env
        values: dict[str, Any] = {
            "debug": _env_to_bool(f"{ENV_PREFIX}DEBUG", False, env),
            "use_blob": _env_to_bool(f"{ENV_PREFIX}USE_BLOB", False, env),
            "base_url": env.get(f"{ENV_PREFIX}BASE_URL", ""),
            "timeout": _env_to_float(f"{ENV_PREFIX}TIMEOUT", 30.0, env),
            "enable_abort": _env_to_bool(f"{ENV_PREFIX}ENABLE_ABORT", True, env),
        }
        values.update(overrides)
        return cls.from_mapping(values)

    @classmethod
    def from_mapping(cls, values: Mapping[str, Any]) -> BridgeConfig:
        """Validate ``values`` into a configuration.

        Raises:
            ConfigurationError: If any setting is invalid.
        """
        try:
            return cls.model_validate(dict(values))
        except ValidationError as exc:
            raise ConfigurationError(
                "Invalid bridge configuration", details={"errors": exc.errors()}
            ) from exc
