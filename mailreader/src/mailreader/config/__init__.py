"""Configuration package for mailreader.

What:
  Provide a cohesive import surface for configuration loading and the pydantic
  schema that describes ``config.yaml``.

How:
  Re-export the loader helpers and schema classes that form the supported API
  surface. Keeping ``__all__`` explicit documents the dependency flow.

Interfaces:
  - get_runtime_config / load_runtime_config / reset_runtime_config: Resolve
    ``config.yaml`` and expose a cached runtime configuration object.
  - RuntimeConfig / ImapSettings / MailSettings: Pydantic models.
  - ConfigLoadError / RuntimeConfigError / ValidationError: error types.
"""

from .loader import (
    ConfigLoadError,
    RuntimeConfigError,
    get_runtime_config,
    load_runtime_config,
    reset_runtime_config,
)
from .schema import ImapSettings, MailSettings, RuntimeConfig, ValidationError

__all__ = [
    "get_runtime_config",
    "load_runtime_config",
    "reset_runtime_config",
    "ConfigLoadError",
    "RuntimeConfigError",
    "RuntimeConfig",
    "ImapSettings",
    "MailSettings",
    "ValidationError",
]
