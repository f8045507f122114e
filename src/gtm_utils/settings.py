"""Configuration helpers for the GTM snippet injector.

Container IDs are resolved from two sources, in order of precedence:
- an explicit setting (a value passed by the host, or the
  `GOOGLE_TAG_MANAGER_CONTAINER` environment variable), and
- the network-wide option `google_tag_manager_container`, read from a YAML
  file or, when no file exists, from a JSON payload in
  `GOOGLE_TAG_MANAGER_NETWORK_JSON`.

The network options file can either be a raw mapping or wrap the options in
a top-level `network:` key:

```yaml
network:
  google_tag_manager_container: "GTM-AAAA111,GTM-BBBB222"
  google_tag_manager_in_admin: true
```
"""

from __future__ import annotations

import json
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

DEFAULT_SETTINGS_CONFIG = "config/gtm.yaml"

CONTAINER_ENV_VAR = "GOOGLE_TAG_MANAGER_CONTAINER"
IN_ADMIN_ENV_VAR = "GOOGLE_TAG_MANAGER_IN_ADMIN"
DISABLE_ENV_VAR = "GOOGLE_TAG_MANAGER_DISABLE"
NETWORK_OPTIONS_ENV_VAR = "GOOGLE_TAG_MANAGER_NETWORK_JSON"

CONTAINER_OPTION = "google_tag_manager_container"
IN_ADMIN_OPTION = "google_tag_manager_in_admin"
DISABLE_OPTION = "google_tag_manager_disable"

_TRUTHY_VALUES = {"1", "true", "yes", "on"}


@dataclass(frozen=True)
class InjectorSettings:
    """Resolved injector configuration."""

    container_ids: list[str] = field(default_factory=list)
    admin_injection_enabled: bool = False
    disabled: bool = False


def parse_container_ids(raw: str | None) -> list[str]:
    """Split a comma-separated container setting into container IDs.

    Empty and whitespace-only segments are discarded. Kept segments are
    returned verbatim (no trimming), and duplicates keep their position.
    """
    if not raw:
        return []
    return [segment for segment in str(raw).split(",") if segment.strip()]


def load_network_options(config_path: str | None) -> dict[str, Any]:
    """Load the network-wide options mapping.

    Args:
        config_path: Optional explicit YAML path. Falls back to
            `config/gtm.yaml`, then to `GOOGLE_TAG_MANAGER_NETWORK_JSON`.

    Returns:
        The options mapping, or an empty dict when no source is configured.

    Raises:
        FileNotFoundError: If an explicit `config_path` does not exist.
        ValueError: If the file or env payload is not a mapping.
    """
    options = _load_options_from_file(config_path)
    if options is None:
        options = _load_options_from_env()
    return options or {}


def resolve_container_setting(
    explicit: str | None,
    config_path: str | None,
    *,
    options: dict[str, Any] | None = None,
) -> str:
    """Return the raw comma-separated container setting with source precedence applied.

    Args:
        explicit: Value supplied directly by the host (highest priority).
        config_path: Optional network options YAML path.
        options: Pre-loaded network options; loaded from `config_path` when omitted.

    Returns:
        The raw setting string, or "" when nothing is configured.
    """
    if explicit:
        return str(explicit)

    env_value = os.getenv(CONTAINER_ENV_VAR)
    if env_value:
        return env_value

    if options is None:
        options = load_network_options(config_path)
    return _option_as_string(options.get(CONTAINER_OPTION))


def load_settings(
    container: str | None = None,
    config_path: str | None = None,
    *,
    in_admin: bool | None = None,
    disabled: bool | None = None,
) -> InjectorSettings:
    """Resolve container IDs and flags into `InjectorSettings`.

    Explicit arguments win over environment variables, which win over the
    network options. Missing configuration yields settings with no container
    IDs, which disables injection without raising.
    """
    options = load_network_options(config_path)
    raw_container = resolve_container_setting(container, config_path, options=options)

    if in_admin is None:
        in_admin = _resolve_flag(IN_ADMIN_ENV_VAR, options.get(IN_ADMIN_OPTION))
    if disabled is None:
        disabled = _resolve_flag(DISABLE_ENV_VAR, options.get(DISABLE_OPTION))

    return InjectorSettings(
        container_ids=parse_container_ids(raw_container),
        admin_injection_enabled=bool(in_admin),
        disabled=bool(disabled),
    )


def as_flag(value: Any) -> bool:
    """Interpret config values such as `True`, `1`, "yes" or "on" as a boolean."""
    if isinstance(value, bool):
        return value
    if value is None:
        return False
    if isinstance(value, (int, float)):
        return value != 0
    return str(value).strip().lower() in _TRUTHY_VALUES


def _resolve_flag(env_var: str, option_value: Any) -> bool:
    env_value = os.getenv(env_var)
    if env_value is not None and env_value.strip():
        return as_flag(env_value)
    return as_flag(option_value)


def _option_as_string(value: Any) -> str:
    if value is None:
        return ""
    # YAML lists are accepted as an alternative to a comma-separated string.
    if isinstance(value, list):
        return ",".join(str(item) for item in value if item is not None)
    return str(value)


def _resolve_options_path(config_path: str | None) -> Path | None:
    if config_path:
        path = Path(config_path)
        if not path.exists():
            raise FileNotFoundError(
                f"Network options file not found: {config_path}. "
                f"Omit --config-path to fall back to {DEFAULT_SETTINGS_CONFIG} "
                f"or {NETWORK_OPTIONS_ENV_VAR}.",
            )
        return path

    default_path = Path(DEFAULT_SETTINGS_CONFIG)
    if default_path.exists():
        return default_path

    return None


def _load_options_from_file(config_path: str | None) -> dict[str, Any] | None:
    path_to_load = _resolve_options_path(config_path)
    if not path_to_load:
        return None

    with open(path_to_load, "r", encoding="utf-8") as config_file:
        raw_data = yaml.safe_load(config_file) or {}

    if not isinstance(raw_data, dict):
        raise ValueError("Network options config must be a mapping.")

    # Support both: top-level mapping, or wrapped in `network:`.
    raw_options = raw_data.get("network", raw_data)
    if raw_options is None:
        return {}
    if not isinstance(raw_options, dict):
        raise ValueError("Network options config must be a mapping.")
    return raw_options


def _load_options_from_env() -> dict[str, Any] | None:
    env_payload = os.getenv(NETWORK_OPTIONS_ENV_VAR)
    if not env_payload:
        return None

    try:
        parsed = json.loads(env_payload)
    except json.JSONDecodeError as exc:
        raise ValueError(
            f"Failed to parse {NETWORK_OPTIONS_ENV_VAR} environment variable as JSON.",
        ) from exc

    if not isinstance(parsed, dict):
        raise ValueError(f"{NETWORK_OPTIONS_ENV_VAR} must contain a JSON object mapping.")
    return parsed
