# Copyright 2025 Softwell S.r.l. - SPDX-License-Identifier: Apache-2.0
"""Startup configuration for the relay.

Settings come from an INI file (default ``relay.ini``, overridable through
``HSR_CONFIG``) with ``HSR_*`` environment variables as fallbacks. Explicit
overrides, typically command-line options, win over both.

Example:
    Configuration file format (relay.ini)::

        [relay]
        server = smtp.example.com:587
        skip_tls = false
        # timeout = 30

        [defaults]
        from = noreply@example.com
        to = ops@example.com, oncall@example.com
        subject = Relay notification
        message =
        # Replaces any sender supplied by callers
        forced_from = relay@example.com

        [server]
        host = 0.0.0.0
        port = 8080
        redact_errors = false
        # metrics_path = /metrics

        [logging]
        level = INFO

    Loading it::

        config = load_settings("/etc/smtp-relay/relay.ini", port=9000)
"""

from __future__ import annotations

import configparser
import os
from pathlib import Path
from typing import Any

import pydantic
from pydantic import BaseModel, ConfigDict, Field, field_validator

from .errors import ConfigurationError
from .logger import get_logger

logger = get_logger("RelayConfig")

DEFAULT_CONFIG_PATH = "relay.ini"
DEFAULT_HTTP_PORT = 8080

_TRUE = {"1", "true", "yes", "on"}
_FALSE = {"0", "false", "no", "off"}


def parse_relay_address(address: str) -> tuple[str, int]:
    """Split ``host:port`` (or ``[v6addr]:port``) into its parts.

    Raises:
        ValueError: If the port is missing or not a number in 1-65535.
    """
    host, sep, port_str = address.strip().rpartition(":")
    if not sep or not host:
        raise ValueError(f"relay address must be host:port, got {address!r}")
    if host.startswith("[") and host.endswith("]"):
        host = host[1:-1]
    try:
        port = int(port_str)
    except ValueError:
        raise ValueError(f"invalid port in relay address {address!r}") from None
    if not 0 < port < 65536:
        raise ValueError(f"invalid port in relay address {address!r}")
    return host, port


class RelayConfig(BaseModel):
    """Read-only configuration injected into the HTTP application.

    Attributes:
        smtp_server: Relay address as ``host:port``.
        skip_tls: Talk plain SMTP to the relay instead of negotiating TLS.
        smtp_timeout: Socket timeout for the SMTP session, None to block.
        default_from: Sender used when the request has none.
        default_to: Comma-separated recipients used when the request has none.
        default_subject: Subject used when the request has none.
        default_body: Body used when the request has neither POST body nor ``msg``.
        forced_from: When set, replaces the sender of every mail.
        host: HTTP bind address.
        port: HTTP listening port.
        redact_errors: Hide SMTP error details from HTTP callers.
        metrics_path: Path serving Prometheus metrics, None to disable.
        log_level: Root logging level name.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    smtp_server: str
    skip_tls: bool = False
    smtp_timeout: float | None = Field(default=None, gt=0)
    default_from: str = ""
    default_to: str = ""
    default_subject: str = ""
    default_body: str = ""
    forced_from: str = ""
    host: str = "0.0.0.0"
    port: int = Field(default=DEFAULT_HTTP_PORT, gt=0, lt=65536)
    redact_errors: bool = False
    metrics_path: str | None = None
    log_level: str = "INFO"

    @field_validator("smtp_server")
    @classmethod
    def relay_address_is_host_port(cls, v: str) -> str:
        parse_relay_address(v)
        return v.strip()

    @field_validator("metrics_path")
    @classmethod
    def metrics_path_is_absolute(cls, v: str | None) -> str | None:
        if v is None or not v.strip():
            return None
        v = v.strip()
        return v if v.startswith("/") else "/" + v

    @property
    def relay_host(self) -> str:
        return parse_relay_address(self.smtp_server)[0]

    @property
    def relay_port(self) -> int:
        return parse_relay_address(self.smtp_server)[1]

    @property
    def default_recipients(self) -> list[str]:
        """Default ``to`` split on commas, blanks dropped."""
        return [addr.strip() for addr in self.default_to.split(",") if addr.strip()]

    def describe(self) -> dict[str, Any]:
        """Settings as logged at startup and printed by ``show-config``."""
        return self.model_dump()


def _parse_bool(name: str, value: str) -> bool:
    normalized = value.strip().lower()
    if normalized in _TRUE:
        return True
    if normalized in _FALSE:
        return False
    raise ConfigurationError(f"invalid boolean for {name}: {value!r}")


def load_settings(config_path: str | os.PathLike | None = None, **overrides: Any) -> RelayConfig:
    """Build the :class:`RelayConfig` from file, environment and overrides.

    Args:
        config_path: INI file to read. Defaults to ``HSR_CONFIG`` or
            ``relay.ini``; a missing file is not an error.
        **overrides: Field values taking precedence over file and
            environment. ``None`` values are ignored.

    Raises:
        ConfigurationError: If a value cannot be parsed or validation fails.
    """
    path = Path(config_path or os.getenv("HSR_CONFIG", DEFAULT_CONFIG_PATH))
    parser = configparser.ConfigParser(interpolation=None)
    try:
        read = parser.read(path)
    except configparser.Error as exc:
        raise ConfigurationError(f"cannot parse {path}: {exc}") from exc
    if read:
        logger.debug("Loaded configuration file %s", path)

    def get(section: str, option: str, env: str) -> str | None:
        if parser.has_option(section, option):
            return parser.get(section, option)
        return os.getenv(env)

    sources = {
        "smtp_server": get("relay", "server", "HSR_SMTP_SERVER"),
        "skip_tls": get("relay", "skip_tls", "HSR_SKIP_TLS"),
        "smtp_timeout": get("relay", "timeout", "HSR_SMTP_TIMEOUT"),
        "default_from": get("defaults", "from", "HSR_FROM"),
        "default_to": get("defaults", "to", "HSR_TO"),
        "default_subject": get("defaults", "subject", "HSR_SUBJECT"),
        "default_body": get("defaults", "message", "HSR_MESSAGE"),
        "forced_from": get("defaults", "forced_from", "HSR_FORCED_FROM"),
        "host": get("server", "host", "HSR_HOST"),
        "port": get("server", "port", "HSR_PORT"),
        "redact_errors": get("server", "redact_errors", "HSR_REDACT_ERRORS"),
        "metrics_path": get("server", "metrics_path", "HSR_METRICS_PATH"),
        "log_level": get("logging", "level", "HSR_LOG_LEVEL"),
    }

    values: dict[str, Any] = {}
    for name, raw in sources.items():
        if raw is None:
            continue
        if name in ("skip_tls", "redact_errors"):
            values[name] = _parse_bool(name, raw)
        elif name == "smtp_timeout":
            values[name] = raw.strip() or None
        else:
            values[name] = raw.strip()
    values.update({k: v for k, v in overrides.items() if v is not None})

    if not values.get("smtp_server"):
        raise ConfigurationError(
            "no SMTP relay configured; set [relay] server, HSR_SMTP_SERVER or --smtp-server"
        )
    try:
        return RelayConfig(**values)
    except pydantic.ValidationError as exc:
        raise ConfigurationError(f"invalid configuration: {exc}") from exc
