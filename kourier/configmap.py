"""Kourier settings read from the ``config-kourier`` config map."""

from __future__ import annotations

import re
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from datetime import timedelta
from decimal import Decimal
from typing import Any
from urllib.parse import unquote

from kourier.settings import (
    CIPHER_SUITES_KEY,
    TRUSTED_HOPS_COUNT_KEY,
    USE_REMOTE_ADDRESS_KEY,
)

CONFIG_NAME = "config-kourier"
"""Name of the config map for Kourier."""

ENABLE_SERVICE_ACCESS_LOGGING_KEY = "enable-service-access-logging"
ENABLE_PROXY_PROTOCOL_KEY = "enable-proxy-protocol"
CLUSTER_CERT_KEY = "cluster-cert-secret"
IDLE_TIMEOUT_KEY = "stream-idle-timeout"
ENABLE_CRYPTOMB_KEY = "enable-cryptomb"
TRACING_COLLECTOR_FULL_ENDPOINT = "tracing-collector-full-endpoint"
DISABLE_ENVOY_SERVER_HEADER_KEY = "disable-envoy-server-header"

_MAX_UINT16 = 0xFFFF
_MAX_UINT32 = 0xFFFFFFFF
_MAX_INT64 = 2**63 - 1


class ConfigError(ValueError):
    """Raised when a config map holds a value that cannot be parsed."""


@dataclass
class Tracing:
    """Tracing settings of the gateway, filled from the collector endpoint."""

    enabled: bool = False
    collector_host: str = ""
    collector_port: int = 0
    collector_endpoint: str = ""


@dataclass
class KourierConfig:
    """Configuration of the Kourier gateway."""

    enable_service_access_logging: bool = True
    enable_proxy_protocol: bool = False
    cluster_cert_secret: str = ""
    idle_timeout: timedelta = timedelta(0)
    trusted_hops_count: int = 0
    use_remote_address: bool = False
    enable_cryptomb: bool = False
    cipher_suites: frozenset[str] | None = None
    tracing: Tracing = field(default_factory=Tracing)
    disable_envoy_server_header: bool = False


def default_config() -> KourierConfig:
    """Return the configuration used when the config map sets nothing."""
    return KourierConfig()


_TRUE_WORDS = frozenset({"1", "t", "T", "TRUE", "true", "True"})
_FALSE_WORDS = frozenset({"0", "f", "F", "FALSE", "false", "False"})


def _parse_bool(raw: str) -> bool:
    if raw in _TRUE_WORDS:
        return True
    if raw in _FALSE_WORDS:
        return False
    raise ValueError(f"invalid boolean {raw!r}")


def _parse_uint32(raw: str) -> int:
    if not re.fullmatch(r"[0-9]+", raw):
        raise ValueError(f"invalid unsigned integer {raw!r}")
    value = int(raw)
    if value > _MAX_UINT32:
        raise ValueError(f"value {raw!r} out of range")
    return value


_DURATION_UNITS = {
    "ns": Decimal(1),
    "us": Decimal(1_000),
    "\u00b5s": Decimal(1_000),
    "\u03bcs": Decimal(1_000),
    "ms": Decimal(1_000_000),
    "s": Decimal(1_000_000_000),
    "m": Decimal(60_000_000_000),
    "h": Decimal(3_600_000_000_000),
}
_DURATION_PART = r"(\d+\.?\d*|\.\d+)(ns|us|\u00b5s|\u03bcs|ms|s|m|h)"
_DURATION_RE = re.compile(f"(?:{_DURATION_PART})+")
_DURATION_PART_RE = re.compile(_DURATION_PART)


def _parse_duration(raw: str) -> timedelta:
    text = raw
    negative = False
    if text[:1] in ("+", "-"):
        negative = text[0] == "-"
        text = text[1:]
    if text == "0":
        return timedelta(0)
    if not text or not _DURATION_RE.fullmatch(text):
        raise ValueError(f"invalid duration {raw!r}")
    total = sum(
        Decimal(number) * _DURATION_UNITS[unit]
        for number, unit in _DURATION_PART_RE.findall(text)
    )
    nanoseconds = int(total)
    if nanoseconds > _MAX_INT64:
        raise ValueError(f"invalid duration {raw!r}")
    if negative:
        nanoseconds = -nanoseconds
    seconds, remainder = divmod(nanoseconds, 1_000_000_000)
    return timedelta(seconds=seconds, microseconds=remainder // 1_000)


def _parse_string_set(raw: str) -> frozenset[str]:
    return frozenset(item.strip() for item in raw.split(","))


_HOST_CHARS = re.compile(r"[A-Za-z0-9\-._~!$&'()*+,;=:\[\]%]")


def _split_host_port(authority: str) -> tuple[str, str]:
    hostport = authority.rpartition("@")[2]
    if hostport.startswith("["):
        end = hostport.find("]")
        if end < 0:
            raise ValueError("missing ']' in host")
        host, rest = hostport[1:end], hostport[end + 1:]
        if rest and not rest.startswith(":"):
            raise ValueError(f"invalid port {rest!r} after host")
        port = rest[1:]
    else:
        host, colon, port = hostport.rpartition(":")
        if not colon:
            host, port = hostport, ""
    if port and not port.isdigit():
        raise ValueError(f"invalid port {':' + port!r} after host")
    for char in host:
        if ord(char) < 0x80 and not _HOST_CHARS.fullmatch(char):
            raise ValueError(f"invalid character {char!r} in host name")
    return host, port


def _parse_tracing(raw: str) -> Tracing:
    if not raw:
        return Tracing()
    try:
        if any(ord(char) < 0x20 or ord(char) == 0x7F for char in raw):
            raise ValueError("invalid control character in URL")
        location = raw.split("?", 1)[0]
        slash = location.find("/")
        authority, path = (
            (location, "") if slash < 0 else (location[:slash], location[slash:])
        )
        host, port = _split_host_port(authority)
        if re.search(r"%(?![0-9A-Fa-f]{2})", path):
            raise ValueError("invalid URL escape in path")
        path = unquote(path)
    except ValueError as err:
        raise ConfigError(f'"{raw}" is not a valid URL: {err}') from err
    try:
        port_number = _parse_uint32(port)
    except ValueError as err:
        raise ConfigError(f'"{port}" is not a valid port: {err}') from err
    if port_number > _MAX_UINT16:
        raise ConfigError(f"port {port_number} must be a valid port")
    return Tracing(
        enabled=True,
        collector_host=host,
        collector_port=port_number,
        collector_endpoint=path,
    )


_FIELDS: tuple[tuple[str, str, Callable[[str], Any]], ...] = (
    (ENABLE_SERVICE_ACCESS_LOGGING_KEY, "enable_service_access_logging", _parse_bool),
    (ENABLE_PROXY_PROTOCOL_KEY, "enable_proxy_protocol", _parse_bool),
    (CLUSTER_CERT_KEY, "cluster_cert_secret", str),
    (IDLE_TIMEOUT_KEY, "idle_timeout", _parse_duration),
    (TRUSTED_HOPS_COUNT_KEY, "trusted_hops_count", _parse_uint32),
    (USE_REMOTE_ADDRESS_KEY, "use_remote_address", _parse_bool),
    (CIPHER_SUITES_KEY, "cipher_suites", _parse_string_set),
    (ENABLE_CRYPTOMB_KEY, "enable_cryptomb", _parse_bool),
    (TRACING_COLLECTOR_FULL_ENDPOINT, "tracing", _parse_tracing),
    (DISABLE_ENVOY_SERVER_HEADER_KEY, "disable_envoy_server_header", _parse_bool),
)


def new_config_from_map(data: Mapping[str, str] | None) -> KourierConfig:
    """Build a configuration from the key/value data of a config map."""
    config = default_config()
    data = data or {}
    for key, attribute, parse in _FIELDS:
        if key not in data:
            continue
        try:
            value = parse(data[key])
        except ConfigError:
            raise
        except ValueError as err:
            raise ConfigError(f"failed to parse {key!r}: {err}") from err
        setattr(config, attribute, value)
    return config


def new_config_from_configmap(configmap: Any) -> KourierConfig:
    """Build a configuration from a config map manifest or object with ``data``."""
    if isinstance(configmap, Mapping):
        data = configmap.get("data")
    else:
        data = getattr(configmap, "data", None)
    return new_config_from_map(data)