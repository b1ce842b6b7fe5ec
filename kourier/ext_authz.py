"""External authorization: the upstream cluster and the HTTP filter for Envoy."""

from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass
from datetime import timedelta
from enum import Enum
from typing import Any

from kourier.envoy.lb_endpoint import new_lb_endpoint

EXT_AUTHZ_CLUSTER_NAME = "extAuthz"
UNIX_MAX_PORT = 65535
"""Highest valid port number."""

ENV_PREFIX = "KOURIER_EXTAUTHZ"
HTTP_PROTOCOL_OPTIONS_KEY = "envoy.extensions.upstreams.http.v3.HttpProtocolOptions"
HTTP_EXTERNAL_AUTHORIZATION = "envoy.filters.http.ext_authz"

_TYPE_PREFIX = "type.googleapis.com/"
_EXT_AUTHZ_TYPE = _TYPE_PREFIX + "envoy.extensions.filters.http.ext_authz.v3.ExtAuthz"
_HTTP_PROTOCOL_OPTIONS_TYPE = _TYPE_PREFIX + HTTP_PROTOCOL_OPTIONS_KEY
_MAX_UINT32 = 0xFFFFFFFF
_MAX_INT64 = 2**63 - 1

PACK_AS_BYTES_INVALID_WITH_HTTP = (
    "pack as bytes option cannot be set when using http protocol"
)


class ExtAuthzError(ValueError):
    """Raised when the external authorization settings are invalid."""


class ExtAuthzProtocol(str, Enum):
    """Protocol used to talk to the external authorization service."""

    GRPC = "grpc"
    HTTP = "http"
    HTTPS = "https"


def is_valid_protocol(protocol: str) -> bool:
    """Tell whether ``protocol`` names a supported protocol."""
    return protocol in {member.value for member in ExtAuthzProtocol}


def _coerce_protocol(protocol: str) -> ExtAuthzProtocol:
    if not is_valid_protocol(protocol):
        valid = ", ".join(member.value for member in ExtAuthzProtocol)
        raise ExtAuthzError(f"protocol {protocol} is invalid, must be in [{valid}]")
    return ExtAuthzProtocol(protocol)


def _duration_json(value: timedelta) -> str:
    total_us = value // timedelta(microseconds=1)
    sign = "-" if total_us < 0 else ""
    seconds, micros = divmod(abs(total_us), 1_000_000)
    if not micros:
        return f"{sign}{seconds}s"
    if micros % 1000 == 0:
        return f"{sign}{seconds}.{micros // 1000:03d}s"
    return f"{sign}{seconds}.{micros:06d}s"


@dataclass
class ExtAuthzSettings:
    """Settings of the external authorization service."""

    host: str = ""
    failure_mode_allow: bool = False
    max_request_bytes: int = 8192
    timeout: int = 2000
    """Request timeout in milliseconds."""
    protocol: str = ExtAuthzProtocol.GRPC.value
    pack_as_bytes: bool = False
    path_prefix: str = ""


@dataclass
class ExternalAuthz:
    """External authorization as the gateway applies it."""

    enabled: bool = False
    cluster: dict[str, Any] | None = None
    http_filter: dict[str, Any] | None = None


def ext_authz_cluster(host: str, port: int, protocol: str) -> dict[str, Any]:
    """Build the cluster pointing at the external authorization service."""
    if _coerce_protocol(protocol) is ExtAuthzProtocol.GRPC:
        protocol_config = {"http2_protocol_options": {}}
    else:
        protocol_config = {"http_protocol_options": {}}

    return {
        "name": EXT_AUTHZ_CLUSTER_NAME,
        "type": "STRICT_DNS",
        "typed_extension_protocol_options": {
            HTTP_PROTOCOL_OPTIONS_KEY: {
                "@type": _HTTP_PROTOCOL_OPTIONS_TYPE,
                "explicit_http_config": protocol_config,
            }
        },
        "connect_timeout": _duration_json(timedelta(seconds=5)),
        "load_assignment": {
            "cluster_name": EXT_AUTHZ_CLUSTER_NAME,
            "endpoints": [{"lb_endpoints": [new_lb_endpoint(host, port)]}],
        },
    }


def external_authz_filter(settings: ExtAuthzSettings) -> dict[str, Any]:
    """Build the HTTP filter that calls the external authorization service."""
    timeout = _duration_json(timedelta(milliseconds=settings.timeout))

    if settings.protocol != ExtAuthzProtocol.GRPC.value and settings.pack_as_bytes:
        raise ExtAuthzError(PACK_AS_BYTES_INVALID_WITH_HTTP)
    protocol = _coerce_protocol(settings.protocol)

    headers = [{"key": "client", "value": "kourier"}]
    config: dict[str, Any] = {
        "@type": _EXT_AUTHZ_TYPE,
        "transport_api_version": "V3",
        "failure_mode_allow": settings.failure_mode_allow,
        "with_request_body": {
            "max_request_bytes": settings.max_request_bytes,
            "allow_partial_message": True,
            "pack_as_bytes": settings.pack_as_bytes,
        },
        "clear_route_cache": False,
    }

    if protocol is ExtAuthzProtocol.GRPC:
        config["grpc_service"] = {
            "envoy_grpc": {"cluster_name": EXT_AUTHZ_CLUSTER_NAME},
            "timeout": timeout,
            "initial_metadata": headers,
        }
    else:
        config["http_service"] = {
            "server_uri": {
                "uri": f"{protocol.value}://{settings.host}",
                "cluster": EXT_AUTHZ_CLUSTER_NAME,
                "timeout": timeout,
            },
            "path_prefix": settings.path_prefix,
            "authorization_request": {"headers_to_add": headers},
        }

    return {"name": HTTP_EXTERNAL_AUTHORIZATION, "typed_config": config}


def _env_bool(key: str, raw: str) -> bool:
    if raw in {"1", "t", "T", "TRUE", "true", "True"}:
        return True
    if raw in {"0", "f", "F", "FALSE", "false", "False"}:
        return False
    raise ExtAuthzError(f"{key}: invalid boolean {raw!r}")


def _env_int(key: str, raw: str, low: int, high: int) -> int:
    try:
        value = int(raw, 0)
    except ValueError as err:
        raise ExtAuthzError(f"{key}: invalid integer {raw!r}") from err
    if not low <= value <= high:
        raise ExtAuthzError(f"{key}: value {raw!r} out of range")
    return value


def _settings_from_environ(environ: Mapping[str, str]) -> ExtAuthzSettings:
    settings = ExtAuthzSettings()

    def lookup(name: str) -> tuple[str, str | None]:
        key = f"{ENV_PREFIX}_{name}"
        return key, environ.get(key)

    key, raw = lookup("HOST")
    if raw is not None:
        settings.host = raw
    key, raw = lookup("FAILUREMODEALLOW")
    if raw is not None:
        settings.failure_mode_allow = _env_bool(key, raw)
    key, raw = lookup("MAXREQUESTBYTES")
    if raw is not None:
        settings.max_request_bytes = _env_int(key, raw, 0, _MAX_UINT32)
    key, raw = lookup("TIMEOUT")
    if raw is not None:
        settings.timeout = _env_int(key, raw, -_MAX_INT64 - 1, _MAX_INT64)
    key, raw = lookup("PROTOCOL")
    if raw is not None:
        settings.protocol = raw
    key, raw = lookup("PACKASBYTES")
    if raw is not None:
        settings.pack_as_bytes = _env_bool(key, raw)
    key, raw = lookup("PATHPREFIX")
    if raw is not None:
        settings.path_prefix = raw
    return settings


def _split_host_port(hostport: str) -> tuple[str, str]:
    if hostport.startswith("["):
        end = hostport.find("]")
        if end < 0:
            raise ExtAuthzError(f"address {hostport}: missing ']' in address")
        host, rest = hostport[1:end], hostport[end + 1:]
        if not rest:
            raise ExtAuthzError(f"address {hostport}: missing port in address")
        if not rest.startswith(":"):
            raise ExtAuthzError(f"address {hostport}: unexpected text after host")
        port = rest[1:]
        if ":" in port:
            raise ExtAuthzError(f"address {hostport}: too many colons in address")
        return host, port
    colons = hostport.count(":")
    if colons == 0:
        raise ExtAuthzError(f"address {hostport}: missing port in address")
    if colons > 1:
        raise ExtAuthzError(f"address {hostport}: too many colons in address")
    host, _, port = hostport.partition(":")
    if "[" in host or "]" in host:
        raise ExtAuthzError(f"address {hostport}: unexpected bracket in address")
    return host, port


def load_external_authz(environ: Mapping[str, str] | None = None) -> ExternalAuthz:
    """Read the external authorization setup from ``KOURIER_EXTAUTHZ_*`` variables.

    Without ``KOURIER_EXTAUTHZ_HOST`` external authorization stays disabled.
    """
    environ = os.environ if environ is None else environ
    if not environ.get(f"{ENV_PREFIX}_HOST"):
        return ExternalAuthz()

    settings = _settings_from_environ(environ)
    _coerce_protocol(settings.protocol)

    host, port_text = _split_host_port(settings.host)
    try:
        port = int(port_text)
    except ValueError as err:
        raise ExtAuthzError(f"invalid port {port_text!r}") from err
    if port < 0:
        raise ExtAuthzError(f"port {port} must not be negative")
    if port > UNIX_MAX_PORT:
        raise ExtAuthzError(f"port {port} bigger than {UNIX_MAX_PORT}")

    return ExternalAuthz(
        enabled=True,
        cluster=ext_authz_cluster(host, port, settings.protocol),
        http_filter=external_authz_filter(settings),
    )