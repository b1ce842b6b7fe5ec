"""Envoy clusters."""

from __future__ import annotations

from collections.abc import Iterable
from datetime import timedelta
from enum import Enum
from typing import Any

HTTP_PROTOCOL_OPTIONS_KEY = "envoy.extensions.upstreams.http.v3.HttpProtocolOptions"


class DiscoveryType(str, Enum):
    """How Envoy discovers the members of a cluster."""

    STATIC = "STATIC"
    STRICT_DNS = "STRICT_DNS"
    LOGICAL_DNS = "LOGICAL_DNS"
    EDS = "EDS"
    ORIGINAL_DST = "ORIGINAL_DST"


def _duration_json(value: timedelta) -> str:
    total_us = value // timedelta(microseconds=1)
    sign = "-" if total_us < 0 else ""
    seconds, micros = divmod(abs(total_us), 1_000_000)
    if not micros:
        return f"{sign}{seconds}s"
    if micros % 1000 == 0:
        return f"{sign}{seconds}.{micros // 1000:03d}s"
    return f"{sign}{seconds}.{micros:06d}s"


def new_cluster(
    name: str,
    connect_timeout: timedelta,
    endpoints: Iterable[dict[str, Any]],
    is_http2: bool,
    transport_socket: dict[str, Any] | None,
    discovery_type: DiscoveryType | str,
) -> dict[str, Any]:
    """Build a cluster with the given endpoints and settings."""
    cluster: dict[str, Any] = {
        "name": name,
        "type": DiscoveryType(discovery_type).value,
        "connect_timeout": _duration_json(connect_timeout),
        "load_assignment": {
            "cluster_name": name,
            "endpoints": [{"lb_endpoints": list(endpoints)}],
        },
    }
    if transport_socket is not None:
        cluster["transport_socket"] = transport_socket

    if is_http2:
        cluster["typed_extension_protocol_options"] = {
            HTTP_PROTOCOL_OPTIONS_KEY: {
                "@type": "type.googleapis.com/" + HTTP_PROTOCOL_OPTIONS_KEY,
                "explicit_http_config": {"http2_protocol_options": {}},
            }
        }
    return cluster