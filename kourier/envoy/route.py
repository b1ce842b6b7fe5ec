"""Envoy routes."""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from datetime import timedelta
from typing import Any

from kourier.envoy.headers import headers_to_add
from kourier.ext_authz import HTTP_EXTERNAL_AUTHORIZATION

_EXT_AUTHZ_PER_ROUTE_TYPE = (
    "type.googleapis.com/envoy.extensions.filters.http.ext_authz.v3.ExtAuthzPerRoute"
)


def _duration_json(value: timedelta) -> str:
    total_us = value // timedelta(microseconds=1)
    sign = "-" if total_us < 0 else ""
    seconds, micros = divmod(abs(total_us), 1_000_000)
    if not micros:
        return f"{sign}{seconds}s"
    if micros % 1000 == 0:
        return f"{sign}{seconds}.{micros // 1000:03d}s"
    return f"{sign}{seconds}.{micros:06d}s"


def _match(
    headers_match: Iterable[dict[str, Any]] | None, path: str
) -> dict[str, Any]:
    return {"prefix": path, "headers": list(headers_match or [])}


def new_route(
    name: str,
    headers_match: Iterable[dict[str, Any]] | None,
    path: str,
    weighted_clusters: Iterable[dict[str, Any]] | None,
    route_timeout: timedelta,
    headers: Mapping[str, str] | None,
    host_rewrite: str,
) -> dict[str, Any]:
    """Build a route splitting traffic across weighted clusters."""
    action: dict[str, Any] = {
        "weighted_clusters": {"clusters": list(weighted_clusters or [])},
        "timeout": _duration_json(route_timeout),
        "upgrade_configs": [{"upgrade_type": "websocket", "enabled": True}],
    }
    if host_rewrite:
        action["host_rewrite_literal"] = host_rewrite

    return {
        "name": name,
        "match": _match(headers_match, path),
        "route": action,
        "request_headers_to_add": headers_to_add(headers),
    }


def new_redirect_route(
    name: str,
    headers_match: Iterable[dict[str, Any]] | None,
    path: str,
) -> dict[str, Any]:
    """Build a route that redirects to HTTPS."""
    return {
        "name": name,
        "match": _match(headers_match, path),
        "redirect": {"https_redirect": True},
    }


def new_route_ext_authz_disabled(
    name: str,
    headers_match: Iterable[dict[str, Any]] | None,
    path: str,
    weighted_clusters: Iterable[dict[str, Any]] | None,
    route_timeout: timedelta,
    headers: Mapping[str, str] | None,
    host_rewrite: str,
) -> dict[str, Any]:
    """Build a route like :func:`new_route` with external authorization off."""
    route = new_route(
        name,
        headers_match,
        path,
        weighted_clusters,
        route_timeout,
        headers,
        host_rewrite,
    )
    route["typed_per_filter_config"] = {
        HTTP_EXTERNAL_AUTHORIZATION: {
            "@type": _EXT_AUTHZ_PER_ROUTE_TYPE,
            "disabled": True,
        }
    }
    return route