"""Weighted clusters of a route."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from kourier.envoy.headers import headers_to_add


def new_weighted_cluster(
    name: str, traffic_perc: int, headers: Mapping[str, str] | None
) -> dict[str, Any]:
    """Build a cluster weight receiving ``traffic_perc`` of the traffic."""
    return {
        "name": name,
        "weight": traffic_perc,
        "request_headers_to_add": headers_to_add(headers),
    }