"""HTTP connection managers and the route configurations they point to."""

from __future__ import annotations

from collections.abc import Iterable
from datetime import timedelta
from typing import Any

from kourier.configmap import KourierConfig
from kourier.ext_authz import ExternalAuthz, load_external_authz

ROUTER_FILTER_NAME = "envoy.filters.http.router"
ZIPKIN_TRACER_NAME = "envoy.tracers.zipkin"
FILE_ACCESS_LOG_NAME = "envoy.file_access_log"
TRACING_COLLECTOR_CLUSTER = "tracing-collector"
ACCESS_LOG_PATH = "/dev/stdout"
STAT_PREFIX = "ingress_http"

_TYPE_PREFIX = "type.googleapis.com/"
_ROUTER_TYPE = _TYPE_PREFIX + "envoy.extensions.filters.http.router.v3.Router"
_FILE_ACCESS_LOG_TYPE = (
    _TYPE_PREFIX + "envoy.extensions.access_loggers.file.v3.FileAccessLog"
)
_ZIPKIN_CONFIG_TYPE = _TYPE_PREFIX + "envoy.config.trace.v3.ZipkinConfig"
_INITIAL_FETCH_TIMEOUT = timedelta(seconds=10)


def _duration_json(value: timedelta) -> str:
    total_us = value // timedelta(microseconds=1)
    sign = "-" if total_us < 0 else ""
    seconds, micros = divmod(abs(total_us), 1_000_000)
    if not micros:
        return f"{sign}{seconds}s"
    if micros % 1000 == 0:
        return f"{sign}{seconds}.{micros // 1000:03d}s"
    return f"{sign}{seconds}.{micros:06d}s"


def _router_filter() -> dict[str, Any]:
    return {"name": ROUTER_FILTER_NAME, "typed_config": {"@type": _ROUTER_TYPE}}


def new_http_connection_manager(
    route_config_name: str,
    kourier_config: KourierConfig,
    external_authz: ExternalAuthz | None = None,
) -> dict[str, Any]:
    """Build an HTTP connection manager that loads ``route_config_name`` over ADS.

    Without ``external_authz`` the setup is read from the environment.
    """
    if external_authz is None:
        external_authz = load_external_authz()

    filters: list[dict[str, Any]] = []
    if external_authz.enabled and external_authz.http_filter is not None:
        filters.append(external_authz.http_filter)
    # The router filter always comes last.
    filters.append(_router_filter())

    manager: dict[str, Any] = {
        "codec_type": "AUTO",
        "stat_prefix": STAT_PREFIX,
        "http_filters": filters,
        "rds": {
            "config_source": {
                "resource_api_version": "V3",
                "ads": {},
                "initial_fetch_timeout": _duration_json(_INITIAL_FETCH_TIMEOUT),
            },
            "route_config_name": route_config_name,
        },
        "stream_idle_timeout": _duration_json(kourier_config.idle_timeout),
        "xff_num_trusted_hops": kourier_config.trusted_hops_count,
        "use_remote_address": kourier_config.use_remote_address,
        "server_header_transformation": "OVERWRITE",
        "access_log": [],
    }

    if kourier_config.enable_proxy_protocol:
        # The real remote address of the client connection must be used.
        manager["use_remote_address"] = True

    if kourier_config.disable_envoy_server_header:
        manager["server_header_transformation"] = "PASS_THROUGH"

    if kourier_config.enable_service_access_logging:
        manager["access_log"] = [
            {
                "name": FILE_ACCESS_LOG_NAME,
                "typed_config": {
                    "@type": _FILE_ACCESS_LOG_TYPE,
                    "path": ACCESS_LOG_PATH,
                },
            }
        ]

    tracing = kourier_config.tracing
    if tracing.enabled:
        manager["generate_request_id"] = True
        manager["tracing"] = {
            "provider": {
                "name": ZIPKIN_TRACER_NAME,
                "typed_config": {
                    "@type": _ZIPKIN_CONFIG_TYPE,
                    "collector_cluster": TRACING_COLLECTOR_CLUSTER,
                    "collector_endpoint": tracing.collector_endpoint,
                    "shared_span_context": False,
                    "collector_endpoint_version": "HTTP_JSON",
                },
            }
        }

    return manager


def new_route_config(
    name: str, virtual_hosts: Iterable[dict[str, Any]]
) -> dict[str, Any]:
    """Build a route configuration holding ``virtual_hosts``.

    Cluster validation is on, so routes never point at missing clusters.
    """
    return {
        "name": name,
        "virtual_hosts": list(virtual_hosts),
        "validate_clusters": True,
    }