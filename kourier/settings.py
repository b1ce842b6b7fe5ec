"""Names, ports and environment lookups shared by the Kourier gateway."""

from __future__ import annotations

import os
from collections.abc import Mapping

CONTROLLER_NAME = "net-kourier-controller"
"""Name of the Kourier controller."""

INTERNAL_SERVICE_NAME = "kourier-internal"
"""Name of the internal gateway service."""

EXTERNAL_SERVICE_NAME = "kourier"
"""Name of the external gateway service."""

HTTP_PORT_EXTERNAL = 8080
HTTP_PORT_LOCAL = 8081
HTTPS_PORT_LOCAL = 8444
HTTPS_PORT_EXTERNAL = 8443
HTTP_PORT_PROB = 8090
HTTPS_PORT_PROB = 9443

INTERNAL_KOURIER_DOMAIN = "internalkourier"
"""Domain of the gateway's internal endpoint."""

GATEWAY_NAMESPACE_ENV = "KOURIER_GATEWAY_NAMESPACE"
"""Environment variable naming the namespace the gateway is deployed in."""

KOURIER_INGRESS_CLASS_NAME = "kourier.ingress.networking.knative.dev"
"""Ingress class handled by this controller."""

DISABLE_HTTP2_ANNOTATION_KEY = "kourier.knative.dev/disable-http2"
"""Annotation that turns HTTP/2 off for a domain mapping."""

TRUSTED_HOPS_COUNT_KEY = "trusted-hops-count"
USE_REMOTE_ADDRESS_KEY = "use-remote-address"
CIPHER_SUITES_KEY = "cipher-suites"

SYSTEM_NAMESPACE_ENV = "SYSTEM_NAMESPACE"
CLUSTER_DOMAIN_ENV = "CLUSTER_DOMAIN"
DEFAULT_CLUSTER_DOMAIN = "cluster.local"

_RESOLV_CONF = "/etc/resolv.conf"
_DISABLE_HTTP2_KEYS = (DISABLE_HTTP2_ANNOTATION_KEY,)


def _system_namespace() -> str:
    namespace = os.environ.get(SYSTEM_NAMESPACE_ENV, "")
    if not namespace:
        raise RuntimeError(
            f"the environment variable {SYSTEM_NAMESPACE_ENV!r} is not set; "
            "it must name the namespace the system components run in"
        )
    return namespace


def _domain_from_resolv_conf(path: str) -> str | None:
    try:
        with open(path, encoding="utf-8") as handle:
            lines = handle.readlines()
    except OSError:
        return None
    for line in lines:
        fields = line.split()
        if not fields or fields[0] != "search":
            continue
        for entry in fields[1:]:
            if entry.startswith("svc."):
                return entry[len("svc."):].rstrip(".")
    return None


def _cluster_domain() -> str:
    domain = os.environ.get(CLUSTER_DOMAIN_ENV, "")
    if domain:
        return domain
    return _domain_from_resolv_conf(_RESOLV_CONF) or DEFAULT_CLUSTER_DOMAIN


def _service_hostname(name: str, namespace: str) -> str:
    return f"{name}.{namespace}.svc.{_cluster_domain()}"


def gateway_namespace() -> str:
    """Return the namespace where the gateway is deployed."""
    namespace = os.environ.get(GATEWAY_NAMESPACE_ENV, "")
    return namespace or _system_namespace()


def service_hostnames() -> tuple[str, str]:
    """Return the external and the internal service hostname.

    For example ``kourier.kourier-system.svc.cluster.local``.
    """
    namespace = gateway_namespace()
    return (
        _service_hostname(EXTERNAL_SERVICE_NAME, namespace),
        _service_hostname(INTERNAL_SERVICE_NAME, namespace),
    )


def get_disable_http2(annotations: Mapping[str, str] | None) -> str:
    """Return the value of the disable-http2 annotation, or an empty string."""
    if not annotations:
        return ""
    for key in _DISABLE_HTTP2_KEYS:
        if key in annotations:
            return annotations[key]
    return ""