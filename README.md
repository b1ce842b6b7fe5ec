# kourier

Building blocks for the configuration an ingress gateway hands to an Envoy
proxy. The package reads the gateway's settings from a config-map style
dictionary and turns them into plain Python dictionaries that follow the
field names of Envoy's v3 API: clusters, load-balancer endpoints, routes,
virtual hosts, weighted clusters, route configurations and HTTP connection
managers. It also builds the external authorization cluster and filter.

## Installation

```
pip install .
```

For running the tests:

```
pip install ".[test]"
pytest
```

## Gateway settings

```python
from kourier.configmap import new_config_from_map

config = new_config_from_map({
    "enable-service-access-logging": "false",
    "stream-idle-timeout": "200s",
    "trusted-hops-count": "3",
    "cipher-suites": "foo, bar",
    "tracing-collector-full-endpoint": "jaeger.default.svc.cluster.local:9411/api/v2/spans",
})
```

The result is a `KourierConfig` dataclass; the tracing part is a `Tracing`
dataclass. Recognised keys are `enable-service-access-logging`,
`enable-proxy-protocol`, `cluster-cert-secret`, `stream-idle-timeout`,
`trusted-hops-count`, `use-remote-address`, `cipher-suites`,
`enable-cryptomb`, `tracing-collector-full-endpoint` and
`disable-envoy-server-header`. Booleans, unsigned integers and durations
such as `200s` or `1m30s` are parsed strictly; when a value cannot be
parsed, a `ConfigError` (a `ValueError`) is raised.

`default_config()` returns the defaults (service access logging on,
everything else off or empty). `new_config_from_configmap()` accepts either
a config map manifest as a mapping with a `data` key, or any object with a
`data` attribute.

`kourier.settings` holds the service names and ports, and three helpers:

- `gateway_namespace()` returns `KOURIER_GATEWAY_NAMESPACE`, falling back to
  `SYSTEM_NAMESPACE` (a `RuntimeError` is raised when neither is set);
- `service_hostnames()` returns the external and internal service hostnames,
  e.g. `kourier.kourier-system.svc.cluster.local`, using `CLUSTER_DOMAIN`,
  the `search` line of `/etc/resolv.conf`, or `cluster.local`;
- `get_disable_http2(annotations)` returns the value of the
  `kourier.knative.dev/disable-http2` annotation, or an empty string.

## Envoy resources

```python
from datetime import timedelta

from kourier.envoy.lb_endpoint import new_lb_endpoint
from kourier.envoy.cluster import new_cluster, DiscoveryType
from kourier.envoy.weighted_cluster import new_weighted_cluster
from kourier.envoy.route import new_route
from kourier.envoy.virtual_host import new_virtual_host
from kourier.envoy.http_connection_manager import (
    new_http_connection_manager,
    new_route_config,
)
from kourier.ext_authz import ExternalAuthz

endpoints = [new_lb_endpoint("127.0.0.1", 8080)]
cluster = new_cluster(
    "default/hello", timedelta(seconds=5), endpoints, True, None, DiscoveryType.STATIC
)

split = new_weighted_cluster("default/hello", 100, {"K-Original-Host": "hello.example.com"})
route = new_route("hello", [], "/", [split], timedelta(seconds=30), {}, "")
vhost = new_virtual_host("hello", ["hello.example.com"], [route])
route_config = new_route_config("external", [vhost])

manager = new_http_connection_manager("external", config, ExternalAuthz())
```

Timeouts are `datetime.timedelta` values and appear in the output as
duration strings such as `"5s"`. With `is_http2` true, `new_cluster` adds
explicit HTTP/2 upstream protocol options. Headers given to routes and
weighted clusters become header options that overwrite existing values.

`new_redirect_route` builds an HTTPS redirect route, and
`new_route_ext_authz_disabled` a route on which external authorization is
switched off. `new_virtual_host_with_ext_authz` attaches per-host context
extensions for the authorization service. `new_route_config` always turns
cluster validation on.

`new_http_connection_manager` adds a file access log to `/dev/stdout` when
access logging is on, forces `use_remote_address` when proxy protocol is on,
passes the server header through when `disable_envoy_server_header` is set,
and adds a Zipkin tracer when tracing is enabled. When its third argument is
`None`, the external authorization setup is read from the environment.

## External authorization

```python
from kourier.ext_authz import load_external_authz

external_authz = load_external_authz({
    "KOURIER_EXTAUTHZ_HOST": "authz.example.com:6000",
    "KOURIER_EXTAUTHZ_PROTOCOL": "grpc",
})
```

Other variables read are `KOURIER_EXTAUTHZ_FAILUREMODEALLOW`,
`KOURIER_EXTAUTHZ_MAXREQUESTBYTES` (default 8192),
`KOURIER_EXTAUTHZ_TIMEOUT` (milliseconds, default 2000),
`KOURIER_EXTAUTHZ_PACKASBYTES` and `KOURIER_EXTAUTHZ_PATHPREFIX`. Without an
argument, `os.environ` is used. With no `KOURIER_EXTAUTHZ_HOST` set, the
result is disabled. Invalid settings, such as an unknown protocol, a host
without a port, a port above 65535 or packing the body as bytes over HTTP,
raise `ExtAuthzError`.

`ext_authz_cluster(host, port, protocol)` and
`external_authz_filter(settings)` build the cluster and filter directly from
an `ExtAuthzSettings`; `is_valid_protocol` checks a protocol name against
`ExtAuthzProtocol` (`grpc`, `http`, `https`).

## What this package does not do

It only builds configuration data. It has no listeners or TLS filter
chains, does not watch Kubernetes ingresses, does not run an xDS management
server or serve snapshots to Envoy, and has no command-line program.