from datetime import timedelta

import pytest

from kourier.envoy.cluster import HTTP_PROTOCOL_OPTIONS_KEY, DiscoveryType, new_cluster
from kourier.envoy.lb_endpoint import new_lb_endpoint

NAME = "myTestCluster_12345"


@pytest.fixture
def endpoints():
    return [new_lb_endpoint("127.0.0.1", 1234), new_lb_endpoint("127.0.0.2", 1234)]


def test_new_cluster_with_http2(endpoints):
    cluster = new_cluster(NAME, timedelta(seconds=5), endpoints, True, None, DiscoveryType.STATIC)
    assert cluster["connect_timeout"] == "5s"
    assert cluster["typed_extension_protocol_options"][HTTP_PROTOCOL_OPTIONS_KEY] == {
        "@type": "type.googleapis.com/" + HTTP_PROTOCOL_OPTIONS_KEY,
        "explicit_http_config": {"http2_protocol_options": {}},
    }
    assert cluster["name"] == NAME
    assert cluster["load_assignment"]["cluster_name"] == NAME
    assert cluster["load_assignment"]["endpoints"][0]["lb_endpoints"] == endpoints
    assert cluster["type"] == "STATIC"


def test_new_cluster_without_http2(endpoints):
    cluster = new_cluster(NAME, timedelta(seconds=5), endpoints, False, None, DiscoveryType.STATIC)
    assert "typed_extension_protocol_options" not in cluster
    assert "transport_socket" not in cluster


def test_new_cluster_with_transport_socket(endpoints):
    socket = {"name": "envoy.transport_sockets.tls"}
    cluster = new_cluster(NAME, timedelta(milliseconds=250), endpoints, False, socket, "STRICT_DNS")
    assert cluster["transport_socket"] == socket
    assert cluster["type"] == "STRICT_DNS"
    assert cluster["connect_timeout"] == "0.250s"


def test_new_cluster_rejects_unknown_discovery_type(endpoints):
    with pytest.raises(ValueError):
        new_cluster(NAME, timedelta(seconds=1), endpoints, False, None, "BOGUS")