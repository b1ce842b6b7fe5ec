import pytest

from kourier.ext_authz import (
    EXT_AUTHZ_CLUSTER_NAME,
    HTTP_EXTERNAL_AUTHORIZATION,
    HTTP_PROTOCOL_OPTIONS_KEY,
    ExtAuthzError,
    ExtAuthzProtocol,
    ExtAuthzSettings,
    ExternalAuthz,
    ext_authz_cluster,
    external_authz_filter,
    is_valid_protocol,
    load_external_authz,
)

HEADERS = [{"key": "client", "value": "kourier"}]
EXT_AUTHZ_TYPE = "type.googleapis.com/envoy.extensions.filters.http.ext_authz.v3.ExtAuthz"


@pytest.mark.parametrize(
    ("protocol", "want"),
    [("grpc", True), ("http", True), ("https", True), ("", False), ("unknown", False)],
)
def test_is_valid_protocol(protocol, want):
    assert is_valid_protocol(protocol) is want


@pytest.mark.parametrize(
    ("host", "port", "protocol", "config"),
    [
        ("example.com", 50051, "grpc", {"http2_protocol_options": {}}),
        ("example.com", 8080, "http", {"http_protocol_options": {}}),
        ("example.com", 8443, "https", {"http_protocol_options": {}}),
    ],
)
def test_ext_authz_cluster_http_protocol_options(host, port, protocol, config):
    cluster = ext_authz_cluster(host, port, protocol)
    options = cluster["typed_extension_protocol_options"][HTTP_PROTOCOL_OPTIONS_KEY]
    assert options == {
        "@type": "type.googleapis.com/" + HTTP_PROTOCOL_OPTIONS_KEY,
        "explicit_http_config": config,
    }


def test_ext_authz_cluster_shape():
    cluster = ext_authz_cluster("example.com", 50051, ExtAuthzProtocol.GRPC)
    assert cluster["name"] == EXT_AUTHZ_CLUSTER_NAME
    assert cluster["type"] == "STRICT_DNS"
    assert cluster["connect_timeout"] == "5s"
    endpoint = cluster["load_assignment"]["endpoints"][0]["lb_endpoints"][0]
    socket = endpoint["endpoint"]["address"]["socket_address"]
    assert socket["address"] == "example.com"
    assert socket["port_value"] == 50051


def test_ext_authz_cluster_invalid_protocol():
    with pytest.raises(ExtAuthzError):
        ext_authz_cluster("example.com", 80, "ftp")


def _grpc_expected(pack_as_bytes=False):
    return {
        "@type": EXT_AUTHZ_TYPE,
        "transport_api_version": "V3",
        "failure_mode_allow": False,
        "with_request_body": {
            "max_request_bytes": 8192,
            "allow_partial_message": True,
            "pack_as_bytes": pack_as_bytes,
        },
        "clear_route_cache": False,
        "grpc_service": {
            "envoy_grpc": {"cluster_name": EXT_AUTHZ_CLUSTER_NAME},
            "timeout": "2s",
            "initial_metadata": HEADERS,
        },
    }


def _http_expected(uri, path_prefix=""):
    return {
        "@type": EXT_AUTHZ_TYPE,
        "transport_api_version": "V3",
        "failure_mode_allow": False,
        "with_request_body": {
            "max_request_bytes": 8192,
            "allow_partial_message": True,
            "pack_as_bytes": False,
        },
        "clear_route_cache": False,
        "http_service": {
            "server_uri": {
                "uri": uri,
                "cluster": EXT_AUTHZ_CLUSTER_NAME,
                "timeout": "2s",
            },
            "path_prefix": path_prefix,
            "authorization_request": {"headers_to_add": HEADERS},
        },
    }


@pytest.mark.parametrize(
    ("settings", "expected"),
    [
        (
            ExtAuthzSettings(host="example.com:50051", protocol="grpc"),
            _grpc_expected(),
        ),
        (
            ExtAuthzSettings(host="example.com:50051", protocol="grpc", pack_as_bytes=True),
            _grpc_expected(pack_as_bytes=True),
        ),
        (
            ExtAuthzSettings(host="example.com:8080", protocol="http"),
            _http_expected("http://example.com:8080"),
        ),
        (
            ExtAuthzSettings(host="example.com:8080", protocol="http", path_prefix="/verify"),
            _http_expected("http://example.com:8080", "/verify"),
        ),
        (
            ExtAuthzSettings(host="example.com:8443", protocol="https"),
            _http_expected("https://example.com:8443"),
        ),
        (
            ExtAuthzSettings(host="example.com:8443", protocol="https", path_prefix="/verify"),
            _http_expected("https://example.com:8443", "/verify"),
        ),
    ],
)
def test_external_authz_filter(settings, expected):
    got = external_authz_filter(settings)
    assert got["name"] == HTTP_EXTERNAL_AUTHORIZATION
    assert got["typed_config"] == expected


def test_external_authz_filter_http_with_pack_as_bytes():
    settings = ExtAuthzSettings(host="example.com:8080", protocol="http", pack_as_bytes=True)
    with pytest.raises(ExtAuthzError, match="pack as bytes"):
        external_authz_filter(settings)


def test_load_without_host_is_disabled():
    assert load_external_authz({}) == ExternalAuthz(enabled=False)


def test_load_with_host_defaults_to_grpc():
    result = load_external_authz({"KOURIER_EXTAUTHZ_HOST": "authz.example.com:6000"})
    assert result.enabled is True
    socket = result.cluster["load_assignment"]["endpoints"][0]["lb_endpoints"][0][
        "endpoint"
    ]["address"]["socket_address"]
    assert socket["address"] == "authz.example.com"
    assert socket["port_value"] == 6000
    assert result.http_filter["typed_config"] == _grpc_expected()


def test_load_reads_all_variables():
    result = load_external_authz(
        {
            "KOURIER_EXTAUTHZ_HOST": "authz.example.com:8080",
            "KOURIER_EXTAUTHZ_PROTOCOL": "http",
            "KOURIER_EXTAUTHZ_FAILUREMODEALLOW": "true",
            "KOURIER_EXTAUTHZ_MAXREQUESTBYTES": "1024",
            "KOURIER_EXTAUTHZ_TIMEOUT": "500",
            "KOURIER_EXTAUTHZ_PATHPREFIX": "/check",
        }
    )
    config = result.http_filter["typed_config"]
    assert config["failure_mode_allow"] is True
    assert config["with_request_body"]["max_request_bytes"] == 1024
    assert config["http_service"]["server_uri"]["timeout"] == "0.500s"
    assert config["http_service"]["server_uri"]["uri"] == "http://authz.example.com:8080"
    assert config["http_service"]["path_prefix"] == "/check"


@pytest.mark.parametrize(
    "environ",
    [
        {"KOURIER_EXTAUTHZ_HOST": "authz.example.com:6000", "KOURIER_EXTAUTHZ_PROTOCOL": "ftp"},
        {"KOURIER_EXTAUTHZ_HOST": "authz.example.com"},
        {"KOURIER_EXTAUTHZ_HOST": "authz.example.com:abc"},
        {"KOURIER_EXTAUTHZ_HOST": "authz.example.com:70000"},
        {"KOURIER_EXTAUTHZ_HOST": "authz.example.com:6000", "KOURIER_EXTAUTHZ_PACKASBYTES": "maybe"},
        {
            "KOURIER_EXTAUTHZ_HOST": "authz.example.com:6000",
            "KOURIER_EXTAUTHZ_PROTOCOL": "https",
            "KOURIER_EXTAUTHZ_PACKASBYTES": "true",
        },
    ],
)
def test_load_rejects_invalid_settings(environ):
    with pytest.raises(ExtAuthzError):
        load_external_authz(environ)