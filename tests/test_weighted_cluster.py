from kourier.envoy.weighted_cluster import new_weighted_cluster


def test_new_weighted_cluster():
    got = new_weighted_cluster("test", 50, {"foo": "bar"})
    assert got == {
        "name": "test",
        "weight": 50,
        "request_headers_to_add": [
            {
                "header": {"key": "foo", "value": "bar"},
                "append_action": "OVERWRITE_IF_EXISTS_OR_ADD",
            }
        ],
    }


def test_new_weighted_cluster_without_headers():
    got = new_weighted_cluster("other", 100, None)
    assert got == {"name": "other", "weight": 100, "request_headers_to_add": []}