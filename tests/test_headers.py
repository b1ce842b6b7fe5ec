import pytest

from kourier.envoy.headers import headers_to_add


@pytest.mark.parametrize("headers", [None, {}])
def test_headers_to_add_empty(headers):
    assert headers_to_add(headers) == []


def test_headers_to_add_some():
    got = headers_to_add({"foo": "bar", "baz": "lol"})
    expected = [
        {
            "header": {"key": "foo", "value": "bar"},
            "append_action": "OVERWRITE_IF_EXISTS_OR_ADD",
        },
        {
            "header": {"key": "baz", "value": "lol"},
            "append_action": "OVERWRITE_IF_EXISTS_OR_ADD",
        },
    ]

    def key(option):
        return option["header"]["key"]

    assert sorted(got, key=key) == sorted(expected, key=key)