import json

import pytest

from searchctl.platform import PlatformController


class FakeGateway:
    def __init__(self, response=None, error=None):
        self.response = response
        self.error = error
        self.calls = []

    def search_distinct_values(self, index, field):
        self.calls.append((index, field))
        if self.error:
            raise self.error
        return self.response


SEARCH_RESULT = json.dumps(
    {
        "took": 1,
        "timed_out": False,
        "hits": {"total": {"value": 3}, "hits": []},
        "aggregations": {
            "items": {
                "doc_count_error_upper_bound": 0,
                "sum_other_doc_count": 0,
                "buckets": [
                    {"key": "Packaged Foods", "doc_count": 5},
                    {"key": "Dairy", "doc_count": 3},
                    {"key": "Meat and Seafood", "doc_count": 1},
                ],
            }
        },
    }
).encode()


def test_empty_index_name():
    gateway = FakeGateway()
    with pytest.raises(ValueError, match="index and field cannot be empty"):
        PlatformController(gateway).get_distinct_values("", "f1")
    assert gateway.calls == []


def test_empty_field_name():
    with pytest.raises(ValueError, match="index and field cannot be empty"):
        PlatformController(FakeGateway()).get_distinct_values("example", "")


def test_gateway_failed():
    gateway = FakeGateway(error=ConnectionError("search failed"))
    with pytest.raises(ConnectionError, match="search failed"):
        PlatformController(gateway).get_distinct_values("example", "f1")


def test_gateway_response_failed():
    gateway = FakeGateway(response=b"No response")
    with pytest.raises(ValueError):
        PlatformController(gateway).get_distinct_values("example", "f1")


def test_get_distinct_success():
    gateway = FakeGateway(response=SEARCH_RESULT)
    result = PlatformController(gateway).get_distinct_values("example", "f1")
    assert result == ["Packaged Foods", "Dairy", "Meat and Seafood"]
    assert gateway.calls == [("example", "f1")]


def test_no_buckets_gives_empty_list():
    gateway = FakeGateway(response=b"{}")
    assert PlatformController(gateway).get_distinct_values("example", "f1") == []