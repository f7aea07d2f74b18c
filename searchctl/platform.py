"""Controller for general cluster queries."""

from __future__ import annotations

import json
from typing import Any, Protocol


class PlatformGateway(Protocol):
    def search_distinct_values(self, index: str, field: str) -> bytes: ...


class PlatformController:
    """Runs cluster-level queries through a gateway."""

    def __init__(self, gateway: PlatformGateway) -> None:
        self.gateway = gateway

    def get_distinct_values(self, index: str, field: str) -> list[Any]:
        """Return the unique values of a field in an index."""
        if not index or not field:
            raise ValueError("index and field cannot be empty")
        response = json.loads(self.gateway.search_distinct_values(index, field))
        if not isinstance(response, dict):
            raise ValueError("unexpected search response")
        aggregations = response.get("aggregations") or {}
        items = aggregations.get("items") or {}
        return [bucket.get("key") for bucket in items.get("buckets") or []]