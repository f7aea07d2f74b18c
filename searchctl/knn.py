"""Controller for the k-NN plugin: statistics and index warmup."""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Protocol


@dataclass(frozen=True)
class Shards:
    """Shard counts reported by a warmup request."""

    total: int = 0
    successful: int = 0
    failed: int = 0


class KnnGateway(Protocol):
    def get_statistics(self, nodes: str, names: str) -> bytes: ...

    def warmup_indices(self, indices: str) -> bytes: ...


class KnnController:
    """Runs k-NN plugin operations through a gateway."""

    def __init__(self, gateway: KnnGateway) -> None:
        self.gateway = gateway

    def get_statistics(self, nodes: str, names: str) -> bytes:
        """Return the raw statistics for the given nodes and stat names."""
        return self.gateway.get_statistics(nodes, names)

    def warmup_indices(self, indices: list[str]) -> Shards:
        """Load the graphs of every shard of the given indices into memory."""
        response = json.loads(self.gateway.warmup_indices(",".join(indices)))
        if not isinstance(response, dict):
            raise ValueError("unexpected warmup response")
        shards = response.get("_shards") or {}
        return Shards(
            total=shards.get("total", 0),
            successful=shards.get("successful", 0),
            failed=shards.get("failed", 0),
        )