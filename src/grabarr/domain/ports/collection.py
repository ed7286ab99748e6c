"""Port for the read-only view of the user's collection."""

from __future__ import annotations

from typing import Any, Protocol, runtime_checkable


@runtime_checkable
class CollectionStorePort(Protocol):
    """Answers "is this already owned?". The core never writes to it."""

    async def find_all_ids(self) -> set[int]:
        """External ids of every item in the collection."""
        ...

    async def find_by_external_id(self, external_id: int) -> Any | None:
        ...
