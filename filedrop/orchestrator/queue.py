"""Staged item queue keyed by stable item id."""
from typing import Dict, Iterator, List, Optional

from ..models import ItemStatus, StagedItem


class UploadQueue:
    """
    Insertion-ordered collection of staged items.

    Items are addressed by their id, never by position, so a completion
    for one item cannot land on another item's slot when the list changes
    underneath a running batch.
    """

    def __init__(self, items: Optional[List[StagedItem]] = None):
        self._items: Dict[str, StagedItem] = {}
        for item in items or []:
            self.add(item)

    def add(self, item: StagedItem) -> StagedItem:
        if item.id in self._items:
            raise ValueError(f"Item already queued: {item.id}")
        self._items[item.id] = item
        return item

    def get(self, item_id: str) -> Optional[StagedItem]:
        return self._items.get(item_id)

    def remove(self, item_id: str) -> Optional[StagedItem]:
        return self._items.pop(item_id, None)

    def clear(self) -> List[StagedItem]:
        removed = list(self._items.values())
        self._items.clear()
        return removed

    def eligible(self) -> List[StagedItem]:
        """Items in PENDING or FAILED state, in queue order."""
        return [item for item in self._items.values() if item.is_eligible]

    def with_status(self, status: ItemStatus) -> List[StagedItem]:
        return [item for item in self._items.values() if item.status is status]

    def prune_uploaded(self) -> List[StagedItem]:
        """Remove every UPLOADED item and return the removed items."""
        removed = self.with_status(ItemStatus.UPLOADED)
        for item in removed:
            del self._items[item.id]
        return removed

    @property
    def items(self) -> List[StagedItem]:
        return list(self._items.values())

    def __contains__(self, item_id: object) -> bool:
        return item_id in self._items

    def __iter__(self) -> Iterator[StagedItem]:
        return iter(list(self._items.values()))

    def __len__(self) -> int:
        return len(self._items)
