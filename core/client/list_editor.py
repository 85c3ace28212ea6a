# core/client/list_editor.py
import logging
from dataclasses import dataclass, field
from typing import Callable, List, Optional

from core.errors import ShelfError, ValidationError

logger = logging.getLogger(__name__)


@dataclass
class ListSnapshot:
    """What the client believes a reading list looks like"""
    list_id: int
    version: int
    book_ids: List[int] = field(default_factory=list)


Fetcher = Callable[[int], ListSnapshot]
# (list_id, ordered book ids, expected version) -> authoritative snapshot
ReorderSubmitter = Callable[[int, List[int], int], ListSnapshot]
EntrySubmitter = Callable[[int, int, int], ListSnapshot]


class ReadingListEditor:
    """Edits a reading list optimistically.

    A change is applied to the local copy first, then sent to the server with
    the version it was based on. When the server rejects it, the local copy is
    thrown away and the list is fetched again; the previous snapshot is never
    restored because it may itself be out of date.
    """

    def __init__(self, list_id: int, fetch: Fetcher,
                 submit_reorder: ReorderSubmitter,
                 submit_add: Optional[EntrySubmitter] = None,
                 submit_remove: Optional[EntrySubmitter] = None):
        self.list_id = list_id
        self.fetch = fetch
        self.submit_reorder = submit_reorder
        self.submit_add = submit_add
        self.submit_remove = submit_remove
        self.snapshot: Optional[ListSnapshot] = None
        self.last_error: Optional[ShelfError] = None

    @property
    def book_ids(self) -> List[int]:
        return list(self.snapshot.book_ids) if self.snapshot else []

    @property
    def version(self) -> Optional[int]:
        return self.snapshot.version if self.snapshot else None

    def load(self) -> ListSnapshot:
        self.snapshot = self.fetch(self.list_id)
        return self.snapshot

    def reorder(self, ordered_book_ids: List[int]) -> bool:
        """Apply a complete new ordering. Returns True if the server accepted it"""
        current = self._require_loaded()
        if sorted(ordered_book_ids) != sorted(current.book_ids):
            raise ValidationError("Reorder must contain exactly the books already in the list")
        base_version = current.version
        self.snapshot = ListSnapshot(self.list_id, base_version, list(ordered_book_ids))
        return self._send(lambda: self.submit_reorder(self.list_id, list(ordered_book_ids), base_version))

    def add(self, book_id: int) -> bool:
        current = self._require_loaded()
        if self.submit_add is None:
            raise ValidationError("Adding entries is not supported by this editor")
        base_version = current.version
        self.snapshot = ListSnapshot(self.list_id, base_version, current.book_ids + [book_id])
        return self._send(lambda: self.submit_add(self.list_id, book_id, base_version))

    def remove(self, book_id: int) -> bool:
        current = self._require_loaded()
        if self.submit_remove is None:
            raise ValidationError("Removing entries is not supported by this editor")
        base_version = current.version
        self.snapshot = ListSnapshot(
            self.list_id, base_version, [b for b in current.book_ids if b != book_id]
        )
        return self._send(lambda: self.submit_remove(self.list_id, book_id, base_version))

    def _require_loaded(self) -> ListSnapshot:
        if self.snapshot is None:
            return self.load()
        return self.snapshot

    def _send(self, call: Callable[[], ListSnapshot]) -> bool:
        try:
            self.snapshot = call()
            self.last_error = None
            return True
        except ShelfError as e:
            logger.warning(f"Change to reading list {self.list_id} rejected ({e.category}): {e.message}")
            self.last_error = e
            self.snapshot = None
            self.load()
            return False
