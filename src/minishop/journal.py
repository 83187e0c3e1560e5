"""Write-ahead journal for multi-collection order commits."""

import logging

from . import config
from .models import CommitEntry
from .store import CollectionStore

logger = logging.getLogger(__name__)


class CommitJournal:
    """
    Pending order commits, keyed by order ID.

    An entry is recorded before the first write of a commit and cleared after
    the last one. Entries left behind mark commits that were interrupted.
    """

    slot = config.JOURNAL_SLOT

    def __init__(self, store: CollectionStore):
        self.store = store

    def pending(self) -> list[CommitEntry]:
        entries = []
        for record in self.store.load(self.slot):
            try:
                entries.append(CommitEntry.from_dict(record))
            except (KeyError, TypeError, ValueError) as e:
                logger.warning("Skipping malformed journal entry %r: %s", record, e)
        return entries

    def record(self, entry: CommitEntry) -> None:
        with self.store.lock(self.slot):
            entries = [e for e in self.pending() if e.order.order_id != entry.order.order_id]
            entries.append(entry)
            self.store.save(self.slot, [e.to_dict() for e in entries])
        logger.debug("Journaled commit of order %d", entry.order.order_id)

    def clear(self, order_id: int) -> None:
        with self.store.lock(self.slot):
            entries = self.pending()
            remaining = [e for e in entries if e.order.order_id != order_id]
            if len(remaining) != len(entries):
                self.store.save(self.slot, [e.to_dict() for e in remaining])
