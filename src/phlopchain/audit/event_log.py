"""Append-only audit log of chain operations.

Every accepted transfer, sealed block and failed sealing attempt made
through the service produces an event. Events are immutable once written
and each carries the SHA-256 digest of its canonical JSON, so the log can
be committed to with a single commitment root.

Storage is in-memory only.
"""

from __future__ import annotations

import enum
import json
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Optional

from phlopchain.crypto.digest import Digest
from phlopchain.crypto.merkle import build_commitment


class EventKind(str, enum.Enum):
    """Classification of chain events."""
    TRANSACTION_ACCEPTED = "transaction_accepted"
    TRANSACTION_REJECTED = "transaction_rejected"
    BLOCK_SEALED = "block_sealed"
    MINING_FAILED = "mining_failed"


@dataclass(frozen=True)
class EventRecord:
    """A single immutable event.

    event_hash is computed at creation time and serves as the leaf for
    the log's commitment tree.
    """
    event_id: str
    event_kind: EventKind
    timestamp_utc: str
    actor_id: str
    payload: dict[str, Any]
    event_hash: Digest

    @staticmethod
    def create(
        event_id: str,
        event_kind: EventKind,
        actor_id: str,
        payload: dict[str, Any],
        timestamp_utc: Optional[datetime] = None,
    ) -> EventRecord:
        """Create a new event record with computed hash."""
        ts = timestamp_utc or datetime.now(timezone.utc)
        ts_str = ts.strftime("%Y-%m-%dT%H:%M:%SZ")

        canonical = json.dumps(
            {
                "event_id": event_id,
                "event_kind": event_kind.value,
                "timestamp_utc": ts_str,
                "actor_id": actor_id,
                "payload": payload,
            },
            sort_keys=True,
            ensure_ascii=False,
        ).encode("utf-8")

        return EventRecord(
            event_id=event_id,
            event_kind=event_kind,
            timestamp_utc=ts_str,
            actor_id=actor_id,
            payload=payload,
            event_hash=Digest.hash_bytes(canonical),
        )


class EventLog:
    """Append-only in-memory event log.

    Events can only be appended, never modified or deleted.
    """

    def __init__(self) -> None:
        self._events: list[EventRecord] = []
        self._event_ids: set[str] = set()

    def append(self, event: EventRecord) -> None:
        """Append an event to the log.

        Raises ValueError if event_id is a duplicate (replay protection).
        """
        if event.event_id in self._event_ids:
            raise ValueError(f"Duplicate event ID: {event.event_id}")
        self._events.append(event)
        self._event_ids.add(event.event_id)

    def events(self, kind: Optional[EventKind] = None) -> list[EventRecord]:
        """Return events, optionally filtered by kind."""
        if kind is None:
            return list(self._events)
        return [e for e in self._events if e.event_kind == kind]

    def event_hashes(self, kind: Optional[EventKind] = None) -> list[Digest]:
        return [e.event_hash for e in self.events(kind)]

    def commitment_root(self) -> Optional[Digest]:
        """Root over all event hashes in append order; None when empty."""
        return build_commitment(self.event_hashes())

    @property
    def count(self) -> int:
        return len(self._events)

    @property
    def last_event(self) -> Optional[EventRecord]:
        return self._events[-1] if self._events else None
