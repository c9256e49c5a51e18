"""Tests for the audit event log."""

import pytest
from datetime import datetime, timezone

from phlopchain.audit.event_log import EventKind, EventLog, EventRecord
from phlopchain.crypto.merkle import CommitmentTree


def _event(event_id: str, kind: EventKind = EventKind.BLOCK_SEALED) -> EventRecord:
    return EventRecord.create(
        event_id=event_id,
        event_kind=kind,
        actor_id="miner",
        payload={"block_index": 1},
        timestamp_utc=datetime(2026, 1, 1, tzinfo=timezone.utc),
    )


class TestEventRecord:
    def test_hash_is_deterministic(self) -> None:
        assert _event("EVT-1").event_hash == _event("EVT-1").event_hash

    def test_hash_covers_id(self) -> None:
        assert _event("EVT-1").event_hash != _event("EVT-2").event_hash

    def test_timestamp_format(self) -> None:
        assert _event("EVT-1").timestamp_utc == "2026-01-01T00:00:00Z"


class TestEventLog:
    def test_append_and_filter(self) -> None:
        log = EventLog()
        log.append(_event("EVT-1"))
        log.append(_event("EVT-2", EventKind.TRANSACTION_ACCEPTED))
        assert log.count == 2
        assert len(log.events(EventKind.BLOCK_SEALED)) == 1
        assert log.last_event.event_id == "EVT-2"

    def test_duplicate_id_rejected(self) -> None:
        log = EventLog()
        log.append(_event("EVT-1"))
        with pytest.raises(ValueError, match="Duplicate"):
            log.append(_event("EVT-1"))

    def test_empty_log_has_no_root(self) -> None:
        assert EventLog().commitment_root() is None
        assert EventLog().last_event is None

    def test_commitment_root_over_append_order(self) -> None:
        log = EventLog()
        events = [_event(f"EVT-{i}") for i in range(3)]
        for event in events:
            log.append(event)
        expected = CommitmentTree.from_leaves(e.event_hash for e in events).get_root()
        assert log.commitment_root() == expected
