from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from pathlib import Path

from usermodel.events import SITE_VISITED, LoggingEventSink
from usermodel.store import EventLogger, EventRecord, StateStore
from usermodel.types import AdHistoryRecord, ContextFlag, UserModelState


def test_save_and_load_roundtrip(tmp_path: Path) -> None:
    store = StateStore(tmp_path / "state")
    when = datetime(2024, 1, 2, 3, 4, tzinfo=timezone.utc)
    state = UserModelState(
        ads_enabled=True,
        ad_uuid="id",
        ad_frequency=5.0,
        page_score_history=((1.0, 2.0),),
        ad_history=AdHistoryRecord(
            last_ad_time=when, last_ad_id="a1", last_ad_category="finance"
        ),
        shopping=ContextFlag(
            active=True, source_url="https://amazon.com", score=1.0, timestamp=when
        ),
    )

    path = store.save(state)

    assert path == tmp_path / "state" / "data" / "state.pkl"
    assert store.load() == state


def test_load_missing_returns_fresh_state(tmp_path: Path) -> None:
    assert StateStore(tmp_path).load() == UserModelState()


def test_corrupt_state_is_quarantined(tmp_path: Path) -> None:
    store = StateStore(tmp_path / "state")
    path = store.save(UserModelState(ads_enabled=True))
    path.write_text("not pickle", encoding="utf-8")

    assert store.load() == UserModelState()
    assert not path.exists()
    assert len(list(path.parent.glob("state.pkl.corrupt*"))) == 1


def test_event_record_serialises_payload() -> None:
    record = EventRecord(
        tag=SITE_VISITED,
        payload={"url": "https://example.org", "immediateWinner": ("finance", "investing")},
        timestamp=datetime(2024, 1, 1, tzinfo=timezone.utc),
    )

    data = json.loads(record.to_json())

    assert data["event"] == "Site visited"
    assert data["timestamp"] == "2024-01-01T00:00:00+00:00"
    assert data["payload"]["immediateWinner"] == ["finance", "investing"]


def test_event_logger_rotates(tmp_path: Path) -> None:
    logger = EventLogger(tmp_path / "events.log", max_bytes=50, backups=2)
    record = EventRecord(tag="Ad shown", payload={"category": "finance"})

    for _ in range(6):
        logger.append(record)

    assert (tmp_path / "events.log.1").exists()
    assert not (tmp_path / "events.log.3").exists()


def test_logging_event_sink_writes_log_and_file(tmp_path: Path, caplog) -> None:
    event_logger = EventLogger(tmp_path / "events.log")
    sink = LoggingEventSink(event_logger)

    with caplog.at_level(logging.INFO, logger="usermodel.events"):
        sink.log("Ad throttled", {"reason": "rate_limited"})
        sink.log("No ad catalog")

    assert [record.getMessage() for record in caplog.records] == ["Ad throttled", "No ad catalog"]
    assert caplog.records[0].event_payload == {"reason": "rate_limited"}
    lines = event_logger.path.read_text(encoding="utf-8").splitlines()
    assert [json.loads(line)["event"] for line in lines] == ["Ad throttled", "No ad catalog"]
