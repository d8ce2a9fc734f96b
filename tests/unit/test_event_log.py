"""Unit tests for the verification event log."""

from datetime import timedelta

from structlog.testing import capture_logs

from certflow.db.models import VerificationOutcome
from certflow.fraud import EventLog

CREDENTIAL_ID = "CF-2024-001"


class TestRecord:
    """Tests for EventLog.record."""

    async def test_record_defaults(self, event_log: EventLog, base_time):
        event = await event_log.record(
            CREDENTIAL_ID, VerificationOutcome.VALID, timestamp=base_time
        )

        assert event is not None
        assert event.event_id is not None
        assert event.outcome == "valid"
        assert event.source_address == "unknown"
        assert event.timestamp == base_time

    async def test_record_request_details(self, event_log: EventLog):
        event = await event_log.record(
            "CF-UNKNOWN",
            VerificationOutcome.INVALID,
            "203.0.113.7",
            user_agent="curl/8.5",
            requester_id="portal",
        )

        assert event.credential_id == "CF-UNKNOWN"
        assert event.outcome == "invalid"
        assert event.source_address == "203.0.113.7"
        assert event.user_agent == "curl/8.5"
        assert event.requester_id == "portal"

    async def test_failed_write_is_dropped(self, bare_session_factory, base_time):
        event_log = EventLog(bare_session_factory, max_attempts=2)

        with capture_logs() as logs:
            event = await event_log.record(
                CREDENTIAL_ID, VerificationOutcome.VALID, "203.0.113.7", timestamp=base_time
            )

        assert event is None
        dropped = [log for log in logs if log["event"] == "verification_event_dropped"]
        assert len(dropped) == 1
        assert dropped[0]["attempts"] == 2


class TestWindowReads:
    """Tests for windowed reads."""

    async def test_count_since(self, event_log: EventLog, base_time):
        for offset in (0, 60, 600):
            await event_log.record(
                CREDENTIAL_ID,
                VerificationOutcome.VALID,
                timestamp=base_time + timedelta(seconds=offset),
            )
        await event_log.record("CF-2024-002", VerificationOutcome.VALID, timestamp=base_time)

        assert await event_log.count_since(CREDENTIAL_ID, base_time) == 3
        assert await event_log.count_since(CREDENTIAL_ID, base_time + timedelta(seconds=60)) == 2
        assert await event_log.count_since(CREDENTIAL_ID, base_time + timedelta(hours=1)) == 0

    async def test_distinct_sources_since(self, event_log: EventLog, base_time):
        for i, address in enumerate(["10.0.0.1", "10.0.0.2", "10.0.0.1", None]):
            await event_log.record(
                CREDENTIAL_ID,
                VerificationOutcome.VALID,
                address,
                timestamp=base_time + timedelta(minutes=i),
            )

        sources = await event_log.distinct_sources_since(CREDENTIAL_ID, base_time)
        assert sources == {"10.0.0.1", "10.0.0.2", "unknown"}

        sources = await event_log.distinct_sources_since(
            CREDENTIAL_ID, base_time + timedelta(minutes=2)
        )
        assert sources == {"10.0.0.1", "unknown"}

    async def test_history_newest_first(self, event_log: EventLog, base_time):
        for i in range(5):
            await event_log.record(
                CREDENTIAL_ID,
                VerificationOutcome.VALID,
                f"10.0.0.{i}",
                timestamp=base_time + timedelta(minutes=i),
            )

        events, total = await event_log.history(CREDENTIAL_ID, limit=2, offset=1)

        assert total == 5
        assert [e.source_address for e in events] == ["10.0.0.3", "10.0.0.2"]
