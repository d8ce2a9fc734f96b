"""Unit tests for the credential, fraud alert and verification event repositories."""

from datetime import timedelta

import pytest

from certflow.db.models import (
    AlertSeverity,
    AlertStatus,
    FraudAlert,
    RiskLevel,
    VerificationEvent,
    VerificationOutcome,
)
from certflow.db.repositories import (
    AppendOnlyRepository,
    BaseRepository,
    CredentialRepository,
    FraudAlertRepository,
    VerificationEventRepository,
)


@pytest.fixture
async def catalog(make_credential, base_time):
    """Three credentials created a minute apart, oldest first."""
    await make_credential(
        "CF-2024-001",
        holder_name="Jane Doe",
        holder_email="jane.doe@example.com",
        created_at=base_time,
    )
    await make_credential(
        "CF-2024-002",
        holder_name="John Smith",
        holder_email="john.smith@example.org",
        created_at=base_time + timedelta(minutes=1),
    )
    await make_credential(
        "CF-2023-150",
        holder_name="Priya Raman",
        holder_email="priya_raman@example.net",
        created_at=base_time + timedelta(minutes=2),
    )


class TestCredentialRepository:
    """Tests for CredentialRepository."""

    async def test_record_verification_increments(self, session_factory, catalog, base_time):
        async with session_factory() as session:
            repo = CredentialRepository(session)
            for i in range(3):
                assert await repo.record_verification(
                    "CF-2024-001", f"10.0.0.{i}", base_time + timedelta(seconds=i)
                )

        async with session_factory() as session:
            credential = await CredentialRepository(session).get_by_credential_id("CF-2024-001")

        assert credential.verification_count == 3
        assert credential.last_source_address == "10.0.0.2"
        assert credential.last_verified_at == base_time + timedelta(seconds=2)

    async def test_record_verification_unknown(self, session_factory, base_time):
        async with session_factory() as session:
            updated = await CredentialRepository(session).record_verification(
                "CF-MISSING", "10.0.0.1", base_time
            )

        assert updated is False

    async def test_flagged_at_stamped_once(self, session_factory, catalog, base_time):
        later = base_time + timedelta(minutes=30)
        async with session_factory() as session:
            repo = CredentialRepository(session)
            await repo.apply_risk_level("CF-2024-001", RiskLevel.LOW, base_time)
            await repo.apply_risk_level("CF-2024-001", RiskLevel.HIGH, later)

        async with session_factory() as session:
            credential = await CredentialRepository(session).get_by_credential_id("CF-2024-001")

        assert credential.risk_level == "high"
        assert credential.flagged_at == base_time

    async def test_reset_keeps_flagged_at(self, session_factory, catalog, base_time):
        async with session_factory() as session:
            repo = CredentialRepository(session)
            await repo.apply_risk_level("CF-2024-001", RiskLevel.MEDIUM, base_time)
            await repo.reset_risk_level("CF-2024-001")

        async with session_factory() as session:
            credential = await CredentialRepository(session).get_by_credential_id("CF-2024-001")

        assert credential.risk_level == "none"
        assert credential.flagged_at == base_time

    async def test_candidates_matching(self, session_factory, catalog):
        async with session_factory() as session:
            repo = CredentialRepository(session)
            by_prefix = await repo.list_candidates_matching("CF-2024", "")
            by_name = await repo.list_candidates_matching("", "SMITH")
            by_email = await repo.list_candidates_matching("", "example.net")

        # Newest first
        assert [c.credential_id for c in by_prefix] == ["CF-2024-002", "CF-2024-001"]
        assert [c.credential_id for c in by_name] == ["CF-2024-002"]
        assert [c.credential_id for c in by_email] == ["CF-2023-150"]

    async def test_candidates_matching_escapes_wildcards(self, session_factory, catalog):
        async with session_factory() as session:
            repo = CredentialRepository(session)
            percent = await repo.list_candidates_matching("", "%")
            underscore = await repo.list_candidates_matching("", "_")

        assert percent == []
        assert [c.credential_id for c in underscore] == ["CF-2023-150"]

    async def test_broad_candidates_and_ids(self, session_factory, catalog):
        async with session_factory() as session:
            repo = CredentialRepository(session)
            candidates = await repo.list_candidates(limit=2)
            ids = await repo.list_credential_ids()

        assert [c.credential_id for c in candidates] == ["CF-2023-150", "CF-2024-002"]
        assert ids == ["CF-2023-150", "CF-2024-002", "CF-2024-001"]

    async def test_flagged_listing(self, session_factory, catalog, base_time):
        async with session_factory() as session:
            repo = CredentialRepository(session)
            await repo.apply_risk_level("CF-2024-001", RiskLevel.LOW, base_time)
            await repo.apply_risk_level(
                "CF-2024-002", RiskLevel.HIGH, base_time + timedelta(minutes=5)
            )

            flagged = await repo.list_flagged()
            count = await repo.count_flagged()
            high_risk = await repo.count_by_risk_levels([RiskLevel.MEDIUM, RiskLevel.HIGH])

        assert [c.credential_id for c in flagged] == ["CF-2024-002", "CF-2024-001"]
        assert count == 2
        assert high_risk == 1

    async def test_get_many(self, session_factory, catalog):
        async with session_factory() as session:
            repo = CredentialRepository(session)
            found = await repo.get_many_by_credential_ids(["CF-2024-001", "CF-MISSING"])
            empty = await repo.get_many_by_credential_ids([])

        assert list(found) == ["CF-2024-001"]
        assert empty == {}

    async def test_alert_slot_claimed_once_per_cooldown(self, session_factory, catalog, base_time):
        cooldown = timedelta(minutes=5)
        claims = []
        for at in (base_time, base_time + timedelta(minutes=1), base_time + timedelta(minutes=6)):
            async with session_factory() as session:
                claims.append(
                    await CredentialRepository(session).claim_alert_slot(
                        "CF-2024-001", at, at - cooldown
                    )
                )
                await session.commit()

        assert claims == [True, False, True]

    async def test_alert_slot_blocked_by_recent_alert(self, session_factory, catalog, base_time):
        async with session_factory() as session:
            await FraudAlertRepository(session).create(
                FraudAlert(
                    credential_id="CF-2024-002",
                    alert_kind="burst_rate",
                    severity=AlertSeverity.HIGH.value,
                    status=AlertStatus.PENDING.value,
                    details={},
                    triggered_at=base_time,
                )
            )
            repo = CredentialRepository(session)
            blocked = await repo.claim_alert_slot(
                "CF-2024-002", base_time + timedelta(minutes=2), base_time - timedelta(minutes=3)
            )
            unknown = await repo.claim_alert_slot("CF-MISSING", base_time, base_time)

        assert blocked is False
        assert unknown is False


class TestFraudAlertRepository:
    """Tests for FraudAlertRepository."""

    @pytest.fixture
    async def alerts(self, session_factory, base_time):
        specs = [
            ("CF-2024-001", AlertSeverity.LOW, AlertStatus.PENDING, 0),
            ("CF-2024-001", AlertSeverity.HIGH, AlertStatus.PENDING, 10),
            ("CF-2024-002", AlertSeverity.MEDIUM, AlertStatus.CONFIRMED, 20),
            ("CF-2024-002", AlertSeverity.HIGH, AlertStatus.DISMISSED, 30),
            ("CF-2023-150", AlertSeverity.MEDIUM, AlertStatus.PENDING, 40),
        ]
        async with session_factory() as session:
            repo = FraudAlertRepository(session)
            for credential_id, severity, status, minutes in specs:
                await repo.create(
                    FraudAlert(
                        credential_id=credential_id,
                        alert_kind="burst_rate",
                        severity=severity.value,
                        status=status.value,
                        details={},
                        triggered_at=base_time + timedelta(minutes=minutes),
                    )
                )

    async def test_exists_since(self, session_factory, alerts, base_time):
        async with session_factory() as session:
            repo = FraudAlertRepository(session)
            assert await repo.exists_since("CF-2024-001", base_time + timedelta(minutes=10))
            assert not await repo.exists_since("CF-2024-001", base_time + timedelta(minutes=11))

    async def test_count_pending(self, session_factory, alerts):
        async with session_factory() as session:
            repo = FraudAlertRepository(session)
            assert await repo.count_pending("CF-2024-001") == 2
            assert await repo.count_pending("CF-2024-002") == 0

    async def test_list_filtered_newest_first(self, session_factory, alerts):
        async with session_factory() as session:
            repo = FraudAlertRepository(session)
            pending = await repo.list_filtered(status="pending")
            high = await repo.list_filtered(severity="high")
            page = await repo.list_filtered(limit=2, offset=1)
            total = await repo.count_filtered(status="pending", severity="medium")

        assert [a.credential_id for a in pending] == ["CF-2023-150", "CF-2024-001", "CF-2024-001"]
        assert [a.status for a in high] == ["dismissed", "pending"]
        assert [a.severity for a in page] == ["high", "medium"]
        assert total == 1

    async def test_status_counters(self, session_factory, alerts):
        async with session_factory() as session:
            repo = FraudAlertRepository(session)
            by_status = await repo.count_by_status()
            pending_high = await repo.count_pending_high()

        assert by_status == {"pending": 3, "confirmed": 1, "dismissed": 1}
        assert pending_high == 1

    async def test_recent_pending_by_severity(self, session_factory, alerts):
        async with session_factory() as session:
            recent = await FraudAlertRepository(session).recent_pending(limit=10)

        assert [a.severity for a in recent] == ["high", "medium", "low"]


class TestVerificationEventRepository:
    """Tests for VerificationEventRepository."""

    @pytest.fixture
    async def traffic(self, session_factory, base_time):
        """Events over the last day, plus one from last week."""
        specs = [
            ("CF-2024-001", VerificationOutcome.VALID, "203.0.113.7", 1),
            ("CF-2024-001", VerificationOutcome.VALID, "203.0.113.7", 2),
            ("CF-2024-001", VerificationOutcome.VALID, "198.51.100.5", 3),
            ("CF-2024-002", VerificationOutcome.VALID, "203.0.113.7", 4),
            ("CF-2024-002", VerificationOutcome.REVOKED, "unknown", 5),
            ("CF-MISSING", VerificationOutcome.INVALID, "203.0.113.7", 6),
            ("CF-2024-002", VerificationOutcome.VALID, "198.51.100.5", 60 * 24 * 7),
        ]
        async with session_factory() as session:
            repo = VerificationEventRepository(session)
            for credential_id, outcome, source, minutes_ago in specs:
                await repo.append(
                    VerificationEvent(
                        credential_id=credential_id,
                        outcome=outcome.value,
                        source_address=source,
                        timestamp=base_time - timedelta(minutes=minutes_ago),
                    )
                )

    async def test_has_no_update(self):
        assert issubclass(VerificationEventRepository, AppendOnlyRepository)
        assert not issubclass(VerificationEventRepository, BaseRepository)
        assert not hasattr(VerificationEventRepository, "update")
        assert hasattr(FraudAlertRepository, "update")

    async def test_most_verified_counts_valid_only(self, session_factory, traffic, base_time):
        async with session_factory() as session:
            rows = await VerificationEventRepository(session).most_verified_since(
                base_time - timedelta(days=1)
            )

        assert [(r.credential_id, r.verification_count) for r in rows] == [
            ("CF-2024-001", 3),
            ("CF-2024-002", 1),
        ]
        assert rows[0].last_verified_at == base_time - timedelta(minutes=1)

    async def test_busiest_sources(self, session_factory, traffic, base_time):
        async with session_factory() as session:
            rows = await VerificationEventRepository(session).busiest_sources_since(
                base_time - timedelta(days=1), min_requests=2
            )

        # unknown is never ranked
        assert [tuple(r) for r in rows] == [("203.0.113.7", 4, 3)]

    async def test_outcome_counts(self, session_factory, traffic, base_time):
        async with session_factory() as session:
            counts = await VerificationEventRepository(session).outcome_counts_since(
                base_time - timedelta(days=1)
            )

        assert counts == {"valid": 4, "revoked": 1, "invalid": 1}
