"""Unit tests for the anomaly analyzer.

Tests cover:
- Burst-rate and source-diversity signal tiers and scores
- Risk level combination and label updates
- flagged_at stamping
- Alert creation under the cooldown, concurrent runs included
- Error swallowing on the analysis path
"""

import asyncio
from datetime import datetime, timedelta

import pytest
from sqlalchemy import select

from certflow.core.exceptions import TransientStoreError
from certflow.db.models import FraudAlert, RiskLevel, VerificationOutcome
from certflow.fraud import (
    AlertLifecycleManager,
    AnalyzerConfig,
    AnomalyAnalyzer,
    AnomalySignal,
    CredentialStore,
    EventLog,
    SignalKind,
    burst_rate_signal,
    source_diversity_signal,
)

CREDENTIAL_ID = "CF-2024-001"


async def attempt(
    event_log: EventLog,
    analyzer: AnomalyAnalyzer,
    at: datetime,
    source_address: str | None = "203.0.113.7",
    credential_id: str = CREDENTIAL_ID,
):
    """Record one verification attempt and analyze it, as the service does."""
    await event_log.record(
        credential_id, VerificationOutcome.VALID, source_address, timestamp=at
    )
    return await analyzer.analyze(credential_id, source_address, now=at)


async def alerts_for(session_factory, credential_id: str = CREDENTIAL_ID) -> list[FraudAlert]:
    async with session_factory() as session:
        result = await session.execute(
            select(FraudAlert)
            .where(FraudAlert.credential_id == credential_id)
            .order_by(FraudAlert.triggered_at)
        )
        return list(result.scalars().all())


# =============================================================================
# Signal Tests
# =============================================================================


class TestBurstRateSignal:
    """Tests for burst_rate_signal."""

    @pytest.mark.parametrize(
        ("count", "tier", "score"),
        [
            (0, RiskLevel.NONE, 0.0),
            (2, RiskLevel.NONE, 0.0),
            (3, RiskLevel.LOW, 25.0),
            (4, RiskLevel.LOW, 25.0),
            (5, RiskLevel.MEDIUM, 50.0),
            (7, RiskLevel.MEDIUM, 70.0),
            (14, RiskLevel.MEDIUM, 70.0),
            (15, RiskLevel.HIGH, 100.0),
            (16, RiskLevel.HIGH, 100.0),
        ],
    )
    def test_tiers(self, count: int, tier: RiskLevel, score: float):
        signal = burst_rate_signal(count, AnalyzerConfig())

        assert signal.kind == SignalKind.BURST_RATE
        assert signal.risk_tier == tier
        assert signal.score == score
        assert signal.event_count == count

    def test_custom_thresholds(self):
        config = AnalyzerConfig(burst_high_threshold=20)

        signal = burst_rate_signal(16, config)

        assert signal.risk_tier == RiskLevel.MEDIUM

    def test_alert_details(self):
        signal = burst_rate_signal(16, AnalyzerConfig())

        details = signal.alert_details()

        assert details["verification_count"] == 16
        assert details["time_window"] == "5 minutes"
        assert details["anomaly_score"] == 100.0
        assert details["description"] == "16 verifications in 5 minutes"


class TestSourceDiversitySignal:
    """Tests for source_diversity_signal."""

    def test_medium(self):
        signal = source_diversity_signal({"10.0.0.1", "10.0.0.2", "10.0.0.3"}, AnalyzerConfig())

        assert signal.risk_tier == RiskLevel.MEDIUM
        assert signal.score == 50.0

    def test_four_sources_score(self):
        sources = {f"10.0.0.{i}" for i in range(4)}

        signal = source_diversity_signal(sources, AnalyzerConfig())

        assert signal.risk_tier == RiskLevel.MEDIUM
        assert signal.score == 66.7

    def test_high(self):
        sources = {f"10.0.0.{i}" for i in range(6)}

        signal = source_diversity_signal(sources, AnalyzerConfig())

        assert signal.risk_tier == RiskLevel.HIGH
        assert signal.score == 100.0
        assert signal.sources == sorted(sources)

    def test_unknown_source_not_counted(self):
        signal = source_diversity_signal({"unknown", "10.0.0.1", "10.0.0.2"}, AnalyzerConfig())

        assert signal.risk_tier == RiskLevel.NONE
        assert signal.sources == ["10.0.0.1", "10.0.0.2"]

    def test_no_severity_without_risk(self):
        signal = AnomalySignal(kind=SignalKind.SOURCE_DIVERSITY)

        assert not signal.is_anomalous
        with pytest.raises(ValueError):
            _ = signal.severity


# =============================================================================
# Analyzer Tests
# =============================================================================


class TestAnomalyAnalyzer:
    """Tests for AnomalyAnalyzer.analyze."""

    async def test_first_verification_never_alerts(
        self, make_credential, event_log, analyzer, credential_store, session_factory, base_time
    ):
        await make_credential(CREDENTIAL_ID)

        result = await attempt(event_log, analyzer, base_time)

        assert result.risk_level == RiskLevel.NONE
        assert result.alert_ids == []
        assert len(result.signals) == 2
        assert await alerts_for(session_factory) == []

        credential = await credential_store.find_by_credential_id(CREDENTIAL_ID)
        assert credential.verification_count == 1
        assert credential.last_verified_at == base_time
        assert credential.last_source_address == "203.0.113.7"
        assert credential.flagged_at is None

    async def test_burst_of_sixteen_is_high(
        self, make_credential, event_log, analyzer, credential_store, session_factory, base_time
    ):
        await make_credential(CREDENTIAL_ID)

        result = None
        for i in range(16):
            result = await attempt(event_log, analyzer, base_time + timedelta(seconds=10 * i))

        burst = result.signals[0]
        assert burst.kind == SignalKind.BURST_RATE
        assert burst.risk_tier == RiskLevel.HIGH
        assert burst.event_count == 16
        assert result.risk_level == RiskLevel.HIGH

        credential = await credential_store.find_by_credential_id(CREDENTIAL_ID)
        assert credential.risk_level == RiskLevel.HIGH.value
        assert credential.verification_count == 16
        # Flagged by the third attempt, the first with any risk
        assert credential.flagged_at == base_time + timedelta(seconds=20)

        # Every later anomaly fell inside the cooldown of the first alert
        alerts = await alerts_for(session_factory)
        assert len(alerts) == 1
        assert alerts[0].alert_kind == "burst_rate"
        assert alerts[0].severity == "low"
        assert alerts[0].status == "pending"
        assert alerts[0].triggered_at == base_time + timedelta(seconds=20)

    async def test_twenty_attempts_from_six_addresses(
        self, make_credential, event_log, analyzer, credential_store, session_factory, base_time
    ):
        await make_credential(CREDENTIAL_ID)

        result = None
        for i in range(20):
            result = await attempt(
                event_log,
                analyzer,
                base_time + timedelta(seconds=10 * i),
                source_address=f"198.51.100.{i % 6 + 1}",
            )

        diversity = result.signals[1]
        assert diversity.kind == SignalKind.SOURCE_DIVERSITY
        assert diversity.risk_tier == RiskLevel.HIGH
        assert len(diversity.sources) == 6
        assert result.risk_level == RiskLevel.HIGH

        credential = await credential_store.find_by_credential_id(CREDENTIAL_ID)
        assert credential.risk_level == RiskLevel.HIGH.value

        alerts = await alerts_for(session_factory)
        diversity_alerts = [a for a in alerts if a.alert_kind == "source_diversity"]
        assert len(diversity_alerts) == 1
        assert diversity_alerts[0].status == "pending"
        assert diversity_alerts[0].details["unique_sources"] == [
            "198.51.100.1",
            "198.51.100.2",
            "198.51.100.3",
        ]
        # One alert per kind from the single run that cleared the cooldown
        assert sorted(a.alert_kind for a in alerts) == ["burst_rate", "source_diversity"]

    async def test_second_alert_after_cooldown(
        self, make_credential, event_log, analyzer, session_factory, base_time
    ):
        await make_credential(CREDENTIAL_ID)

        for i in range(3):
            await attempt(event_log, analyzer, base_time + timedelta(seconds=i))
        assert len(await alerts_for(session_factory)) == 1

        # Still inside the cooldown
        await attempt(event_log, analyzer, base_time + timedelta(minutes=4))
        assert len(await alerts_for(session_factory)) == 1

        # Three more attempts inside a fresh burst window, past the cooldown
        later = base_time + timedelta(minutes=12)
        result = None
        for i in range(3):
            result = await attempt(event_log, analyzer, later + timedelta(seconds=i))

        assert len(result.alert_ids) == 1
        assert len(await alerts_for(session_factory)) == 2

    async def test_quiet_traffic_keeps_the_label(
        self, make_credential, event_log, analyzer, credential_store, base_time
    ):
        await make_credential(CREDENTIAL_ID)
        for i in range(5):
            await attempt(event_log, analyzer, base_time + timedelta(seconds=i))

        result = await attempt(event_log, analyzer, base_time + timedelta(hours=3))

        assert result.risk_level == RiskLevel.NONE
        credential = await credential_store.find_by_credential_id(CREDENTIAL_ID)
        assert credential.risk_level == RiskLevel.MEDIUM.value

    async def test_label_follows_a_lower_level(
        self, make_credential, event_log, analyzer, credential_store, base_time
    ):
        await make_credential(CREDENTIAL_ID)
        for i in range(16):
            await attempt(event_log, analyzer, base_time + timedelta(seconds=10 * i))
        credential = await credential_store.find_by_credential_id(CREDENTIAL_ID)
        assert credential.risk_level == RiskLevel.HIGH.value

        later = base_time + timedelta(minutes=10)
        result = None
        for i in range(5):
            result = await attempt(event_log, analyzer, later + timedelta(seconds=i))

        assert result.risk_level == RiskLevel.MEDIUM
        credential = await credential_store.find_by_credential_id(CREDENTIAL_ID)
        assert credential.risk_level == RiskLevel.MEDIUM.value
        # First flag time survives the change
        assert credential.flagged_at == base_time + timedelta(seconds=20)

    async def test_concurrent_analyses_create_one_alert(
        self, make_credential, event_log, analyzer, session_factory, base_time
    ):
        await make_credential(CREDENTIAL_ID)
        for i in range(6):
            await event_log.record(
                CREDENTIAL_ID,
                VerificationOutcome.VALID,
                "203.0.113.7",
                timestamp=base_time - timedelta(seconds=i),
            )

        results = await asyncio.gather(
            *[analyzer.analyze(CREDENTIAL_ID, "203.0.113.7", now=base_time) for _ in range(6)]
        )

        assert all(r.risk_level == RiskLevel.MEDIUM for r in results)
        assert sum(len(r.alert_ids) for r in results) == 1
        alerts = await alerts_for(session_factory)
        assert [(a.alert_kind, a.status) for a in alerts] == [("burst_rate", "pending")]


    async def test_unknown_sources_ignored(
        self, make_credential, event_log, analyzer, base_time
    ):
        await make_credential(CREDENTIAL_ID)

        result = None
        for i in range(2):
            result = await attempt(
                event_log, analyzer, base_time + timedelta(seconds=i), source_address=None
            )

        assert result.signals[1].sources == []
        assert result.risk_level == RiskLevel.NONE

    async def test_missing_credential_is_nothing_to_analyze(
        self, event_log, analyzer, session_factory, base_time
    ):
        result = await attempt(event_log, analyzer, base_time, credential_id="CF-MISSING")

        assert result.risk_level == RiskLevel.NONE
        assert result.signals == []
        assert await alerts_for(session_factory, "CF-MISSING") == []

    async def test_store_errors_are_swallowed(
        self,
        make_credential,
        credential_store: CredentialStore,
        alert_manager: AlertLifecycleManager,
        base_time,
    ):
        class FailingEventLog:
            async def count_since(self, credential_id, since):
                raise TransientStoreError("database is locked", operation="count_since")

        await make_credential(CREDENTIAL_ID)
        analyzer = AnomalyAnalyzer(FailingEventLog(), credential_store, alert_manager)

        result = await analyzer.analyze(CREDENTIAL_ID, "203.0.113.7", now=base_time)

        assert result.risk_level == RiskLevel.NONE
        assert result.alert_ids == []

    async def test_result_to_dict(self, make_credential, event_log, analyzer, base_time):
        await make_credential(CREDENTIAL_ID)

        result = await attempt(event_log, analyzer, base_time)
        data = result.to_dict()

        assert data["credential_id"] == CREDENTIAL_ID
        assert data["risk_level"] == "none"
        assert [s["kind"] for s in data["signals"]] == ["burst_rate", "source_diversity"]
        assert data["analyzed_at"] == base_time.isoformat()
