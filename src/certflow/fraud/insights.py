"""Verification insights for the review dashboard.

Aggregates the verification event log across all credentials:
1. Most verified credentials over the popularity window
2. Source addresses with heavy traffic over the activity window
3. Last-hour spikes against the window's hourly average
4. Surges of lookups for unknown credential ids

Each finding becomes an Insight; the report keeps the most urgent ones.
"""

from collections.abc import Sequence
from datetime import datetime, timedelta

from sqlalchemy import Row
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from certflow.config.settings import InsightsConfig
from certflow.core.logging import get_logger
from certflow.db.models import Credential, VerificationOutcome, utc_now
from certflow.db.repositories import CredentialRepository, VerificationEventRepository

from .store import store_session
from .types import Insight, InsightKind, InsightPriority, InsightsReport

logger = get_logger(__name__)


class VerificationInsightsService:
    """Builds insights reports from the verification event log.

    Example:
        insights = VerificationInsightsService(session_factory)
        report = await insights.generate()
        for insight in report.insights:
            print(insight.priority.value, insight.message)
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        config: InsightsConfig | None = None,
    ):
        self.config = config or InsightsConfig()
        self._session_factory = session_factory

    async def generate(self, now: datetime | None = None) -> InsightsReport:
        """Build an insights report.

        Args:
            now: Report time (defaults to the current UTC time)

        Raises:
            TransientStoreError: If the event log cannot be read
        """
        now = now or utc_now()
        config = self.config
        activity_since = now - timedelta(hours=config.activity_window_hours)

        async with store_session(self._session_factory, "verification_insights") as session:
            events = VerificationEventRepository(session)
            popular = await events.most_verified_since(
                now - timedelta(days=config.popularity_window_days),
                limit=config.popularity_limit,
            )
            sources = await events.busiest_sources_since(
                activity_since,
                min_requests=config.source_min_requests,
                limit=config.source_limit,
            )
            outcomes = await events.outcome_counts_since(activity_since)
            recent = await events.outcome_counts_since(now - timedelta(hours=1))
            credentials = await CredentialRepository(session).get_many_by_credential_ids(
                [row.credential_id for row in popular]
            )

        insights = [
            *self._unusual_sources(sources),
            *self._activity_spike(sum(recent.values()), sum(outcomes.values())),
            *self._invalid_attempts(outcomes.get(VerificationOutcome.INVALID.value, 0)),
            *self._popularity(popular, credentials),
        ]
        insights.sort(key=lambda insight: insight.priority.rank)

        logger.info(
            "verification_insights_generated",
            total_generated=len(insights),
            kinds=[insight.kind.value for insight in insights],
        )
        return InsightsReport(
            insights=insights[: config.max_insights],
            total_generated=len(insights),
            generated_at=now,
        )

    def _unusual_sources(self, sources: Sequence[Row]) -> list[Insight]:
        return [
            Insight(
                kind=InsightKind.UNUSUAL_SOURCE,
                priority=InsightPriority.WARNING,
                title="Unusual Verification Pattern",
                message=(
                    f"{row.source_address} made {row.request_count} verification requests "
                    f"for {row.credential_count} certificates"
                ),
                data={
                    "source_address": row.source_address,
                    "request_count": row.request_count,
                    "unique_credentials": row.credential_count,
                },
            )
            for row in sources
        ]

    def _activity_spike(self, last_hour: int, window_total: int) -> list[Insight]:
        hourly_average = window_total / self.config.activity_window_hours
        if last_hour < self.config.spike_min_count:
            return []
        if last_hour <= hourly_average * self.config.spike_factor:
            return []

        increase = round((last_hour / hourly_average - 1) * 100)
        return [
            Insight(
                kind=InsightKind.ACTIVITY_SPIKE,
                priority=InsightPriority.WARNING,
                title="Verification Spike Detected",
                message=f"{last_hour} verifications in the last hour ({increase}% above average)",
                data={
                    "recent_count": last_hour,
                    "average_hourly": round(hourly_average),
                    "percent_increase": increase,
                },
            )
        ]

    def _invalid_attempts(self, invalid: int) -> list[Insight]:
        if invalid < self.config.invalid_min_count:
            return []
        return [
            Insight(
                kind=InsightKind.INVALID_ATTEMPTS,
                priority=InsightPriority.WARNING,
                title="Invalid Verification Attempts",
                message=(
                    f"{invalid} attempts to verify non-existent certificates in the last "
                    f"{self.config.activity_window_hours} hours"
                ),
                data={"count": invalid},
            )
        ]

    def _popularity(
        self, popular: Sequence[Row], credentials: dict[str, Credential]
    ) -> list[Insight]:
        insights: list[Insight] = []
        if not popular:
            return insights

        top = popular[0]
        credential = credentials.get(top.credential_id)
        enough = top.verification_count >= self.config.most_verified_min_count
        if credential is not None and enough:
            insights.append(
                Insight(
                    kind=InsightKind.MOST_VERIFIED,
                    priority=InsightPriority.INFO,
                    title="Most Verified Certificate",
                    message=(
                        f"{credential.holder_name}'s certificate ({top.credential_id}) was "
                        f"verified {top.verification_count} times in the last "
                        f"{self.config.popularity_window_days} days"
                    ),
                    data={
                        "credential_id": top.credential_id,
                        "holder_name": credential.holder_name,
                        "category": credential.category,
                        "verification_count": top.verification_count,
                        "last_verified_at": top.last_verified_at,
                    },
                )
            )

        in_demand = [
            row.credential_id
            for row in popular
            if row.verification_count >= self.config.high_demand_min_count
        ]
        if len(in_demand) > 1:
            insights.append(
                Insight(
                    kind=InsightKind.HIGH_DEMAND,
                    priority=InsightPriority.SUCCESS,
                    title="High Verification Demand",
                    message=(
                        f"{len(in_demand)} certificates have been verified "
                        f"{self.config.high_demand_min_count}+ times in the last "
                        f"{self.config.popularity_window_days} days"
                    ),
                    data={"count": len(in_demand), "credential_ids": in_demand},
                )
            )
        return insights


def create_insights_service(
    session_factory: async_sessionmaker[AsyncSession],
    config: InsightsConfig | None = None,
) -> VerificationInsightsService:
    """Create an insights service from the insights settings section."""
    return VerificationInsightsService(session_factory, config)
