"""
Connection Insights Service
Insights scoped to a single connection: activity rhythm, emotional
dynamic, intimacy and cycle correlation. Self connections get
self-reflection wording.
"""
import logging
from datetime import datetime, timedelta
from typing import List, Optional, Sequence

from kindra.config import settings
from kindra.models.schemas import Connection, CycleRecord, Insight, Moment
from kindra.services.cycle_insight_service import cycle_insight_service
from kindra.services.moment_categorizer import connection_counts
from kindra.services.scoring import round_half_up

logger = logging.getLogger(__name__)

MIN_CONNECTION_MOMENTS = 3
RECENT_WINDOW_DAYS = 30
MIN_MOMENTS_FOR_INTIMACY = 5
MIN_MOMENTS_FOR_CYCLE_CORRELATION = 8


def _pick(value: float, high: float, low: float, options):
    """Three-way label choice: above high, above low, otherwise."""
    if value > high:
        return options[0]
    if value > low:
        return options[1]
    return options[2]


class ConnectionInsightsService:
    """Service for per-connection insights"""

    def generate_connection_insights(
        self,
        connection: Connection,
        moments: Sequence[Moment],
        cycles: Sequence[CycleRecord],
        now: datetime,
    ) -> List[Insight]:
        """
        Generate up to MAX_CONNECTION_INSIGHTS insights for one connection.

        Args:
            connection: The connection being analyzed
            moments: All moments; filtered to this connection
            cycles: All cycles; filtered to this connection
            now: Reference time for the recent-activity window

        Returns:
            List of insights, foundation insight when there is too little data
        """
        moments = [m for m in moments if m.connection_id == connection.id]
        cycles = [c for c in cycles if c.connection_id == connection.id]
        is_self = connection.is_self
        stage = connection.relationship_stage or "Undefined"

        if len(moments) < MIN_CONNECTION_MOMENTS:
            return [self._foundation_insight(connection, len(moments), is_self, stage)]

        positive_count, conflict_count, intimate_count = connection_counts(moments)

        insights = []

        activity = self._communication_pattern(connection, moments, now, is_self, stage)
        if activity:
            insights.append(activity)

        if positive_count > 0 or conflict_count > 0:
            insights.append(
                self._emotional_dynamic(connection, positive_count, conflict_count, is_self)
            )

        if intimate_count > 0 and len(moments) > MIN_MOMENTS_FOR_INTIMACY:
            insights.append(self._intimacy_pattern(connection, intimate_count, len(moments), stage))

        if cycles and len(moments) > MIN_MOMENTS_FOR_CYCLE_CORRELATION:
            cycle_insight = cycle_insight_service.generate_cycle_correlation_insight(moments, cycles, now)
            if cycle_insight:
                insights.append(self._personalize(cycle_insight, connection.name))

        logger.info(f"✅ Generated {len(insights)} insights for connection {connection.id}")
        return insights[:settings.MAX_CONNECTION_INSIGHTS]

    def _foundation_insight(self, connection: Connection, count: int, is_self: bool, stage: str) -> Insight:
        if is_self:
            return Insight(
                title="Personal Development Foundation",
                description=(
                    "Your self-reflection journey is beginning to take shape. With more personal "
                    "moments tracked, you'll unlock deeper insights about your growth patterns, "
                    "emotional trends, and personal development milestones."
                ),
                type="neutral",
                confidence=100,
                category="behavioral",
                data_points=[
                    f"{count} personal moments recorded",
                    "Self-development tracking active",
                    "Growth analytics framework ready",
                ],
                action_items=[
                    "Personal tracking enables self-awareness patterns",
                    "Insights improve with consistent self-reflection",
                    "Personal growth analytics unlock over time",
                ],
            )
        return Insight(
            title="Relationship Foundation",
            description=(
                f"Your connection with {connection.name} is in the early tracking phase. Building "
                "a pattern history will unlock detailed relationship analytics and personalized "
                "insights about your dynamic together."
            ),
            type="neutral",
            confidence=100,
            category="behavioral",
            data_points=[f"{count} moments recorded", f"{stage} stage", "Analytics framework ready"],
            action_items=[
                "Relationship tracking enables pattern detection",
                "Insights improve with more data points",
                "Personalized analytics unlock over time",
            ],
        )

    def _communication_pattern(
        self,
        connection: Connection,
        moments: Sequence[Moment],
        now: datetime,
        is_self: bool,
        stage: str,
    ) -> Optional[Insight]:
        window_start = now - timedelta(days=RECENT_WINDOW_DAYS)
        timestamps = [m.timestamp for m in moments if m.timestamp is not None]
        recent = sum(1 for ts in timestamps if ts >= window_start)
        if recent == 0:
            return None

        avg_days_between = 0.0
        if len(timestamps) > 1:
            span = max(timestamps) - min(timestamps)
            avg_days_between = span / timedelta(days=1) / (len(timestamps) - 1)
        cadence = round_half_up(avg_days_between) if avg_days_between > 0 else "daily"

        if is_self:
            level = _pick(recent, 15, 8, ("excellent", "consistent", "developing"))
            meaning = _pick(recent, 15, 8, (
                "strong commitment to personal growth",
                "regular self-reflection habits",
                "emerging mindfulness journey",
            ))
            return Insight(
                title="Self-Reflection Pattern",
                description=(
                    f"Your personal development tracking shows {recent} self-reflection moments "
                    f"in the last {RECENT_WINDOW_DAYS} days, with an average of {cadence} days "
                    f"between personal check-ins. This {level} self-awareness practice suggests "
                    f"{meaning}."
                ),
                type=_pick(recent, 8, 4, ("positive", "neutral", "warning")),
                confidence=min(90, round_half_up(recent * 4 + 55)),
                category="pattern",
                data_points=[
                    f"{recent} recent self-reflections",
                    f"{len(moments)} total personal moments",
                    f"{round_half_up(avg_days_between)} days between check-ins",
                    "Personal development tracking active",
                ],
                action_items=[
                    "Self-reflection frequency: "
                    + _pick(recent, 15, 8, ("highly committed", "consistently mindful", "building awareness")),
                    "Regular self-check-ins enhance emotional intelligence",
                    "Personal growth patterns emerge through consistent tracking",
                ],
            )

        level = _pick(recent, 10, 5, ("high", "moderate", "low"))
        meaning = _pick(recent, 10, 5, ("strong engagement", "steady connection", "casual interaction"))
        return Insight(
            title=f"{connection.name} Communication Pattern",
            description=(
                f"Your interaction frequency with {connection.name} shows {recent} moments in "
                f"the last {RECENT_WINDOW_DAYS} days, with an average of {cadence} days between "
                f"recorded interactions. This {level} frequency suggests {meaning} in your "
                "relationship dynamic."
            ),
            type=_pick(recent, 10, 5, ("positive", "neutral", "warning")),
            confidence=min(85, round_half_up(recent * 5 + 50)),
            category="pattern",
            data_points=[
                f"{recent} recent interactions",
                f"{len(moments)} total moments recorded",
                f"{round_half_up(avg_days_between)} days average between interactions",
                f"{stage} relationship stage",
            ],
            action_items=[
                "Interaction frequency: "
                + _pick(recent, 10, 5, ("highly engaged", "moderately active", "occasional contact")),
                f"Communication pattern reflects {stage.lower()} stage dynamics",
                "Consistent tracking reveals relationship rhythm patterns",
            ],
        )

    def _emotional_dynamic(
        self,
        connection: Connection,
        positive_count: int,
        conflict_count: int,
        is_self: bool,
    ) -> Insight:
        emotional_ratio = positive_count / max(1, positive_count + conflict_count)
        if emotional_ratio > 0.7:
            pattern = "positive"
        elif emotional_ratio < 0.3:
            pattern = "challenging"
        else:
            pattern = "balanced"
        positive_pct = round_half_up(emotional_ratio * 100)
        challenging_pct = round_half_up((1 - emotional_ratio) * 100)

        if is_self:
            meaning = {
                "positive": "strong self-compassion and growth mindset",
                "challenging": "awareness of areas needing personal attention",
                "balanced": "healthy emotional self-awareness",
            }[pattern]
            return Insight(
                title="Personal Emotional Pattern",
                description=(
                    f"Your self-reflection shows {positive_pct}% positive personal moments versus "
                    f"{challenging_pct}% challenging periods. This {pattern} emotional pattern "
                    f"indicates {meaning} in your personal development journey."
                ),
                type="neutral" if pattern == "challenging" else "positive",
                confidence=min(92, round_half_up((positive_count + conflict_count) * 7 + 50)),
                category="behavioral",
                data_points=[
                    f"{positive_count} positive self-moments",
                    f"{conflict_count} challenging reflections",
                    f"{positive_pct}% positive self-ratio",
                    f"{pattern} emotional self-awareness",
                ],
                action_items=[
                    "Self-emotional pattern: " + {
                        "positive": "positive self-regard",
                        "challenging": "growth-focused reflection",
                        "balanced": "balanced self-awareness",
                    }[pattern],
                    {
                        "positive": "Strong foundation for continued personal growth",
                        "challenging": "Honest self-reflection enables targeted development",
                        "balanced": "Balanced emotional self-awareness supports growth",
                    }[pattern],
                    "Self-awareness patterns enhance emotional regulation skills",
                ],
            )

        meaning = {
            "positive": "strong emotional harmony",
            "challenging": "areas for relationship attention",
            "balanced": "natural emotional complexity",
        }[pattern]
        return Insight(
            title=f"{connection.name} Emotional Dynamic",
            description=(
                f"Your emotional pattern with {connection.name} shows {positive_pct}% positive "
                f"moments versus {challenging_pct}% challenging interactions. This {pattern} "
                f"dynamic indicates {meaning} in your connection."
            ),
            type={"positive": "positive", "challenging": "warning", "balanced": "neutral"}[pattern],
            confidence=min(88, round_half_up((positive_count + conflict_count) * 8 + 45)),
            category="behavioral",
            data_points=[
                f"{positive_count} positive moments",
                f"{conflict_count} challenging moments",
                f"{positive_pct}% positive ratio",
                f"{pattern} emotional pattern",
            ],
            action_items=[
                f"Emotional dynamic: {pattern} interaction pattern",
                {
                    "positive": "Strong emotional foundation detected",
                    "challenging": "Consider relationship communication strategies",
                    "balanced": "Natural emotional variety in relationship",
                }[pattern],
                "Pattern awareness enables emotional intelligence growth",
            ],
        )

    def _intimacy_pattern(self, connection: Connection, intimate_count: int, total: int, stage: str) -> Insight:
        frequency = intimate_count / total
        pct = round_half_up(frequency * 100)
        return Insight(
            title=f"{connection.name} Intimacy Pattern",
            description=(
                f"Intimate moments with {connection.name} represent {pct}% of your tracked "
                f"interactions ({intimate_count} out of {total} moments). This "
                f"{_pick(frequency, 0.3, 0.15, ('high', 'moderate', 'low'))} intimacy frequency "
                f"aligns with {stage.lower()} stage expectations and suggests "
                + _pick(frequency, 0.3, 0.15, (
                    "strong physical connection", "developing intimacy", "emerging physical connection",
                ))
                + "."
            ),
            type="positive",
            confidence=min(82, round_half_up(intimate_count * 10 + 60)),
            category="correlation",
            data_points=[
                f"{intimate_count} intimate moments recorded",
                f"{pct}% intimacy frequency",
                f"{stage} stage context",
                f"{total} total interactions analyzed",
            ],
            action_items=[
                "Intimacy level: "
                + _pick(frequency, 0.3, 0.15, ("highly intimate", "moderately intimate", "developing intimacy")),
                f"Physical connection patterns align with {stage.lower()} expectations",
                "Intimacy tracking reveals relationship progression patterns",
            ],
        )

    @staticmethod
    def _personalize(insight: Insight, name: str) -> Insight:
        return insight.model_copy(update={
            "title": f"{name} {insight.title}",
            "description": insight.description.replace("relationship", f"relationship with {name}"),
        })


# Singleton instance
connection_insights_service = ConnectionInsightsService()
