"""
Relationship Analytics Service
Cross-connection pattern detection over all of a user's moments:
1. Emotional momentum (streaks over the last 10 moments)
2. Attention distribution across connections
3. Relationship stage patterns
4. Weekly rhythm
5. Per-connection trajectory forecasts
Optionally folds in the cycle-phase correlation insight.
"""
import logging
from collections import defaultdict
from datetime import datetime
from typing import Dict, List, Optional, Sequence

from kindra.config import settings
from kindra.models.schemas import Connection, CycleRecord, Insight, Moment
from kindra.services.cycle_insight_service import cycle_insight_service
from kindra.services.cycle_phase_service import utcnow
from kindra.services.moment_categorizer import is_negative_mood, is_positive_mood, is_stage_positive
from kindra.services.scoring import round_half_up

logger = logging.getLogger(__name__)

MIN_MOMENTS_FOR_ANALYTICS = 5
MIN_MOMENTS_FOR_TEMPORAL = 15
MIN_MOMENTS_FOR_PREDICTION = 20
MIN_CONNECTION_MOMENTS_FOR_TRAJECTORY = 8
MOMENTUM_WINDOW = 10

WEEKDAYS = ["Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday"]
WEEKEND_DAYS = ("Friday", "Saturday", "Sunday")


class RelationshipAnalyticsService:
    """Service for aggregate relationship analytics"""

    def generate_analytics_insights(
        self,
        moments: Sequence[Moment],
        connections: Sequence[Connection],
        cycles: Optional[Sequence[CycleRecord]] = None,
        now: Optional[datetime] = None,
    ) -> List[Insight]:
        """
        Run every detector and return the first insights in discovery order.

        Moments are expected oldest first, as the store returns them.
        """
        if len(moments) < MIN_MOMENTS_FOR_ANALYTICS:
            return [self._foundation_insight(len(moments))]

        insights = []

        emotional = self.analyze_emotional_patterns(moments)
        if emotional:
            insights.append(emotional)

        if cycles:
            cycle_insight = cycle_insight_service.generate_cycle_correlation_insight(
                moments, cycles, now or utcnow()
            )
            if cycle_insight:
                insights.append(cycle_insight)

        insights.extend(self.analyze_communication_frequency(moments, connections))
        insights.extend(self.analyze_relationship_stages(moments, connections))
        insights.extend(self.analyze_temporal_patterns(moments))
        insights.extend(self.generate_predictive_analysis(moments, connections))

        logger.info(f"✅ Generated {len(insights)} analytics insights from {len(moments)} moments")
        return insights[:settings.MAX_AGGREGATE_INSIGHTS]

    def _foundation_insight(self, moment_count: int) -> Insight:
        return Insight(
            title="Building Analytics Foundation",
            description=(
                f"Track {MIN_MOMENTS_FOR_ANALYTICS - moment_count} more moments to unlock "
                "advanced pattern recognition, emotional trend analysis, and predictive "
                "relationship insights."
            ),
            type="neutral",
            confidence=100,
            category="behavioral",
            data_points=[
                f"{moment_count}/{MIN_MOMENTS_FOR_ANALYTICS} moments needed",
                "Pattern detection ready",
            ],
            action_items=["Continue logging daily interactions", "Track diverse moment types"],
        )

    # ========================================================================
    # 1. EMOTIONAL MOMENTUM
    # ========================================================================

    def analyze_emotional_patterns(self, moments: Sequence[Moment]) -> Optional[Insight]:
        total = len(moments)
        positive_count = sum(1 for m in moments if is_positive_mood(m))
        negative_count = sum(1 for m in moments if is_negative_mood(m))
        positive_ratio = positive_count / total
        negative_ratio = negative_count / total

        max_positive_streak, max_negative_streak = self._streaks(moments[-MOMENTUM_WINDOW:])

        if max_positive_streak >= 4:
            return Insight(
                title="Positive Momentum Detection",
                description=(
                    f"Strong positive trend detected: {max_positive_streak} consecutive positive "
                    "moments. Your relationships are experiencing sustained growth and "
                    "satisfaction. This momentum indicates effective communication and "
                    "compatible connection patterns."
                ),
                type="positive",
                confidence=min(95, max_positive_streak * 15 + 65),
                category="trend",
                data_points=[
                    f"{max_positive_streak} consecutive positive moments",
                    f"{round_half_up(positive_ratio * 100)}% overall positive ratio",
                    f"Trend strength: {'Very Strong' if max_positive_streak >= 6 else 'Strong'}",
                ],
                action_items=[
                    "Document what's creating this positive momentum",
                    "Continue current successful relationship strategies",
                    "Share positive experiences with your connections",
                ],
            )

        if max_negative_streak >= 3:
            return Insight(
                title="Concerning Pattern Alert",
                description=(
                    f"{max_negative_streak} consecutive challenging moments detected. This "
                    "pattern suggests underlying relationship stress that needs attention. "
                    "Early intervention can prevent further deterioration and strengthen bonds."
                ),
                type="warning",
                confidence=min(90, max_negative_streak * 20 + 60),
                category="trend",
                data_points=[
                    f"{max_negative_streak} consecutive difficult moments",
                    f"{round_half_up(negative_ratio * 100)}% negative ratio",
                    "Intervention recommended",
                ],
                action_items=[
                    "Schedule quality time with affected connections",
                    "Practice active listening and empathy",
                    "Consider addressing underlying concerns openly",
                ],
            )

        if positive_ratio > 0.75:
            return Insight(
                title="Exceptional Relationship Health",
                description=(
                    f"{round_half_up(positive_ratio * 100)}% of your moments are positive, indicating "
                    "outstanding relationship satisfaction. You demonstrate excellent emotional "
                    "intelligence and relationship management skills across your connections."
                ),
                type="positive",
                confidence=round_half_up(positive_ratio * 100),
                category="pattern",
                data_points=[
                    f"{positive_count}/{total} positive moments",
                    f"Emotional balance score: {round_half_up((positive_ratio - negative_ratio) * 100)}",
                    "Relationship satisfaction: Excellent",
                ],
                action_items=[
                    "Maintain current relationship practices",
                    "Share your strategies with others",
                    "Continue celebrating positive moments",
                ],
            )

        return None

    @staticmethod
    def _streaks(moments: Sequence[Moment]):
        """Longest runs of positive and negative moments. Neutral moments break both."""
        positive_run = negative_run = 0
        max_positive = max_negative = 0
        for moment in moments:
            if is_positive_mood(moment):
                positive_run += 1
                negative_run = 0
                max_positive = max(max_positive, positive_run)
            elif is_negative_mood(moment):
                negative_run += 1
                positive_run = 0
                max_negative = max(max_negative, negative_run)
            else:
                positive_run = negative_run = 0
        return max_positive, max_negative

    # ========================================================================
    # 2. ATTENTION DISTRIBUTION
    # ========================================================================

    def analyze_communication_frequency(
        self,
        moments: Sequence[Moment],
        connections: Sequence[Connection],
    ) -> List[Insight]:
        insights = []
        if len(connections) < 2:
            return insights

        counts: Dict[int, int] = defaultdict(int)
        for moment in moments:
            if moment.connection_id:
                counts[moment.connection_id] += 1

        stats = sorted(
            (
                {
                    "connection": conn,
                    "moment_count": counts.get(conn.id, 0),
                    "percentage": counts.get(conn.id, 0) / len(moments) * 100,
                }
                for conn in connections
            ),
            key=lambda s: s["moment_count"],
            reverse=True,
        )

        top = stats[0]
        neglected = [s for s in stats if s["percentage"] < 5 and s["moment_count"] > 0]

        if top["percentage"] > 60:
            others = [s for s in stats[1:] if s["moment_count"] > 0]
            top_name = top["connection"].name
            other_names = [s["connection"].name for s in others[:2]]
            schedule_with = " and ".join(other_names) if other_names else "your other connections"

            insights.append(Insight(
                title="Relationship Focus Imbalance",
                description=(
                    f"{top_name} receives {round_half_up(top['percentage'])}% of your relationship "
                    "attention. While deep connections are valuable, balanced attention across "
                    "your network strengthens overall relationship health and prevents "
                    "over-dependence."
                ),
                type="warning",
                confidence=min(100, round_half_up(top["percentage"] + 20)),
                category="pattern",
                data_points=[
                    f"{top_name}: {top['moment_count']} moments ({round_half_up(top['percentage'])}%)",
                    f"Other connections: {len(others)} receiving less attention",
                    f"Balance score: {round_half_up(100 - top['percentage'])}/100",
                ],
                action_items=[
                    f"Schedule dedicated time with {schedule_with}",
                    "Set weekly reminders for relationship maintenance",
                    "Practice intentional relationship diversification",
                ],
                related_connections=[top_name] + other_names,
            ))

        if neglected:
            average = sum(s["percentage"] for s in neglected) / len(neglected)
            insights.append(Insight(
                title="Connection Maintenance Opportunity",
                description=(
                    f"{len(neglected)} connections show minimal recent activity. Regular "
                    "interaction maintains relationship strength and prevents gradual "
                    "disconnection. Small, consistent efforts yield significant relationship "
                    "benefits."
                ),
                type="neutral",
                confidence=75,
                category="behavioral",
                data_points=[
                    f"{len(neglected)} connections need attention",
                    f"Average activity: {round_half_up(average)}%",
                    "Maintenance opportunity identified",
                ],
                action_items=[
                    "Send check-in messages to dormant connections",
                    "Schedule coffee dates or calls",
                    "Share appreciation or memories",
                ],
                related_connections=[s["connection"].name for s in neglected],
            ))

        return insights

    # ========================================================================
    # 3. RELATIONSHIP STAGES
    # ========================================================================

    def analyze_relationship_stages(
        self,
        moments: Sequence[Moment],
        connections: Sequence[Connection],
    ) -> List[Insight]:
        insights = []

        stage_groups: Dict[str, List[Connection]] = {}
        for conn in connections:
            stage_groups.setdefault(conn.relationship_stage or "Undefined", []).append(conn)

        for stage, stage_connections in stage_groups.items():
            if len(stage_connections) < 2:
                continue

            ids = {c.id for c in stage_connections}
            stage_moments = [m for m in moments if m.connection_id in ids]
            if len(stage_moments) < 5:
                continue

            positive_ratio = sum(1 for m in stage_moments if is_stage_positive(m)) / len(stage_moments)
            stage_insight = self._stage_specific_insight(stage, positive_ratio, len(stage_connections))

            insights.append(Insight(
                title=f"{stage} Stage Analysis",
                description=stage_insight["description"],
                type=stage_insight["type"],
                confidence=min(90, len(stage_moments) * 3 + 50),
                category="correlation",
                data_points=[
                    f"{len(stage_connections)} {stage} connections",
                    f"{len(stage_moments)} total moments",
                    f"{round_half_up(positive_ratio * 100)}% positive interactions",
                ],
                action_items=stage_insight["recommendations"],
                related_connections=[c.name for c in stage_connections],
            ))

        return insights

    def _stage_specific_insight(self, stage: str, positive_ratio: float, connection_count: int) -> Dict:
        """Stage-aware wording; unknown stages get a generic summary."""
        pct = round_half_up(positive_ratio * 100)
        if positive_ratio > 0.7:
            base_type = "positive"
        elif positive_ratio > 0.5:
            base_type = "neutral"
        else:
            base_type = "warning"

        if stage == "Dating":
            description = (
                f"Your dating connections show exceptional positivity ({pct}%). You excel at "
                "creating enjoyable early-stage experiences and building romantic excitement."
                if positive_ratio > 0.8 else
                "Dating relationships could benefit from more fun, spontaneous activities to "
                "build positive associations and romantic momentum."
            )
            recommendations = (
                ["Continue your successful dating approach", "Share what works with other daters"]
                if positive_ratio > 0.7 else
                ["Plan more exciting shared experiences", "Focus on discovery and compatibility",
                 "Add spontaneity to interactions"]
            )
        elif stage == "Committed Relationship":
            description = (
                f"Committed relationships demonstrate strong emotional stability ({pct}% "
                "positive). You maintain healthy long-term connection patterns."
                if positive_ratio > 0.7 else
                "Consider focusing on appreciation exercises and quality time to strengthen "
                "committed bonds and reignite passion."
            )
            recommendations = (
                ["Maintain successful relationship practices", "Celebrate your partnership wins"]
                if positive_ratio > 0.7 else
                ["Schedule regular date nights", "Practice daily gratitude sharing",
                 "Reignite shared interests"]
            )
        elif stage == "Best Friend":
            description = (
                f"Friendships are thriving with high positive energy ({pct}%) and mutual "
                f"support across {connection_count} friends."
                if positive_ratio > 0.8 else
                "Friendships might benefit from more shared activities and regular check-ins "
                "to maintain closeness."
            )
            recommendations = (
                ["Continue nurturing your friendship network", "Organize group activities"]
                if positive_ratio > 0.7 else
                ["Plan regular friend dates", "Create shared memory-making activities",
                 "Increase communication frequency"]
            )
        else:
            description = (
                f"{stage} relationships show {pct}% positive moments across {connection_count} "
                f"connections, indicating {'healthy' if positive_ratio > 0.6 else 'developing'} "
                "relationship patterns."
            )
            recommendations = ["Continue building positive experiences", "Maintain consistent communication"]

        return {"description": description, "type": base_type, "recommendations": recommendations}

    # ========================================================================
    # 4. WEEKLY RHYTHM
    # ========================================================================

    def analyze_temporal_patterns(self, moments: Sequence[Moment]) -> List[Insight]:
        insights = []
        if len(moments) < MIN_MOMENTS_FOR_TEMPORAL:
            return insights

        day_count: Dict[str, int] = {}
        for moment in moments:
            if moment.timestamp:
                day = WEEKDAYS[moment.timestamp.weekday()]
                day_count[day] = day_count.get(day, 0) + 1

        if not day_count:
            return insights

        peak_day, peak_count = sorted(day_count.items(), key=lambda x: x[1], reverse=True)[0]
        peak_percentage = round_half_up(peak_count / len(moments) * 100)

        if peak_percentage > 25:
            is_weekend = peak_day in WEEKEND_DAYS
            rhythm = (
                "Weekend-focused relationship patterns suggest you prioritize connections during "
                "leisure time, which creates positive associations."
                if is_weekend else
                "Weekday relationship activity shows you integrate connections into your "
                "routine, building consistent emotional bonds."
            )
            insights.append(Insight(
                title="Weekly Relationship Rhythm",
                description=(
                    f"You're most relationship-active on {peak_day}s ({peak_percentage}% of "
                    f"moments). {rhythm}"
                ),
                type="positive",
                confidence=min(85, peak_percentage * 2),
                category="pattern",
                data_points=[
                    f"Peak day: {peak_day} ({peak_percentage}%)",
                    f"Pattern type: {'Weekend-focused' if is_weekend else 'Weekday-integrated'}",
                    f"Consistency strength: {'High' if peak_percentage > 35 else 'Moderate'}",
                ],
                action_items=[
                    "Consider adding weekday check-ins",
                    "Maintain your weekend relationship focus",
                    "Balance leisure and routine connections",
                ] if is_weekend else [
                    "Excellent routine integration",
                    "Add spontaneous weekend activities",
                    "Maintain consistent weekday patterns",
                ],
            ))

        return insights

    # ========================================================================
    # 5. TRAJECTORY FORECASTS
    # ========================================================================

    def generate_predictive_analysis(
        self,
        moments: Sequence[Moment],
        connections: Sequence[Connection],
    ) -> List[Insight]:
        insights = []
        if len(moments) < MIN_MOMENTS_FOR_PREDICTION:
            return insights

        for connection in connections:
            connection_moments = [m for m in moments if m.connection_id == connection.id]
            if len(connection_moments) < MIN_CONNECTION_MOMENTS_FOR_TRAJECTORY:
                continue

            trajectory = self.calculate_relationship_trajectory(connection_moments)
            if trajectory["confidence"] <= 70:
                continue

            direction = trajectory["direction"]
            if direction == "upward":
                insight_type = "positive"
            elif direction == "downward":
                insight_type = "warning"
            else:
                insight_type = "neutral"

            insights.append(Insight(
                title=f"{connection.name} Relationship Forecast",
                description=(
                    f"Based on recent interaction patterns, your relationship with "
                    f"{connection.name} is trending {direction}. {trajectory['analysis']} "
                    f"Confidence level: {trajectory['confidence']}%."
                ),
                type=insight_type,
                confidence=trajectory["confidence"],
                category="prediction",
                data_points=[
                    f"Trend direction: {direction}",
                    f"Pattern strength: {trajectory['confidence']}%",
                    f"Based on {len(connection_moments)} recent moments",
                ],
                action_items=trajectory["recommendations"],
                related_connections=[connection.name],
            ))

        return insights[:2]

    def calculate_relationship_trajectory(self, moments: Sequence[Moment]) -> Dict:
        """
        Compare the positive ratio of the most recent 40% of moments (at
        least 3) with the older remainder.
        """
        recent_count = max(3, int(len(moments) * 0.4))
        recent = moments[-recent_count:]
        older = moments[:-recent_count]

        recent_positive = sum(1 for m in recent if is_stage_positive(m)) / len(recent)
        older_positive = (
            sum(1 for m in older if is_stage_positive(m)) / len(older) if older else recent_positive
        )

        trend_change = recent_positive - older_positive
        magnitude = abs(trend_change)

        if magnitude < 0.15:
            return {
                "direction": "stable",
                "confidence": 75,
                "analysis": "Relationship patterns show consistent stability with predictable interaction quality.",
                "recommendations": ["Maintain current positive patterns", "Consider introducing fresh experiences"],
            }

        confidence = min(95, round_half_up(magnitude * 400 + 70))
        if trend_change > 0:
            return {
                "direction": "upward",
                "confidence": confidence,
                "analysis": "Recent interactions indicate strengthening emotional connection and growing satisfaction.",
                "recommendations": ["Continue successful strategies", "Build on positive momentum", "Document what's working"],
            }
        return {
            "direction": "downward",
            "confidence": confidence,
            "analysis": "Recent patterns suggest declining satisfaction or emerging relationship stress requiring attention.",
            "recommendations": ["Address concerns proactively", "Increase quality time together", "Practice open communication"],
        }


# Singleton instance
relationship_analytics_service = RelationshipAnalyticsService()
