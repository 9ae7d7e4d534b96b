"""
Cycle Insight Service
Builds the explainable cycle-phase correlation insight: which phase of the
cycle carries the strongest relationship pattern, why, and when it recurs.
"""
import logging
from datetime import datetime
from typing import List, Optional, Sequence

from kindra.models.schemas import (
    CyclePhase,
    CycleCorrelationReport,
    CycleRecord,
    Insight,
    Moment,
    PhaseAnalysis,
)
from kindra.services.cycle_phase_service import cycle_phase_service
from kindra.services.phase_pattern_service import (
    CONSISTENCY_INSUFFICIENT,
    phase_pattern_service,
)
from kindra.services.scoring import round_half_up

logger = logging.getLogger(__name__)

CYCLE_INSIGHT_TITLE = "Cycle Phase Correlation"
MAX_CONFIDENCE = 95
MAX_DATA_POINTS = 5
MAX_ACTION_ITEMS = 5

PHASE_DESCRIPTIONS = {
    CyclePhase.MENSTRUAL: (
        "During menstruation, low estrogen and progesterone often bring lower "
        "energy and a greater need for comfort and rest."
    ),
    CyclePhase.FOLLICULAR: (
        "In the follicular phase, rising estrogen typically lifts energy, "
        "optimism and openness to new experiences."
    ),
    CyclePhase.OVULATION: (
        "Around ovulation, peak estrogen and the LH surge often heighten "
        "confidence, sociability and the desire for connection."
    ),
    CyclePhase.LUTEAL: (
        "In the luteal phase, rising progesterone can increase sensitivity and "
        "the need for reassurance, especially in the days before the next period."
    ),
}


class CycleInsightService:
    """Service for cycle-phase correlation insights"""

    def __init__(self):
        self.phases = cycle_phase_service
        self.patterns = phase_pattern_service

    def analyze(
        self,
        moments: Sequence[Moment],
        cycles: Sequence[CycleRecord],
        now: datetime,
    ) -> CycleCorrelationReport:
        """Run aggregation, ranking and synthesis over one set of records."""
        stats = self.phases.aggregate_phase_stats(moments, cycles)
        ranked = self.patterns.rank_phases(stats)
        variability = self.phases.calculate_cycle_variability(cycles)

        if not ranked:
            logger.info("No moments fall inside a tracked cycle, skipping correlation insight")
            return CycleCorrelationReport(has_data=False, variability=variability)

        strongest = ranked[0]
        return CycleCorrelationReport(
            has_data=True,
            insight=self.synthesize(strongest, ranked, cycles, now),
            phases=ranked,
            consistency=self.patterns.pattern_consistency(ranked),
            variability=variability,
            prediction=self.phases.predict_next_optimal(cycles, strongest.phase, now),
        )

    def generate_cycle_correlation_insight(
        self,
        moments: Sequence[Moment],
        cycles: Sequence[CycleRecord],
        now: datetime,
    ) -> Optional[Insight]:
        return self.analyze(moments, cycles, now).insight

    def synthesize(
        self,
        strongest: PhaseAnalysis,
        phases: List[PhaseAnalysis],
        cycles: Sequence[CycleRecord],
        now: datetime,
    ) -> Insight:
        """
        Turn the strongest phase into an insight.

        Args:
            strongest: Top entry of the ranked phases
            phases: All ranked phases (count >= 1), strongest first
            cycles: Cycle records used for the timing and variability lines
            now: Reference time for the next-window projection

        Returns:
            A correlation insight; warning-typed when the phase carries risk factors
        """
        label = strongest.phase.label

        characteristics = strongest.characteristics[:2]
        if characteristics:
            opening = (
                f"Your relationship shows {' and '.join(characteristics)} "
                f"during the {label} phase."
            )
        else:
            opening = f"Your relationship is most active during the {label} phase."
        description = " ".join(
            [opening, PHASE_DESCRIPTIONS[strongest.phase]] + strongest.insights[:2]
        )

        confidence = min(MAX_CONFIDENCE, round_half_up(strongest.stats.count * 12 + 55))

        return Insight(
            title=CYCLE_INSIGHT_TITLE,
            description=description,
            type="warning" if strongest.risk_factors else "positive",
            confidence=confidence,
            category="correlation",
            data_points=self._data_points(strongest, phases),
            action_items=self._action_items(strongest, phases, cycles, now),
        )

    def _data_points(self, strongest: PhaseAnalysis, phases: List[PhaseAnalysis]) -> List[str]:
        total = sum(p.stats.count for p in phases)
        points = [
            f"{total} interactions tracked across cycles",
            f"Strongest phase: {strongest.phase.label} ({strongest.stats.count} moments)",
        ]
        for phase in phases[:3]:
            points.append(
                f"{phase.phase.label}: {phase.stats.count} moments, "
                f"{round_half_up(phase.positive_ratio * 100)}% positive"
            )

        consistency = self.patterns.pattern_consistency(phases)
        if consistency != CONSISTENCY_INSUFFICIENT:
            points.append(consistency)

        return points[:MAX_DATA_POINTS]

    def _action_items(
        self,
        strongest: PhaseAnalysis,
        phases: List[PhaseAnalysis],
        cycles: Sequence[CycleRecord],
        now: datetime,
    ) -> List[str]:
        items = list(strongest.recommendations)
        items.extend(self._cross_phase_observations(strongest, phases)[:2])

        prediction = self.phases.predict_next_optimal(cycles, strongest.phase, now)
        if prediction:
            items.append(
                f"Next {strongest.phase.label} phase expected around "
                f"{prediction.next_optimal_date:%B %d, %Y} "
                f"({prediction.days_until_optimal} days from now)"
            )

        if strongest.risk_factors:
            items.append(f"Watch for: {'; '.join(strongest.risk_factors)}")

        variability = self.phases.calculate_cycle_variability(cycles)
        if variability:
            items.append(variability.summary)

        return items[:MAX_ACTION_ITEMS]

    def _cross_phase_observations(
        self, strongest: PhaseAnalysis, phases: List[PhaseAnalysis]
    ) -> List[str]:
        """Comparisons that point at phases other than the strongest one."""
        if len(phases) < 2:
            return []

        observations = []

        talk = max(phases, key=lambda p: p.communication_ratio)
        if talk.communication_ratio > 0 and talk.phase != strongest.phase:
            observations.append(
                f"Conversations go best during the {talk.phase.label} phase "
                f"({round_half_up(talk.communication_ratio * 100)}% meaningful talks)"
            )

        tension = max(phases, key=lambda p: p.conflict_ratio)
        if tension.conflict_ratio > 0 and tension.phase != strongest.phase:
            observations.append(
                f"Tension clusters in the {tension.phase.label} phase "
                f"({round_half_up(tension.conflict_ratio * 100)}% challenging moments)"
            )

        closeness = max(phases, key=lambda p: p.intimate_ratio)
        if closeness.intimate_ratio > 0 and closeness.phase != strongest.phase:
            observations.append(
                f"Intimacy peaks during the {closeness.phase.label} phase "
                f"({round_half_up(closeness.intimate_ratio * 100)}%)"
            )

        return observations


# Singleton instance
cycle_insight_service = CycleInsightService()
