"""
Phase Pattern Service
Turns per-phase counters into ratios, rule fragments and a significance
score, and ranks phases by significance.
"""
import logging
from dataclasses import dataclass
from typing import Dict, List, Optional

from kindra.models.schemas import CyclePhase, PhaseAnalysis, PhaseStats
from kindra.services.scoring import round_half_up

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PhaseRule:
    """
    One threshold check on a phase ratio and the text it contributes.

    Templates are formatted with ``phase`` (the phase label) and ``pct``
    (the ratio as a whole percentage).
    """
    name: str
    ratio: str
    threshold: float
    characteristic: str
    insight: str
    recommendation: str
    risk_factor: Optional[str] = None

    @property
    def is_risk_factor(self) -> bool:
        return self.risk_factor is not None

    def predicate(self, analysis: PhaseAnalysis) -> bool:
        return getattr(analysis, self.ratio) > self.threshold


CONFLICT_RISK_THRESHOLD = 0.3
CONFLICT_SIGNIFICANCE_WEIGHT = 0.8

PHASE_RULES = (
    PhaseRule(
        name="positivity",
        ratio="positive_ratio",
        threshold=0.6,
        characteristic="high positivity ({pct}% positive moments)",
        insight="Positive interactions are most frequent during the {phase} phase.",
        recommendation="Plan meaningful dates and shared activities during the {phase} phase",
    ),
    PhaseRule(
        name="intimacy",
        ratio="intimate_ratio",
        threshold=0.3,
        characteristic="increased intimacy ({pct}% intimate moments)",
        insight="Physical closeness tends to rise during the {phase} phase.",
        recommendation="Make room for affection and physical closeness during the {phase} phase",
    ),
    PhaseRule(
        name="communication",
        ratio="communication_ratio",
        threshold=0.4,
        characteristic="strong communication ({pct}% meaningful conversations)",
        insight="Deep conversations flow more naturally during the {phase} phase.",
        recommendation="Schedule important conversations for the {phase} phase",
    ),
    PhaseRule(
        name="conflict",
        ratio="conflict_ratio",
        threshold=CONFLICT_RISK_THRESHOLD,
        characteristic="elevated tension ({pct}% challenging moments)",
        insight="Disagreements are more likely during the {phase} phase.",
        recommendation="Practice extra patience and postpone difficult topics during the {phase} phase",
        risk_factor="Higher conflict rate during the {phase} phase ({pct}%)",
    ),
    PhaseRule(
        name="emotional_sensitivity",
        ratio="emotional_ratio",
        threshold=0.4,
        characteristic="heightened emotional sensitivity ({pct}% emotional moments)",
        insight="Emotional needs are more pronounced during the {phase} phase.",
        recommendation="Offer extra reassurance and emotional support during the {phase} phase",
    ),
)

CONSISTENCY_INSUFFICIENT = "Insufficient data for consistency analysis"


class PhasePatternService:
    """Service for scoring and ranking cycle phases"""

    def __init__(self, rules=PHASE_RULES):
        self.rules = rules

    def analyze_phase(self, phase: CyclePhase, stats: PhaseStats) -> PhaseAnalysis:
        """Compute ratios, apply the rule table and score one phase (count >= 1)."""
        count = stats.count
        analysis = PhaseAnalysis(
            phase=phase,
            stats=stats,
            positive_ratio=stats.positive / count,
            conflict_ratio=stats.conflict / count,
            intimate_ratio=stats.intimate / count,
            communication_ratio=stats.communication / count,
            emotional_ratio=stats.emotional / count,
        )

        for rule in self.rules:
            if not rule.predicate(analysis):
                continue
            values = {
                "phase": phase.label,
                "pct": round_half_up(getattr(analysis, rule.ratio) * 100),
            }
            analysis.characteristics.append(rule.characteristic.format(**values))
            analysis.insights.append(rule.insight.format(**values))
            analysis.recommendations.append(rule.recommendation.format(**values))
            if rule.is_risk_factor:
                analysis.risk_factors.append(rule.risk_factor.format(**values))

        analysis.significance = self.significance(analysis)
        return analysis

    @staticmethod
    def significance(analysis: PhaseAnalysis) -> float:
        """
        Volume times intensity. Conflict only counts once it crosses the
        risk threshold and is weighted at 0.8.
        """
        peak = max(
            analysis.positive_ratio,
            analysis.intimate_ratio,
            analysis.communication_ratio,
        )
        conflict_bonus = 0.0
        if analysis.conflict_ratio > CONFLICT_RISK_THRESHOLD:
            conflict_bonus = analysis.conflict_ratio * CONFLICT_SIGNIFICANCE_WEIGHT
        return analysis.stats.count * (peak + conflict_bonus)

    def rank_phases(self, stats: Dict[CyclePhase, PhaseStats]) -> List[PhaseAnalysis]:
        """
        Analyze every phase with data and sort by significance (descending).

        Ties keep phase order. Returns an empty list when no phase has data.
        """
        analyses = [
            self.analyze_phase(phase, stats[phase])
            for phase in CyclePhase
            if phase in stats and stats[phase].count >= 1
        ]
        ranked = sorted(analyses, key=lambda a: a.significance, reverse=True)

        if ranked:
            logger.info(
                f"✅ Ranked {len(ranked)} phases, strongest: {ranked[0].phase.value} "
                f"(significance {ranked[0].significance:.2f})"
            )
        return ranked

    def pattern_consistency(self, phases: List[PhaseAnalysis]) -> str:
        """Share of phases observed more than once, as a canned label."""
        if len(phases) < 2:
            return CONSISTENCY_INSUFFICIENT

        repeated = sum(1 for p in phases if p.stats.count > 1)
        consistency = repeated / len(phases)

        if consistency > 0.7:
            return "Highly consistent patterns detected"
        elif consistency > 0.4:
            return "Moderately consistent patterns"
        return "Patterns still emerging"


# Singleton instance
phase_pattern_service = PhasePatternService()
