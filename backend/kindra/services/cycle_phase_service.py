"""
Cycle phase service: phase classification, moment-to-cycle joins,
per-phase aggregation and timing projections.
"""
import logging
import math
from datetime import date, datetime, timedelta, timezone
from statistics import mean, pstdev
from typing import Dict, List, Optional, Sequence, Tuple

from kindra.models.schemas import (
    CyclePhase,
    CycleRecord,
    CycleVariability,
    Moment,
    PhaseStats,
    TimingPrediction,
)
from kindra.services.moment_categorizer import categorize

logger = logging.getLogger(__name__)

# First day (0-based, since period start) of each phase. Shared by the
# classifier and the timing predictor.
PHASE_START_DAYS = {
    CyclePhase.MENSTRUAL: 0,
    CyclePhase.FOLLICULAR: 6,
    CyclePhase.OVULATION: 14,
    CyclePhase.LUTEAL: 17,
}

# Open cycles are assumed to span this many days for membership tests
DEFAULT_CYCLE_LENGTH = 28

# Cycle length regularity thresholds (population std dev, days)
VERY_REGULAR_STD_DAYS = 2
SLIGHT_VARIATION_STD_DAYS = 4


def _day(value) -> date:
    return value.date() if isinstance(value, datetime) else value


def utcnow() -> datetime:
    """Current time as a naive UTC datetime, matching normalized record timestamps."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


class CyclePhaseService:
    """Pure phase math over in-memory moments and cycle records."""

    # =========================================================================
    # PHASE CLASSIFICATION
    # =========================================================================

    def classify_phase(self, event_date, cycle_start) -> CyclePhase:
        """
        Map a date to a phase by whole days elapsed since the cycle start.

        Days before the start are treated as the tail (luteal) of the
        previous cycle.
        """
        days_since_start = (_day(event_date) - _day(cycle_start)).days

        if days_since_start < 0:
            return CyclePhase.LUTEAL
        if days_since_start < PHASE_START_DAYS[CyclePhase.FOLLICULAR]:
            return CyclePhase.MENSTRUAL
        if days_since_start < PHASE_START_DAYS[CyclePhase.OVULATION]:
            return CyclePhase.FOLLICULAR
        if days_since_start < PHASE_START_DAYS[CyclePhase.LUTEAL]:
            return CyclePhase.OVULATION
        return CyclePhase.LUTEAL

    # =========================================================================
    # MOMENT -> CYCLE JOIN
    # =========================================================================

    def cycle_window(self, cycle: CycleRecord) -> Tuple[date, date]:
        """Inclusive membership window of a cycle, in calendar days."""
        start = _day(cycle.period_start_date)
        if cycle.cycle_end_date is not None:
            end = _day(cycle.cycle_end_date)
        else:
            end = start + timedelta(days=DEFAULT_CYCLE_LENGTH)
        return start, end

    def find_cycle(self, moment_date, cycles: Sequence[CycleRecord]) -> Optional[CycleRecord]:
        """First cycle (in iteration order) whose window contains the date."""
        day = _day(moment_date)
        for cycle in cycles:
            start, end = self.cycle_window(cycle)
            if start <= day <= end:
                return cycle
        return None

    def join_moments_to_cycles(
        self,
        moments: Sequence[Moment],
        cycles: Sequence[CycleRecord],
    ) -> List[Tuple[Moment, CycleRecord]]:
        """
        Pair each timestamped moment with the cycle active on its date.

        Moments without a timestamp or outside every cycle window are dropped.
        """
        pairs = []
        for moment in moments:
            if moment.timestamp is None:
                continue
            cycle = self.find_cycle(moment.timestamp, cycles)
            if cycle is not None:
                pairs.append((moment, cycle))
        return pairs

    # =========================================================================
    # AGGREGATION
    # =========================================================================

    def aggregate_phase_stats(
        self,
        moments: Sequence[Moment],
        cycles: Sequence[CycleRecord],
    ) -> Dict[CyclePhase, PhaseStats]:
        """Accumulate per-phase facet counters for all joined moments."""
        stats = {phase: PhaseStats() for phase in CyclePhase}

        pairs = self.join_moments_to_cycles(moments, cycles)
        for moment, cycle in pairs:
            phase = self.classify_phase(moment.timestamp, cycle.period_start_date)
            facets = categorize(moment)
            bucket = stats[phase]

            bucket.count += 1
            bucket.dates.append(_day(moment.timestamp))
            if facets.positive:
                bucket.positive += 1
            if facets.intimate:
                bucket.intimate += 1
            if facets.conflict:
                bucket.conflict += 1
            if facets.communication:
                bucket.communication += 1
            if facets.emotional:
                bucket.emotional += 1

        logger.info(
            f"📊 Joined {len(pairs)}/{len(moments)} moments to {len(cycles)} cycles"
        )
        return stats

    # =========================================================================
    # TIMING & VARIABILITY
    # =========================================================================

    def predict_next_optimal(
        self,
        cycles: Sequence[CycleRecord],
        optimal_phase: CyclePhase,
        now: datetime,
    ) -> Optional[TimingPrediction]:
        """
        Project the next occurrence of a phase from the most recent cycle.

        A closed cycle's successor starts the day after its end; for an open
        cycle its own start is used.
        """
        if not cycles:
            return None

        latest = max(cycles, key=lambda c: c.period_start_date)
        if latest.cycle_end_date is not None:
            next_cycle_start = latest.cycle_end_date + timedelta(days=1)
        else:
            next_cycle_start = latest.period_start_date

        next_optimal_date = next_cycle_start + timedelta(days=PHASE_START_DAYS[optimal_phase])
        days_until = math.ceil((next_optimal_date - now) / timedelta(days=1))

        return TimingPrediction(
            next_cycle_start=next_cycle_start,
            next_optimal_date=next_optimal_date,
            days_until_optimal=days_until,
        )

    def calculate_cycle_variability(
        self, cycles: Sequence[CycleRecord]
    ) -> Optional[CycleVariability]:
        """Mean and population std dev of the gaps between period starts."""
        if len(cycles) < 2:
            return None

        starts = sorted((_day(c.period_start_date) for c in cycles), reverse=True)
        lengths = [(starts[i] - starts[i + 1]).days for i in range(len(starts) - 1)]

        avg = mean(lengths)
        std_dev = pstdev(lengths)

        if std_dev < VERY_REGULAR_STD_DAYS:
            regularity = "very regular"
        elif std_dev < SLIGHT_VARIATION_STD_DAYS:
            regularity = "slight variation"
        else:
            regularity = "variable"

        return CycleVariability(
            mean_length=avg,
            std_dev=std_dev,
            regularity=regularity,
            summary=f"Cycle length {avg:.0f} ± {std_dev:.1f} days ({regularity})",
        )


# Global instance
cycle_phase_service = CyclePhaseService()
