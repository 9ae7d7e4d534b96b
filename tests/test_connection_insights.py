"""
Tests for per-connection insights
"""
from datetime import datetime, timedelta

import pytest

from kindra.models.schemas import Connection
from kindra.services.connection_insights_service import connection_insights_service

NOW = datetime(2024, 1, 25, 12, 0)
CYCLE_START = datetime(2024, 1, 1)


@pytest.fixture
def alex():
    return Connection(id=1, name="Alex", relationship_stage="Dating")


@pytest.fixture
def me():
    return Connection(id=9, name="Myself", relationship_stage="Self")


@pytest.fixture
def affectionate_days(make_moment):
    """Nine daily intimate 😘 moments on days 1..9 of a cycle starting January 1"""
    return [
        make_moment(CYCLE_START + timedelta(days=day), emoji="😘", is_intimate=True, connection_id=1)
        for day in range(1, 10)
    ]


class TestFoundation:
    """Test the early-tracking path"""

    def test_relationship_foundation(self, make_moment, alex):
        moments = [make_moment(NOW, connection_id=1), make_moment(NOW, connection_id=1)]
        insights = connection_insights_service.generate_connection_insights(alex, moments, [], NOW)

        assert len(insights) == 1
        assert insights[0].title == "Relationship Foundation"
        assert insights[0].confidence == 100
        assert insights[0].data_points == ["2 moments recorded", "Dating stage", "Analytics framework ready"]

    def test_self_foundation(self, me):
        insights = connection_insights_service.generate_connection_insights(me, [], [], NOW)
        assert insights[0].title == "Personal Development Foundation"

    def test_other_connections_moments_are_ignored(self, make_moment, alex):
        moments = [make_moment(NOW, connection_id=2) for _ in range(5)]
        insights = connection_insights_service.generate_connection_insights(alex, moments, [], NOW)
        assert insights[0].data_points[0] == "0 moments recorded"


class TestCommunicationPattern:
    """Test recent activity wording"""

    def test_moderate_activity(self, make_moment, alex):
        moments = [
            make_moment(NOW - timedelta(days=2 * i), emoji="😐", connection_id=1)
            for i in range(6)
        ]
        insights = connection_insights_service.generate_connection_insights(alex, moments, [], NOW)
        pattern = insights[0]

        assert pattern.title == "Alex Communication Pattern"
        assert pattern.type == "neutral"
        assert pattern.confidence == 80
        assert "6 moments in the last 30 days" in pattern.description
        assert pattern.data_points[2] == "2 days average between interactions"

    def test_no_recent_activity(self, make_moment, alex):
        moments = [
            make_moment(NOW - timedelta(days=60 + i), emoji="😊", connection_id=1)
            for i in range(3)
        ]
        insights = connection_insights_service.generate_connection_insights(alex, moments, [], NOW)
        assert "Alex Communication Pattern" not in [i.title for i in insights]

    def test_self_reflection_wording(self, make_moment, me):
        moments = [make_moment(NOW - timedelta(days=i), emoji="📝", connection_id=9) for i in range(3)]
        insights = connection_insights_service.generate_connection_insights(me, moments, [], NOW)
        assert insights[0].title == "Self-Reflection Pattern"
        assert insights[0].type == "warning"


class TestEmotionalDynamic:
    """Test positive versus challenging balance"""

    def test_positive_dynamic(self, make_moment, alex):
        emojis = ["😊", "😊", "😊", "😊", "😢"]
        moments = [make_moment(NOW, emoji=e, connection_id=1) for e in emojis]
        insights = connection_insights_service.generate_connection_insights(alex, moments, [], NOW)
        dynamic = next(i for i in insights if i.title == "Alex Emotional Dynamic")

        assert dynamic.type == "positive"
        assert dynamic.data_points[2] == "80% positive ratio"
        assert dynamic.confidence == 85

    def test_challenging_dynamic(self, make_moment, alex):
        moments = [make_moment(NOW, emoji="💔", connection_id=1) for _ in range(4)]
        insights = connection_insights_service.generate_connection_insights(alex, moments, [], NOW)
        dynamic = next(i for i in insights if i.title == "Alex Emotional Dynamic")
        assert dynamic.type == "warning"

    def test_half_percentages_round_up(self, make_moment, alex):
        moments = [make_moment(NOW, emoji=e, connection_id=1) for e in ["😊"] * 5 + ["😢"] * 3]
        insights = connection_insights_service.generate_connection_insights(alex, moments, [], NOW)
        dynamic = next(i for i in insights if i.title == "Alex Emotional Dynamic")

        assert dynamic.data_points[2] == "63% positive ratio"
        assert "63% positive moments versus 38% challenging" in dynamic.description

    def test_positive_tag_counts(self, make_moment, alex):
        moments = [make_moment(NOW, emoji="📝", tags=["Positive"], connection_id=1) for _ in range(4)]
        insights = connection_insights_service.generate_connection_insights(alex, moments, [], NOW)
        dynamic = next(i for i in insights if i.title == "Alex Emotional Dynamic")
        assert dynamic.data_points[:2] == ["4 positive moments", "0 challenging moments"]

    def test_conflict_tag_counts(self, make_moment, alex):
        moments = [make_moment(NOW, emoji="📝", tags=["Conflict"], connection_id=1) for _ in range(3)]
        insights = connection_insights_service.generate_connection_insights(alex, moments, [], NOW)
        dynamic = next(i for i in insights if i.title == "Alex Emotional Dynamic")
        assert dynamic.type == "warning"

    def test_green_flag_tag_does_not_count(self, make_moment, alex):
        moments = [make_moment(NOW, emoji="📝", tags=["Green Flag"], connection_id=1) for _ in range(4)]
        insights = connection_insights_service.generate_connection_insights(alex, moments, [], NOW)
        assert "Alex Emotional Dynamic" not in [i.title for i in insights]


class TestIntimacyPattern:
    """Test which moments count as intimate"""

    def test_intimate_emojis_alone_do_not_count(self, make_moment, alex):
        moments = [make_moment(NOW, emoji="🔥", connection_id=1) for _ in range(6)]
        insights = connection_insights_service.generate_connection_insights(alex, moments, [], NOW)
        assert "Alex Intimacy Pattern" not in [i.title for i in insights]

    @pytest.mark.parametrize("tag", ["Sex", "Intimacy"])
    def test_intimacy_tags_count(self, make_moment, alex, tag):
        moments = [make_moment(NOW, emoji="📝", connection_id=1) for _ in range(4)]
        moments += [make_moment(NOW, emoji="📝", tags=[tag], connection_id=1) for _ in range(2)]
        insights = connection_insights_service.generate_connection_insights(alex, moments, [], NOW)
        intimacy = next(i for i in insights if i.title == "Alex Intimacy Pattern")

        assert intimacy.data_points[:2] == ["2 intimate moments recorded", "33% intimacy frequency"]
        assert intimacy.confidence == 80


class TestFullFeed:
    """Test intimacy, cycle correlation and the cap"""

    def test_four_insights_with_cycle_correlation(self, affectionate_days, make_cycle, alex):
        cycles = [make_cycle(CYCLE_START, connection_id=1)]
        insights = connection_insights_service.generate_connection_insights(
            alex, affectionate_days, cycles, NOW
        )

        assert [i.title for i in insights] == [
            "Alex Communication Pattern",
            "Alex Emotional Dynamic",
            "Alex Intimacy Pattern",
            "Alex Cycle Phase Correlation",
        ]
        correlation = insights[-1]
        assert correlation.description.startswith("Your relationship with Alex shows")
        assert insights[2].data_points[1] == "100% intimacy frequency"

    def test_own_cycles_are_not_attributed_to_connection(self, affectionate_days, make_cycle, alex):
        cycles = [make_cycle(CYCLE_START, connection_id=None)]
        insights = connection_insights_service.generate_connection_insights(
            alex, affectionate_days, cycles, NOW
        )
        assert len(insights) == 3

    def test_cycle_correlation_needs_more_than_eight_moments(self, affectionate_days, make_cycle, alex):
        cycles = [make_cycle(CYCLE_START, connection_id=1)]
        insights = connection_insights_service.generate_connection_insights(
            alex, affectionate_days[:8], cycles, NOW
        )
        assert "Alex Cycle Phase Correlation" not in [i.title for i in insights]

    def test_capped_at_four(self, affectionate_days, make_cycle, alex):
        cycles = [make_cycle(CYCLE_START, connection_id=1)]
        insights = connection_insights_service.generate_connection_insights(
            alex, affectionate_days, cycles, NOW
        )
        assert len(insights) <= 4
