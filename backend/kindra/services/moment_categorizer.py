"""
Moment categorization by emoji and tag membership.

All lookup tables live here so every analysis reads the same sets.
"""
from typing import Iterable, Tuple

from kindra.models.schemas import Moment, MomentFacets


# Facet tables used by the cycle correlation analysis
POSITIVE_EMOJIS = frozenset({
    "😍", "💕", "❤️", "🥰", "😊", "🤗", "💖", "🌟", "✨", "💫", "🔥", "😘", "🥳", "🎉",
})
CONFLICT_EMOJIS = frozenset({
    "😢", "😞", "😕", "💔", "😤", "😠", "🙄", "😣", "😭", "😰", "⚡",
})
INTIMATE_EMOJIS = frozenset({
    "💋", "🔥", "💏", "💑", "😘", "🥵", "🛏️",
})

POSITIVE_TAGS = frozenset({"Green Flag"})
CONFLICT_TAGS = frozenset({"Red Flag", "Yellow Flag"})
INTIMATE_TAGS = frozenset({"Physical Touch"})
COMMUNICATION_TAGS = frozenset({
    "Deep Talk", "Quality Time", "Heart to Heart", "Advice", "Support",
})
EMOTIONAL_TAGS = frozenset({
    "Emotional", "Moody", "Sensitive", "Vulnerable", "Caring",
})

# Mood tables used by the cross-connection analytics
MOOD_POSITIVE_EMOJIS = frozenset({
    "😍", "💕", "❤️", "🎉", "🌅", "✈️", "💝", "📚", "🥰", "😊", "😄", "🤗", "💖",
})
MOOD_NEGATIVE_EMOJIS = frozenset({
    "😢", "😞", "😕", "💔", "😤", "😠", "🙄", "😣", "😭", "😰",
})
MOOD_NEUTRAL_EMOJIS = frozenset({
    "😐", "🤔", "😶", "😑", "🤷‍♀️", "🤷‍♂️",
})

# Stage and trajectory analysis use a narrower positive list than momentum
STAGE_POSITIVE_EMOJIS = frozenset({
    "😍", "💕", "❤️", "🎉", "🌅", "✈️", "💝", "📚", "🥰", "😊", "😄",
})

# Per-connection feed counts
CONNECTION_POSITIVE_EMOJIS = POSITIVE_EMOJIS
CONNECTION_CONFLICT_EMOJIS = CONFLICT_EMOJIS
CONNECTION_POSITIVE_TAGS = frozenset({"Positive"})
CONNECTION_CONFLICT_TAGS = frozenset({"Conflict"})
CONNECTION_INTIMATE_TAGS = frozenset({"Sex", "Intimacy"})


def _has_any(tags: Iterable[str], table: frozenset) -> bool:
    return any(tag in table for tag in tags)


def categorize(moment: Moment) -> MomentFacets:
    """Classify a moment into its (overlapping) boolean facets."""
    tags = moment.tags or []
    emoji = moment.emoji

    return MomentFacets(
        positive=emoji in POSITIVE_EMOJIS or _has_any(tags, POSITIVE_TAGS),
        conflict=emoji in CONFLICT_EMOJIS or _has_any(tags, CONFLICT_TAGS),
        intimate=bool(moment.is_intimate) or emoji in INTIMATE_EMOJIS or _has_any(tags, INTIMATE_TAGS),
        communication=_has_any(tags, COMMUNICATION_TAGS),
        emotional=_has_any(tags, EMOTIONAL_TAGS),
    )


def is_positive_mood(moment: Moment) -> bool:
    return moment.emoji in MOOD_POSITIVE_EMOJIS


def is_negative_mood(moment: Moment) -> bool:
    return moment.emoji in MOOD_NEGATIVE_EMOJIS


def is_neutral_mood(moment: Moment) -> bool:
    return moment.emoji in MOOD_NEUTRAL_EMOJIS


def is_stage_positive(moment: Moment) -> bool:
    return moment.emoji in STAGE_POSITIVE_EMOJIS


def connection_counts(moments: Iterable[Moment]) -> Tuple[int, int, int]:
    """
    Count positive, conflict and intimate moments for one connection.

    Intimacy here comes only from the intimate flag or an intimacy tag;
    emojis never mark a moment intimate.
    """
    positive = conflict = intimate = 0
    for moment in moments:
        tags = moment.tags or []
        if moment.emoji in CONNECTION_POSITIVE_EMOJIS or _has_any(tags, CONNECTION_POSITIVE_TAGS):
            positive += 1
        if moment.emoji in CONNECTION_CONFLICT_EMOJIS or _has_any(tags, CONNECTION_CONFLICT_TAGS):
            conflict += 1
        if moment.is_intimate or _has_any(tags, CONNECTION_INTIMATE_TAGS):
            intimate += 1
    return positive, conflict, intimate
