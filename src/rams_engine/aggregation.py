"""Aggregate hazards, controls, PPE and permits across selected activities.

Every function here is pure: the output depends only on the knowledge base and
the activity codes, in the order given. Codes that do not resolve to an
activity contribute nothing; they are not errors because selections come from
the UI at runtime and may reference retired activities.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Iterable

from .knowledge_base import KnowledgeBase
from .models import Activity

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AggregatedRequirements:
    """Deduplicated union of everything a selection of activities implies."""

    activity_codes: tuple[str, ...]
    hazard_codes: tuple[str, ...]
    control_codes: tuple[str, ...]
    ppe: tuple[str, ...]
    permits: tuple[str, ...]


def _resolved(kb: KnowledgeBase, activity_codes: Iterable[str]) -> list[Activity]:
    activities: list[Activity] = []
    for code in activity_codes:
        activity = kb.activity(code)
        if activity is None:
            logger.debug("activity_not_found", extra={"activity_code": code})
            continue
        activities.append(activity)
    return activities


def _unique_in_order(
    kb: KnowledgeBase,
    activity_codes: Iterable[str],
    values: Callable[[Activity], Iterable[str] | None],
) -> list[str]:
    # First occurrence wins; dict preserves insertion order.
    seen: dict[str, None] = {}
    for activity in _resolved(kb, activity_codes):
        for value in values(activity) or ():
            seen.setdefault(value, None)
    return list(seen)


def hazards_for_activities(kb: KnowledgeBase, activity_codes: Iterable[str]) -> list[str]:
    """Unique hazard codes in first-seen order across the selection."""

    return _unique_in_order(kb, activity_codes, lambda activity: activity.hazard_codes)


def controls_for_activities(kb: KnowledgeBase, activity_codes: Iterable[str]) -> list[str]:
    """Unique control codes in first-seen order across the selection."""

    return _unique_in_order(kb, activity_codes, lambda activity: activity.control_codes)


def ppe_for_activities(kb: KnowledgeBase, activity_codes: Iterable[str]) -> list[str]:
    """Unique PPE labels (case-sensitive) in first-seen order."""

    return _unique_in_order(kb, activity_codes, lambda activity: activity.typical_ppe)


def permits_for_activities(kb: KnowledgeBase, activity_codes: Iterable[str]) -> list[str]:
    """Unique permit labels in first-seen order; activities without permits add nothing."""

    return _unique_in_order(kb, activity_codes, lambda activity: activity.permits_required)


def aggregate(kb: KnowledgeBase, activity_codes: Iterable[str]) -> AggregatedRequirements:
    """Run all four aggregations over one selection."""

    codes = tuple(activity_codes)
    return AggregatedRequirements(
        activity_codes=codes,
        hazard_codes=tuple(hazards_for_activities(kb, codes)),
        control_codes=tuple(controls_for_activities(kb, codes)),
        ppe=tuple(ppe_for_activities(kb, codes)),
        permits=tuple(permits_for_activities(kb, codes)),
    )
