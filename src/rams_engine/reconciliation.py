"""Risk assessment entries and their reconciliation against activity selections.

The transition functions in this module are pure: each takes the current list
of entries and returns the complete next list. Derived entries follow the
activity selection; entries the user has edited keep their edits for as long
as their hazard stays implied, and custom entries are never touched by a
recompute.

:class:`RiskRegister` wraps the transitions for callers that want a single
owned state object. It swaps the whole list in one assignment so consumers
never observe a half-reconciled register.
"""

from __future__ import annotations

import logging
import threading
import uuid
from dataclasses import dataclass, replace
from typing import Any, Callable, Iterable, Sequence

from .aggregation import controls_for_activities, hazards_for_activities
from .knowledge_base import KnowledgeBase
from .models import Control, Hazard
from .scoring import (
    CUSTOM_INITIAL,
    CUSTOM_RESIDUAL,
    RiskLevel,
    ScorePair,
    initial_scores_for_severity,
    residual_scores,
    validate_score,
)

logger = logging.getLogger(__name__)

IdFactory = Callable[[], str]

_SCORE_FIELDS = frozenset({"initial_likelihood", "initial_severity", "residual_likelihood", "residual_severity"})
_EDITABLE_FIELDS = _SCORE_FIELDS | {"notes", "additional_controls"}


def new_entry_id() -> str:
    return uuid.uuid4().hex


@dataclass(frozen=True)
class RiskAssessmentEntry:
    """One assessed hazard, either derived from activities or added by the user."""

    id: str
    hazard: Hazard
    # Controls auto-attached at derivation time; custom entries start empty.
    controls: tuple[Control, ...]
    initial_likelihood: int
    initial_severity: int
    residual_likelihood: int
    residual_severity: int
    additional_controls: tuple[str, ...] = ()
    notes: str = ""
    is_custom: bool = False

    @property
    def hazard_code(self) -> str:
        return self.hazard.code

    @property
    def initial(self) -> ScorePair:
        return ScorePair(self.initial_likelihood, self.initial_severity)

    @property
    def residual(self) -> ScorePair:
        return ScorePair(self.residual_likelihood, self.residual_severity)

    @property
    def initial_score(self) -> int:
        return self.initial.score

    @property
    def residual_score(self) -> int:
        return self.residual.score

    @property
    def initial_level(self) -> RiskLevel:
        return self.initial.level

    @property
    def residual_level(self) -> RiskLevel:
        return self.residual.level


@dataclass(frozen=True)
class RiskSummary:
    """Counts of entries by residual risk level."""

    total: int
    high: int
    medium: int
    low: int


def derive_entry(
    kb: KnowledgeBase,
    hazard_code: str,
    control_codes: Iterable[str],
    id_factory: IdFactory = new_entry_id,
) -> RiskAssessmentEntry | None:
    """Create a fresh derived entry, or None if the hazard does not resolve."""

    hazard = kb.hazard(hazard_code)
    if hazard is None:
        logger.debug("hazard_not_found", extra={"hazard_code": hazard_code})
        return None

    controls: list[Control] = []
    for code in control_codes:
        control = kb.control(code)
        if control is None:
            logger.debug("control_not_found", extra={"control_code": code})
            continue
        if hazard_code in control.applicable_hazard_codes:
            controls.append(control)

    initial = initial_scores_for_severity(hazard.severity)
    residual = residual_scores(initial, len(controls))
    return RiskAssessmentEntry(
        id=id_factory(),
        hazard=hazard,
        controls=tuple(controls),
        initial_likelihood=initial.likelihood,
        initial_severity=initial.severity,
        residual_likelihood=residual.likelihood,
        residual_severity=residual.severity,
    )


def reconcile(
    entries: Sequence[RiskAssessmentEntry],
    kb: KnowledgeBase,
    selection: Iterable[str],
    id_factory: IdFactory = new_entry_id,
) -> list[RiskAssessmentEntry]:
    """Return the next list of entries for a new activity selection.

    Derived entries whose hazard is still implied are kept as they are,
    including any user edits. Newly implied hazards get fresh entries.
    Derived entries whose hazard is no longer implied are dropped. Custom
    entries are appended unchanged.
    """

    codes = tuple(selection)
    hazard_codes = hazards_for_activities(kb, codes)
    control_codes = controls_for_activities(kb, codes)

    existing: dict[str, RiskAssessmentEntry] = {}
    for entry in entries:
        if not entry.is_custom:
            existing.setdefault(entry.hazard_code, entry)

    derived: list[RiskAssessmentEntry] = []
    for hazard_code in hazard_codes:
        kept = existing.get(hazard_code)
        if kept is not None:
            derived.append(kept)
            continue
        created = derive_entry(kb, hazard_code, control_codes, id_factory)
        if created is not None:
            derived.append(created)

    custom = [entry for entry in entries if entry.is_custom]
    return derived + custom


def regenerate(
    entries: Sequence[RiskAssessmentEntry],
    kb: KnowledgeBase,
    selection: Iterable[str],
    id_factory: IdFactory = new_entry_id,
) -> list[RiskAssessmentEntry]:
    """Discard derived entries (and their edits) and derive them afresh."""

    custom = [entry for entry in entries if entry.is_custom]
    return reconcile(custom, kb, selection, id_factory)


def update_entry(
    entries: Sequence[RiskAssessmentEntry],
    entry_id: str,
    **changes: Any,
) -> list[RiskAssessmentEntry]:
    """Merge user edits into the entry with ``entry_id``.

    Scores must be integers in 1..5; anything else raises
    :class:`~rams_engine.scoring.InvalidScoreError` rather than being clamped.
    An unknown id leaves the entries unchanged.
    """

    unknown = set(changes) - _EDITABLE_FIELDS
    if unknown:
        raise TypeError(f"cannot update field(s): {', '.join(sorted(unknown))}")

    cleaned: dict[str, Any] = {}
    for name, value in changes.items():
        if name in _SCORE_FIELDS:
            cleaned[name] = validate_score(value, name)
        elif name == "additional_controls":
            if isinstance(value, str):
                raise TypeError("additional_controls must be a sequence of strings")
            cleaned[name] = tuple(str(item) for item in value)
        elif value is None:
            # Clearing notes.
            cleaned[name] = ""
        elif isinstance(value, str):
            cleaned[name] = value
        else:
            raise TypeError("notes must be a string or None")

    return [replace(entry, **cleaned) if entry.id == entry_id else entry for entry in entries]


def remove_entry(entries: Sequence[RiskAssessmentEntry], entry_id: str) -> list[RiskAssessmentEntry]:
    """Remove an entry, derived or custom. Derived ones return on the next reconcile."""

    return [entry for entry in entries if entry.id != entry_id]


def add_custom_entry(
    entries: Sequence[RiskAssessmentEntry],
    kb: KnowledgeBase,
    hazard_code: str,
    id_factory: IdFactory = new_entry_id,
) -> list[RiskAssessmentEntry]:
    """Append a user-added entry for ``hazard_code``.

    No-op if any entry already tracks the hazard or the code does not resolve.
    """

    if any(entry.hazard_code == hazard_code for entry in entries):
        return list(entries)
    hazard = kb.hazard(hazard_code)
    if hazard is None:
        logger.debug("hazard_not_found", extra={"hazard_code": hazard_code})
        return list(entries)
    entry = RiskAssessmentEntry(
        id=id_factory(),
        hazard=hazard,
        controls=(),
        initial_likelihood=CUSTOM_INITIAL.likelihood,
        initial_severity=CUSTOM_INITIAL.severity,
        residual_likelihood=CUSTOM_RESIDUAL.likelihood,
        residual_severity=CUSTOM_RESIDUAL.severity,
        is_custom=True,
    )
    return [*entries, entry]


def summarize(entries: Iterable[RiskAssessmentEntry]) -> RiskSummary:
    total = high = medium = low = 0
    for entry in entries:
        total += 1
        level = entry.residual_level
        if level in ("high", "very_high"):
            high += 1
        elif level == "medium":
            medium += 1
        else:
            low += 1
    return RiskSummary(total=total, high=high, medium=medium, low=low)


def available_custom_hazards(kb: KnowledgeBase, entries: Iterable[RiskAssessmentEntry]) -> list[Hazard]:
    """Active hazards that no entry tracks yet."""

    tracked = {entry.hazard_code for entry in entries}
    return [hazard for hazard in kb.active_hazards() if hazard.code not in tracked]


class RiskRegister:
    """Caller-owned risk register for a single document.

    Each operation computes the next list in full and then replaces the
    current one in a single assignment.
    """

    def __init__(
        self,
        kb: KnowledgeBase,
        entries: Iterable[RiskAssessmentEntry] = (),
        selection: Iterable[str] = (),
        id_factory: IdFactory | None = None,
        logger: logging.Logger | None = None,
    ) -> None:
        self._kb = kb
        self._entries: tuple[RiskAssessmentEntry, ...] = tuple(entries)
        self._selection: tuple[str, ...] = tuple(selection)
        self._id_factory = id_factory or new_entry_id
        self._logger = logger or logging.getLogger(__name__)
        self._lock = threading.Lock()

    @property
    def entries(self) -> list[RiskAssessmentEntry]:
        return list(self._entries)

    @property
    def selection(self) -> tuple[str, ...]:
        return self._selection

    def get(self, entry_id: str) -> RiskAssessmentEntry | None:
        for entry in self._entries:
            if entry.id == entry_id:
                return entry
        return None

    def select(self, activity_codes: Iterable[str]) -> list[RiskAssessmentEntry]:
        """Reconcile against a new activity selection."""

        codes = tuple(activity_codes)
        with self._lock:
            next_entries = reconcile(self._entries, self._kb, codes, self._id_factory)
            self._entries, self._selection = tuple(next_entries), codes
        self._logger.info(
            "risk_register_reconciled",
            extra={"activities": len(codes), "entries": len(next_entries)},
        )
        return list(next_entries)

    def regenerate(self) -> list[RiskAssessmentEntry]:
        with self._lock:
            next_entries = regenerate(self._entries, self._kb, self._selection, self._id_factory)
            self._entries = tuple(next_entries)
        self._logger.info("risk_register_regenerated", extra={"entries": len(next_entries)})
        return list(next_entries)

    def update(self, entry_id: str, **changes: Any) -> RiskAssessmentEntry | None:
        with self._lock:
            self._entries = tuple(update_entry(self._entries, entry_id, **changes))
        return self.get(entry_id)

    def remove(self, entry_id: str) -> None:
        with self._lock:
            self._entries = tuple(remove_entry(self._entries, entry_id))

    def add_custom(self, hazard_code: str) -> RiskAssessmentEntry | None:
        """Add a custom entry; returns it, or None when rejected."""

        with self._lock:
            before = len(self._entries)
            self._entries = tuple(add_custom_entry(self._entries, self._kb, hazard_code, self._id_factory))
            added = self._entries[-1] if len(self._entries) > before else None
        if added is None:
            self._logger.info("custom_entry_rejected", extra={"hazard_code": hazard_code})
        return added

    def summary(self) -> RiskSummary:
        return summarize(self._entries)

    def available_custom_hazards(self) -> list[Hazard]:
        return available_custom_hazards(self._kb, self._entries)
