"""Read-only knowledge base of hazards, controls and work activities.

The tables are loaded once, indexed by code and checked for referential
integrity before anything is allowed to query them. Aggregation assumes every
hazard and control code cited by an activity resolves, so a dangling reference
is reported as a load-time error rather than dropped.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from importlib import resources
from pathlib import Path
from typing import Any, Iterable, Mapping, Sequence, TypeVar

from .models import (
    Activity,
    ActivityCategory,
    CompetencyRequirement,
    Control,
    Hazard,
    MethodTemplate,
    RegulatoryReference,
)

ALL_ELECTRICAL_WORK = "all_electrical_work"

_DATA_FILES = ("hazards.json", "controls.json", "activities.json", "methods.json", "regulations.json")

logger = logging.getLogger(__name__)

_T = TypeVar("_T")


class KnowledgeBaseIntegrityError(ValueError):
    """Raised when the knowledge base contains dangling or duplicate references."""

    def __init__(self, problems: Sequence[str]) -> None:
        self.problems = list(problems)
        summary = "; ".join(self.problems[:5])
        if len(self.problems) > 5:
            summary += f"; ... ({len(self.problems) - 5} more)"
        super().__init__(f"knowledge base failed validation: {summary}")


def _index(items: Iterable[_T], table: str, problems: list[str]) -> dict[str, _T]:
    indexed: dict[str, _T] = {}
    for item in items:
        code = item.code  # type: ignore[attr-defined]
        if code in indexed:
            problems.append(f"duplicate {table} code {code!r}")
            continue
        indexed[code] = item
    return indexed


def _sorted_active(items: Iterable[_T]) -> list[_T]:
    # sorted() is stable, so equal sort_order keeps declaration order.
    return sorted(
        (item for item in items if item.is_active),  # type: ignore[attr-defined]
        key=lambda item: item.sort_order,  # type: ignore[attr-defined]
    )


@dataclass(frozen=True)
class KnowledgeBase:
    """Indexed, validated reference tables.

    Build instances with :meth:`from_tables` or :func:`load_knowledge_base`;
    both validate before returning.
    """

    hazards: Mapping[str, Hazard]
    controls: Mapping[str, Control]
    activities: Mapping[str, Activity]
    category_table: Mapping[str, ActivityCategory] = field(default_factory=dict)
    methods: Mapping[str, MethodTemplate] = field(default_factory=dict)
    regulations: Mapping[str, RegulatoryReference] = field(default_factory=dict)
    competencies: Mapping[str, CompetencyRequirement] = field(default_factory=dict)

    @classmethod
    def from_tables(
        cls,
        hazards: Iterable[Hazard],
        controls: Iterable[Control],
        activities: Iterable[Activity],
        categories: Iterable[ActivityCategory] = (),
        methods: Iterable[MethodTemplate] = (),
        regulations: Iterable[RegulatoryReference] = (),
        competencies: Iterable[CompetencyRequirement] = (),
    ) -> "KnowledgeBase":
        problems: list[str] = []
        kb = cls(
            hazards=_index(hazards, "hazard", problems),
            controls=_index(controls, "control", problems),
            activities=_index(activities, "activity", problems),
            category_table=_index(categories, "category", problems),
            methods=_index(methods, "method", problems),
            regulations=_index(regulations, "regulation", problems),
            competencies=_index(competencies, "competency", problems),
        )
        problems.extend(kb.integrity_problems())
        if problems:
            raise KnowledgeBaseIntegrityError(problems)
        return kb

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "KnowledgeBase":
        """Build from already-deserialized tables keyed by table name."""

        return cls.from_tables(
            hazards=[Hazard.model_validate(item) for item in data.get("hazards", [])],
            controls=[Control.model_validate(item) for item in data.get("controls", [])],
            activities=[Activity.model_validate(item) for item in data.get("activities", [])],
            categories=[ActivityCategory.model_validate(item) for item in data.get("categories", [])],
            methods=[MethodTemplate.model_validate(item) for item in data.get("methods", [])],
            regulations=[RegulatoryReference.model_validate(item) for item in data.get("regulations", [])],
            competencies=[CompetencyRequirement.model_validate(item) for item in data.get("competencies", [])],
        )

    def integrity_problems(self) -> list[str]:
        """Return every dangling reference in the tables."""

        problems: list[str] = []
        for activity in self.activities.values():
            for code in activity.hazard_codes:
                if self.hazard(code) is None:
                    problems.append(f"activity {activity.code!r} cites unknown hazard {code!r}")
            for code in activity.control_codes:
                if self.control(code) is None:
                    problems.append(f"activity {activity.code!r} cites unknown control {code!r}")
            if self.category_table and activity.category not in self.category_table:
                problems.append(f"activity {activity.code!r} has unknown category {activity.category!r}")
        for control in self.controls.values():
            for code in control.applicable_hazard_codes:
                if self.hazard(code) is None:
                    problems.append(f"control {control.code!r} applies to unknown hazard {code!r}")
        for method in self.methods.values():
            for step in method.steps:
                for code in step.hazards_addressed:
                    if self.hazard(code) is None:
                        problems.append(f"method {method.code!r} step {step.step_number} cites unknown hazard {code!r}")
                for code in step.controls_applied:
                    if self.control(code) is None:
                        problems.append(
                            f"method {method.code!r} step {step.step_number} cites unknown control {code!r}"
                        )
        return problems

    def validate(self) -> None:
        """Raise :class:`KnowledgeBaseIntegrityError` if any reference dangles."""

        problems = self.integrity_problems()
        if problems:
            raise KnowledgeBaseIntegrityError(problems)

    # Exact-match lookups. A miss returns None.

    def hazard(self, code: str) -> Hazard | None:
        return self.hazards.get(code)

    def control(self, code: str) -> Control | None:
        return self.controls.get(code)

    def activity(self, code: str) -> Activity | None:
        return self.activities.get(code)

    def method(self, code: str) -> MethodTemplate | None:
        return self.methods.get(code)

    def regulation(self, code: str) -> RegulatoryReference | None:
        return self.regulations.get(code)

    def competency(self, code: str) -> CompetencyRequirement | None:
        return self.competencies.get(code)

    def active_hazards(self) -> list[Hazard]:
        return _sorted_active(self.hazards.values())

    def active_controls(self) -> list[Control]:
        return _sorted_active(self.controls.values())

    def active_activities(self) -> list[Activity]:
        return _sorted_active(self.activities.values())

    def categories(self) -> list[ActivityCategory]:
        return list(self.category_table.values())

    def activities_by_category(self, category: str) -> list[Activity]:
        return [activity for activity in self.active_activities() if activity.category == category]

    def hazards_by_category(self, category: str) -> list[Hazard]:
        return [hazard for hazard in self.active_hazards() if hazard.category == category]

    def controls_by_category(self, category: str) -> list[Control]:
        return [control for control in self.active_controls() if control.category == category]

    def controls_for_hazard(self, hazard_code: str) -> list[Control]:
        return [control for control in self.active_controls() if hazard_code in control.applicable_hazard_codes]

    def methods_for_work_type(self, work_type: str) -> list[MethodTemplate]:
        return [method for method in _sorted_active(self.methods.values()) if work_type in method.applicable_work_types]

    def regulations_for_activity(self, activity: str) -> list[RegulatoryReference]:
        return [
            regulation
            for regulation in self.regulations.values()
            if activity in regulation.applicable_activities or ALL_ELECTRICAL_WORK in regulation.applicable_activities
        ]

    def competencies_for_work_type(self, work_type: str) -> list[CompetencyRequirement]:
        return [
            competency for competency in self.competencies.values() if work_type in competency.applicable_work_types
        ]


def _read_tables(data_dir: Path | None) -> dict[str, Any]:
    tables: dict[str, Any] = {}
    for name in _DATA_FILES:
        if data_dir is not None:
            path = data_dir / name
            if not path.exists():
                logger.debug("knowledge_base_file_missing", extra={"file": str(path)})
                continue
            text = path.read_text(encoding="utf-8")
        else:
            text = resources.files("rams_engine").joinpath("data", name).read_text(encoding="utf-8")
        tables.update(json.loads(text))
    return tables


def load_knowledge_base(data_dir: str | Path | None = None) -> KnowledgeBase:
    """Load and validate the electrical knowledge base.

    With no ``data_dir`` the tables bundled with the package are used. Raises
    :class:`KnowledgeBaseIntegrityError` when validation fails.
    """

    directory = Path(data_dir) if data_dir is not None else None
    kb = KnowledgeBase.from_mapping(_read_tables(directory))
    logger.info(
        "knowledge_base_loaded",
        extra={
            "hazards": len(kb.hazards),
            "controls": len(kb.controls),
            "activities": len(kb.activities),
            "source": str(directory) if directory else "package",
        },
    )
    return kb
