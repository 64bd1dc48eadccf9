"""Context handed to the document-generation and export collaborators.

The engine does not prescribe how RAMS documents are written; it assembles a
flat, JSON-ready context from the current selection and risk register and
hands it to a :class:`TextGenerator` that returns markdown per section.
"""

from __future__ import annotations

import logging
from typing import Any, Iterable, Mapping, Protocol, Sequence

from pydantic import BaseModel, ConfigDict, Field

from .aggregation import aggregate
from .knowledge_base import KnowledgeBase
from .reconciliation import RiskAssessmentEntry
from .scoring import RiskMatrix

logger = logging.getLogger(__name__)

DEFAULT_SECTIONS = ("methods", "risks", "emergency")


class DocumentGenerationError(RuntimeError):
    """Raised when the text generator fails for a section."""


class _ContextModel(BaseModel):
    model_config = ConfigDict(frozen=True)


class ActivitySummary(_ContextModel):
    code: str
    name: str
    description: str
    category: str
    method_points: list[str]
    competency_notes: str | None = None
    typical_ppe: list[str]
    permits_required: list[str]


class HazardSummary(_ContextModel):
    code: str
    name: str
    description: str
    severity: str


class ControlSummary(_ContextModel):
    code: str
    name: str
    description: str


class RiskSummaryRow(_ContextModel):
    hazard_code: str
    hazard_name: str
    is_custom: bool
    controls: list[str]
    additional_controls: list[str]
    initial_likelihood: int
    initial_severity: int
    initial_score: int
    initial_level: str
    residual_likelihood: int
    residual_severity: int
    residual_score: int
    residual_level: str
    notes: str = ""


class RegulationSummary(_ContextModel):
    code: str
    regulation: str
    section: str
    title: str


class DocumentContext(_ContextModel):
    """Everything the text generator needs to write a RAMS document."""

    activity_codes: list[str]
    activities: list[ActivitySummary]
    hazards: list[HazardSummary]
    controls: list[ControlSummary]
    ppe: list[str]
    permits: list[str]
    risks: list[RiskSummaryRow]
    regulations: list[RegulationSummary] = Field(default_factory=list)
    # Free-text answers and project details supplied by the caller.
    site_context: dict[str, Any] = Field(default_factory=dict)

    def as_dict(self) -> dict[str, Any]:
        return self.model_dump(mode="json")


class TextGenerator(Protocol):
    """Protocol for the external text-generation service."""

    def generate(self, section: str, context: DocumentContext) -> str:
        """Return markdown for ``section``."""


def risk_row(entry: RiskAssessmentEntry) -> RiskSummaryRow:
    return RiskSummaryRow(
        hazard_code=entry.hazard_code,
        hazard_name=entry.hazard.name,
        is_custom=entry.is_custom,
        controls=[control.name for control in entry.controls],
        additional_controls=list(entry.additional_controls),
        initial_likelihood=entry.initial_likelihood,
        initial_severity=entry.initial_severity,
        initial_score=entry.initial_score,
        initial_level=entry.initial_level,
        residual_likelihood=entry.residual_likelihood,
        residual_severity=entry.residual_severity,
        residual_score=entry.residual_score,
        residual_level=entry.residual_level,
        notes=entry.notes,
    )


def build_document_context(
    kb: KnowledgeBase,
    selection: Iterable[str],
    entries: Sequence[RiskAssessmentEntry],
    site_context: Mapping[str, Any] | None = None,
) -> DocumentContext:
    """Assemble the generator context for a selection and its risk entries."""

    requirements = aggregate(kb, selection)
    activities = [kb.activity(code) for code in dict.fromkeys(requirements.activity_codes)]
    hazards = [kb.hazard(code) for code in requirements.hazard_codes]
    controls = [kb.control(code) for code in requirements.control_codes]

    regulations: dict[str, RegulationSummary] = {}
    for activity in activities:
        if activity is None:
            continue
        for regulation in kb.regulations_for_activity(activity.code):
            regulations.setdefault(
                regulation.code,
                RegulationSummary(
                    code=regulation.code,
                    regulation=regulation.regulation,
                    section=regulation.section,
                    title=regulation.title,
                ),
            )

    return DocumentContext(
        activity_codes=list(requirements.activity_codes),
        activities=[
            ActivitySummary(
                code=activity.code,
                name=activity.name,
                description=activity.description,
                category=activity.category,
                method_points=list(activity.method_points),
                competency_notes=activity.competency_notes,
                typical_ppe=list(activity.typical_ppe),
                permits_required=list(activity.permits_required or ()),
            )
            for activity in activities
            if activity is not None
        ],
        hazards=[
            HazardSummary(code=hazard.code, name=hazard.name, description=hazard.description, severity=hazard.severity)
            for hazard in hazards
            if hazard is not None
        ],
        controls=[
            ControlSummary(code=control.code, name=control.name, description=control.description)
            for control in controls
            if control is not None
        ],
        ppe=list(requirements.ppe),
        permits=list(requirements.permits),
        risks=[risk_row(entry) for entry in entries],
        regulations=list(regulations.values()),
        site_context=dict(site_context or {}),
    )


def generate_sections(
    generator: TextGenerator,
    context: DocumentContext,
    sections: Iterable[str] = DEFAULT_SECTIONS,
) -> dict[str, str]:
    """Ask the generator for each section in turn."""

    output: dict[str, str] = {}
    for section in sections:
        try:
            output[section] = generator.generate(section, context)
        except Exception as exc:
            logger.error("section_generation_failed", extra={"section": section, "error": str(exc)})
            raise DocumentGenerationError(f"failed to generate section {section!r}: {exc}") from exc
    return output


def export_rows(entries: Iterable[RiskAssessmentEntry]) -> list[dict[str, Any]]:
    """Flat rows for document export, in register order."""

    rows: list[dict[str, Any]] = []
    for entry in entries:
        row = risk_row(entry).model_dump()
        additional = row.pop("additional_controls")
        row["controls"] = "; ".join([*row["controls"], *additional])
        row["initial_rating"] = RiskMatrix.describe(entry.initial)
        row["residual_rating"] = RiskMatrix.describe(entry.residual)
        row["residual_colour"] = RiskMatrix.colour(entry.residual_score)
        rows.append(row)
    return rows
