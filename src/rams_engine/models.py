"""Pydantic models for the knowledge base tables."""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

HazardCategory = Literal["shock", "burn", "fire", "arc", "explosion", "secondary"]
SeverityTier = Literal["low", "medium", "high", "critical"]
ControlCategory = Literal["elimination", "substitution", "engineering", "administrative", "ppe"]
Effectiveness = Literal["high", "medium", "low"]
CompetencyLevel = Literal["awareness", "supervised", "competent", "authorised"]


class _Entity(BaseModel):
    """Immutable record loaded from reference data."""

    model_config = ConfigDict(extra="ignore", frozen=True)


class Hazard(_Entity):
    """A named source of harm with a declared severity tier."""

    code: str
    name: str
    description: str
    category: HazardCategory
    severity: SeverityTier
    regulatory_reference: str | None = None
    hse_guidance: str | None = None
    risk_factors: tuple[str, ...] = ()
    at_risk_persons: tuple[str, ...] = ()
    is_active: bool = True
    sort_order: int = 0


class Control(_Entity):
    """A mitigation measure targeting one or more hazards."""

    code: str
    name: str
    description: str
    category: ControlCategory
    # Hazards this control mitigates; used to attach controls to risk entries.
    applicable_hazard_codes: tuple[str, ...] = ()
    # Declared but not used by residual scoring.
    effectiveness: Effectiveness
    regulatory_reference: str | None = None
    implementation_notes: str | None = None
    verification_required: str | None = None
    is_active: bool = True
    sort_order: int = 0


class ActivityCategory(_Entity):
    """Grouping used to browse activities."""

    code: str
    name: str
    description: str = ""


class Activity(_Entity):
    """A selectable unit of work with its hazard, control and PPE profile."""

    code: str
    name: str
    description: str
    category: str
    # Declaration order is significant: aggregation preserves it.
    hazard_codes: tuple[str, ...] = ()
    control_codes: tuple[str, ...] = ()
    method_points: tuple[str, ...] = ()
    competency_notes: str | None = None
    permits_required: tuple[str, ...] | None = None
    typical_ppe: tuple[str, ...] = ()
    is_active: bool = True
    sort_order: int = 0


class MethodStep(_Entity):
    """One numbered step of a method statement template."""

    step_number: int = Field(ge=1)
    activity: str
    key_points: tuple[str, ...] = ()
    hazards_addressed: tuple[str, ...] = ()
    controls_applied: tuple[str, ...] = ()


class MethodTemplate(_Entity):
    """Pre-built method statement for a family of work types."""

    code: str
    name: str
    description: str
    applicable_work_types: tuple[str, ...] = ()
    pre_work_checks: tuple[str, ...] = ()
    steps: tuple[MethodStep, ...] = ()
    post_work_checks: tuple[str, ...] = ()
    competency_required: tuple[str, ...] = ()
    equipment_required: tuple[str, ...] = ()
    ppe_required: tuple[str, ...] = ()
    emergency_procedures: tuple[str, ...] = ()
    regulatory_references: tuple[str, ...] = ()
    is_active: bool = True
    sort_order: int = 0


class RegulatoryReference(_Entity):
    """A piece of legislation or guidance relevant to the work."""

    code: str
    regulation: str
    section: str
    title: str
    summary: str
    full_text: str | None = None
    applicable_activities: tuple[str, ...] = ()
    key_requirements: tuple[str, ...] = ()
    hse_guidance_ref: str | None = None


class CompetencyRequirement(_Entity):
    """Competence expected of the people carrying out a type of work."""

    code: str
    name: str
    description: str
    level: CompetencyLevel
    qualifications: tuple[str, ...] | None = None
    experience: str | None = None
    assessment_criteria: tuple[str, ...] = ()
    applicable_work_types: tuple[str, ...] = ()
    regulatory_basis: str
