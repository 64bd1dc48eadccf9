"""Activity-to-risk aggregation engine for construction RAMS documents."""

from .aggregation import (
    AggregatedRequirements,
    aggregate,
    controls_for_activities,
    hazards_for_activities,
    permits_for_activities,
    ppe_for_activities,
)
from .api import EngineRuntime, build_engine
from .config import KnowledgeBaseConfig, LoggingConfig, RamsEngineSettings, ServiceConfig
from .context import (
    DocumentContext,
    DocumentGenerationError,
    TextGenerator,
    build_document_context,
    export_rows,
    generate_sections,
)
from .knowledge_base import KnowledgeBase, KnowledgeBaseIntegrityError, load_knowledge_base
from .logging_utils import JsonFormatter, configure_logging
from .models import (
    Activity,
    ActivityCategory,
    CompetencyRequirement,
    Control,
    Hazard,
    MethodStep,
    MethodTemplate,
    RegulatoryReference,
)
from .reconciliation import (
    RiskAssessmentEntry,
    RiskRegister,
    RiskSummary,
    add_custom_entry,
    available_custom_hazards,
    derive_entry,
    reconcile,
    regenerate,
    remove_entry,
    summarize,
    update_entry,
)
from .scoring import (
    InvalidScoreError,
    RiskMatrix,
    ScorePair,
    initial_scores_for_severity,
    residual_scores,
    risk_level,
    risk_score,
    validate_score,
)
from .service import EngineService, aggregate_payload

__all__ = [
    "AggregatedRequirements",
    "aggregate",
    "controls_for_activities",
    "hazards_for_activities",
    "permits_for_activities",
    "ppe_for_activities",
    "EngineRuntime",
    "build_engine",
    "KnowledgeBaseConfig",
    "LoggingConfig",
    "RamsEngineSettings",
    "ServiceConfig",
    "DocumentContext",
    "DocumentGenerationError",
    "TextGenerator",
    "build_document_context",
    "export_rows",
    "generate_sections",
    "KnowledgeBase",
    "KnowledgeBaseIntegrityError",
    "load_knowledge_base",
    "JsonFormatter",
    "configure_logging",
    "Activity",
    "ActivityCategory",
    "CompetencyRequirement",
    "Control",
    "Hazard",
    "MethodStep",
    "MethodTemplate",
    "RegulatoryReference",
    "RiskAssessmentEntry",
    "RiskRegister",
    "RiskSummary",
    "add_custom_entry",
    "available_custom_hazards",
    "derive_entry",
    "reconcile",
    "regenerate",
    "remove_entry",
    "summarize",
    "update_entry",
    "InvalidScoreError",
    "RiskMatrix",
    "ScorePair",
    "initial_scores_for_severity",
    "residual_scores",
    "risk_level",
    "risk_score",
    "validate_score",
    "EngineService",
    "aggregate_payload",
]
