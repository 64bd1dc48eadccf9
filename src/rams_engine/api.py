"""Public API facade for the RAMS engine.

This module provides a single entry point that loads settings, configures
logging, loads and validates the knowledge base and optionally starts the
HTTP service.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterable

from .config import RamsEngineSettings
from .knowledge_base import KnowledgeBase, load_knowledge_base
from .logging_utils import configure_logging
from .reconciliation import IdFactory, RiskRegister
from .service import EngineService


@dataclass
class EngineRuntime:
    """Structured runtime handles for the host application."""

    settings: RamsEngineSettings
    knowledge_base: KnowledgeBase
    service: EngineService

    def new_register(self, selection: Iterable[str] = (), id_factory: IdFactory | None = None) -> RiskRegister:
        """Create a risk register already reconciled against ``selection``."""

        register = RiskRegister(self.knowledge_base, id_factory=id_factory)
        register.select(selection)
        return register


def build_engine(
    settings: RamsEngineSettings | None = None,
    knowledge_base: KnowledgeBase | None = None,
    logger: logging.Logger | None = None,
) -> EngineRuntime:
    """Create an engine runtime; raises KnowledgeBaseIntegrityError on bad data."""

    settings = settings or RamsEngineSettings()
    configure_logging(settings.logging)

    logger = logger or logging.getLogger(__name__)
    try:
        kb = knowledge_base or load_knowledge_base(settings.knowledge_base.data_dir)
    except ValueError:
        logger.exception("knowledge_base_invalid")
        raise

    service = EngineService(kb)
    if settings.service.enabled:
        service.start(settings.service.host, settings.service.port)

    return EngineRuntime(settings=settings, knowledge_base=kb, service=service)
