"""
Core services for the application.

This package contains the main service implementations for the application,
including readiness estimation, safety screening, narrative synthesis and the
orchestrator that ties them together.
"""

from .integrated_intelligence import HealthRecordStore, IntegratedIntelligenceService
from .narrative import (
    InsightDraft,
    NarrativeCollaborator,
    NarrativeContext,
    NarrativeServiceConfig,
    NarrativeSynthesisService,
)
from .orchestrator import IntelligenceOrchestrator
from .readiness import ReadinessEstimator
from .result import Result
from .safety import SafetyGuard, sanitize_text

__all__ = [
    "HealthRecordStore",
    "InsightDraft",
    "IntegratedIntelligenceService",
    "IntelligenceOrchestrator",
    "NarrativeCollaborator",
    "NarrativeContext",
    "NarrativeServiceConfig",
    "NarrativeSynthesisService",
    "ReadinessEstimator",
    "Result",
    "SafetyGuard",
    "sanitize_text",
]
