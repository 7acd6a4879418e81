"""Timetable generation orchestration."""

from studio.generation.catalog import AlgorithmCatalog
from studio.generation.orchestrator import GenerationOrchestrator, GenerationState, OrchestratorView
from studio.generation.payload import GenerationRequest, TimetableDetails
from studio.generation.settings import GenerationSettings, SettingsSnapshot

__all__ = ["AlgorithmCatalog", "GenerationOrchestrator", "GenerationRequest", "GenerationSettings", "GenerationState", "OrchestratorView", "SettingsSnapshot", "TimetableDetails"]
