"""Orchestrator package - coordinates upload batches."""
from .core import UploadOrchestrator
from .session import UploadSession

__all__ = ["UploadOrchestrator", "UploadSession"]
