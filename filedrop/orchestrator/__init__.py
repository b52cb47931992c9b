"""Orchestrator package - coordinates upload queue dispatch."""
from .core import UploadQueueOrchestrator
from .guard import SubmissionGuard
from .queue import UploadQueue

__all__ = ["UploadQueueOrchestrator", "SubmissionGuard", "UploadQueue"]
