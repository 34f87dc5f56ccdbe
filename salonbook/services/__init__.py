"""
Service layer helpers that orchestrate adapters and domain logic.
"""

from .availability import AvailabilityService, AvailabilitySettings, SalonBackendProtocol
from .progress_store import FileProgressStore, InMemoryProgressStore, ProgressStore
from .scheduler import AsyncioScheduler, CancellationToken, VirtualScheduler
from .workflow import BookingWorkflow, CommitResult

__all__ = [
    "AsyncioScheduler",
    "AvailabilityService",
    "AvailabilitySettings",
    "BookingWorkflow",
    "CancellationToken",
    "CommitResult",
    "FileProgressStore",
    "InMemoryProgressStore",
    "ProgressStore",
    "SalonBackendProtocol",
    "VirtualScheduler",
]
