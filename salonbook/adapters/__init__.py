"""
Adapters layer - External integrations (salon backend API).
"""

from .mock_backend import MockSalonBackend
from .rest_backend import RestSalonBackend

__all__ = ["MockSalonBackend", "RestSalonBackend"]
