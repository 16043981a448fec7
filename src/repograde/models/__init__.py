"""SQLAlchemy ORM models."""

from repograde.models.artifact import AnalysisArtifact
from repograde.models.base import Base

__all__ = [
    "AnalysisArtifact",
    "Base",
]
