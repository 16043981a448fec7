"""AnalysisArtifact ORM model — one JSON payload per analysis and kind."""

import json
import uuid
from datetime import UTC, datetime
from typing import Any

from sqlalchemy import String, Text, UniqueConstraint, func
from sqlalchemy.orm import Mapped, mapped_column

from repograde.config import ARTIFACT_TITLES
from repograde.models.base import Base


class AnalysisArtifact(Base):
    __tablename__ = "analysis_artifacts"
    __table_args__ = (
        UniqueConstraint("analysis_id", "kind", name="uq_artifact_kind"),
    )

    id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=lambda: str(uuid.uuid4())
    )
    analysis_id: Mapped[str] = mapped_column(String(64), index=True)
    kind: Mapped[str] = mapped_column(String(100))
    payload: Mapped[str] = mapped_column(Text, default="{}")
    created_at: Mapped[datetime] = mapped_column(
        default=lambda: datetime.now(UTC),
        server_default=func.now(),
    )
    updated_at: Mapped[datetime] = mapped_column(
        default=lambda: datetime.now(UTC),
        server_default=func.now(),
        onupdate=lambda: datetime.now(UTC),
    )

    def payload_dict(self) -> dict[str, Any]:
        return json.loads(self.payload)

    def to_dict(self) -> dict[str, Any]:
        base_kind = self.kind.split(":", 1)[0]
        return {
            "id": self.id,
            "analysis_id": self.analysis_id,
            "kind": self.kind,
            "title": ARTIFACT_TITLES.get(
                base_kind, base_kind.replace("_", " ").title()
            ),
            "payload": self.payload_dict(),
            "created_at": self.created_at.isoformat(),
            "updated_at": self.updated_at.isoformat(),
        }
