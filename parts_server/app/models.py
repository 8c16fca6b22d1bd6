from __future__ import annotations

import uuid
from typing import Any, Dict

from sqlalchemy import JSON, Column, DateTime, ForeignKey, Integer, String, Uuid
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from .database import Base

# JSONB on PostgreSQL, plain JSON elsewhere (SQLite in tests).
JSONType = JSON().with_variant(JSONB(), "postgresql")


class Part(Base):
    __tablename__ = "parts"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)

    # Globally unique across projects, assigned once.
    name = Column(String, unique=True, nullable=False, index=True)

    type = Column(String, nullable=False, index=True)
    dimensions = Column(JSONType, nullable=False, default=dict)
    status = Column(String, nullable=False, default="measured")
    project_id = Column(String, nullable=True, index=True)
    parent_part_id = Column(
        Uuid(as_uuid=True),
        ForeignKey("parts.id", ondelete="CASCADE"),
        nullable=True,
        index=True,
    )

    description = Column(String, nullable=True)
    designer = Column(String, nullable=True)
    cad_drawing = Column(String, nullable=True)
    pictures = Column(JSONType, nullable=False, default=list)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    # Deleting a part deletes its sub-parts, recursively.
    sub_parts = relationship("Part", cascade="all, delete-orphan")

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": str(self.id),
            "name": self.name,
            "type": self.type,
            "dimensions": self.dimensions or {},
            "status": self.status,
            "project_id": self.project_id,
            "parent_part_id": str(self.parent_part_id) if self.parent_part_id else None,
            "description": self.description,
            "designer": self.designer,
            "cad_drawing": self.cad_drawing,
            "pictures": self.pictures or [],
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }


class PartCounter(Base):
    __tablename__ = "part_counters"

    prefix = Column(String, primary_key=True)
    next_value = Column(Integer, nullable=False)
