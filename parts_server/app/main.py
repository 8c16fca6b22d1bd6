"""Parts backend.

Run with the `server` extra installed:

    uvicorn parts_server.app.main:app --host 0.0.0.0 --port 8000

Reads DATABASE_URL and API_KEY from the environment.
"""
from __future__ import annotations

import logging
import os
import uuid
from typing import Any, Dict, List, Optional

from fastapi import Depends, FastAPI, HTTPException, Security
from fastapi.middleware.cors import CORSMiddleware
from fastapi.security.api_key import APIKeyHeader
from pydantic import BaseModel, Field, conint
from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from parts_logic.core.naming import next_number_from_names
from parts_logic.models.types import PREFIX_PART_TYPE, PartStatus, PartType

from .database import Base, SessionLocal, engine
from .models import Part, PartCounter

logger = logging.getLogger(__name__)

app = FastAPI(title="Parts Backend", version="1.0.0")

# Allow local development. Tighten this in production.
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Create tables on startup (simple approach). For production, consider migrations later.
Base.metadata.create_all(bind=engine)

API_KEY = os.getenv("API_KEY", "change-me")
api_key_header = APIKeyHeader(name="X-API-Key", auto_error=False)


def get_db() -> Session:
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def require_api_key(api_key: Optional[str] = Security(api_key_header)) -> None:
    if not api_key or api_key != API_KEY:
        raise HTTPException(status_code=401, detail="Invalid or missing API key")


@app.get("/health", dependencies=[Depends(require_api_key)])
def health() -> Dict[str, str]:
    return {"status": "ok"}


class PartCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    type: PartType
    dimensions: Dict[str, Any] = Field(default_factory=dict)
    status: PartStatus = PartStatus.MEASURED
    project_id: Optional[str] = None
    parent_part_id: Optional[uuid.UUID] = None
    description: Optional[str] = None
    designer: Optional[str] = None
    cad_drawing: Optional[str] = None
    pictures: List[str] = Field(default_factory=list)


class PartUpdate(BaseModel):
    # Present only to reject renames with a clear message.
    name: Optional[str] = None

    type: Optional[PartType] = None
    dimensions: Optional[Dict[str, Any]] = None
    status: Optional[PartStatus] = None
    project_id: Optional[str] = None
    description: Optional[str] = None
    designer: Optional[str] = None
    cad_drawing: Optional[str] = None
    pictures: Optional[List[str]] = None


class SequenceResponse(BaseModel):
    prefix: str
    value: int


def _get_part_or_404(db: Session, part_id: uuid.UUID) -> Part:
    part = db.get(Part, part_id)
    if part is None:
        raise HTTPException(status_code=404, detail="Part not found")
    return part


def _count_descendants(part: Part) -> int:
    return sum(1 + _count_descendants(child) for child in part.sub_parts)


@app.get("/parts", dependencies=[Depends(require_api_key)])
def list_parts(
    type: Optional[PartType] = None,
    parent_part_id: Optional[uuid.UUID] = None,
    project_id: Optional[str] = None,
    name: Optional[str] = None,
    name_prefix: Optional[str] = None,
    limit: conint(ge=1, le=5000) = 500,
    offset: conint(ge=0) = 0,
    paged: bool = False,
    db: Session = Depends(get_db),
) -> Any:
    """
    Return parts, oldest first.

    - Equality filters on type, parent_part_id, project_id and name
    - name_prefix narrows to names starting with the given prefix (allocation scans)
    - If `paged=true`, returns a wrapper with {items,total,limit,offset,next_offset}
      (otherwise returns a plain list).
    """
    base = select(Part)
    if type is not None:
        base = base.where(Part.type == type.value)
    if parent_part_id is not None:
        base = base.where(Part.parent_part_id == parent_part_id)
    if project_id is not None:
        base = base.where(Part.project_id == project_id)
    if name is not None:
        base = base.where(Part.name == name)
    if name_prefix:
        base = base.where(func.substr(Part.name, 1, len(name_prefix)) == name_prefix)

    total = db.execute(select(func.count()).select_from(base.subquery())).scalar_one()

    q_parts = base.order_by(Part.created_at.asc(), Part.name.asc()).limit(limit).offset(offset)
    rows = db.execute(q_parts).scalars().all()
    items = [r.to_dict() for r in rows]

    if paged:
        next_offset = offset + limit if (offset + limit) < total else None
        return {"items": items, "total": total, "limit": limit, "offset": offset, "next_offset": next_offset}

    return items


@app.get("/parts/count", dependencies=[Depends(require_api_key)])
def count_parts(parent_part_id: uuid.UUID, db: Session = Depends(get_db)) -> Dict[str, int]:
    n = db.execute(
        select(func.count()).select_from(Part).where(Part.parent_part_id == parent_part_id)
    ).scalar_one()
    return {"count": int(n)}


@app.get("/parts/exists", dependencies=[Depends(require_api_key)])
def part_name_exists(name: str, db: Session = Depends(get_db)) -> Dict[str, bool]:
    hit = db.execute(select(Part.id).where(Part.name == name).limit(1)).first()
    return {"exists": hit is not None}


@app.get("/parts/{part_id}", dependencies=[Depends(require_api_key)])
def get_part(part_id: uuid.UUID, db: Session = Depends(get_db)) -> Dict[str, Any]:
    return _get_part_or_404(db, part_id).to_dict()


@app.post("/parts", status_code=201, dependencies=[Depends(require_api_key)])
def create_part(payload: PartCreate, db: Session = Depends(get_db)) -> Dict[str, Any]:
    if payload.parent_part_id is not None:
        _get_part_or_404(db, payload.parent_part_id)

    data = payload.model_dump()
    data["type"] = payload.type.value
    data["status"] = payload.status.value
    part = Part(**data)
    db.add(part)
    try:
        db.commit()
    except IntegrityError as e:
        db.rollback()
        logger.warning("Rejected duplicate part name %s", payload.name)
        raise HTTPException(
            status_code=409,
            detail={"code": "name_conflict", "name": payload.name},
        ) from e

    db.refresh(part)
    return part.to_dict()


@app.patch("/parts/{part_id}", dependencies=[Depends(require_api_key)])
def update_part(part_id: uuid.UUID, payload: PartUpdate, db: Session = Depends(get_db)) -> Dict[str, Any]:
    changes = payload.model_dump(exclude_unset=True)
    if "name" in changes:
        raise HTTPException(status_code=422, detail="Part names are assigned once and cannot be changed")

    part = _get_part_or_404(db, part_id)
    for key, value in changes.items():
        if key in ("type", "status"):
            if value is None:
                continue
            value = value.value
        elif key == "dimensions" and value is None:
            value = {}
        elif key == "pictures" and value is None:
            value = []
        setattr(part, key, value)
    db.commit()
    db.refresh(part)
    return part.to_dict()


@app.delete("/parts/{part_id}", dependencies=[Depends(require_api_key)])
def delete_part(part_id: uuid.UUID, db: Session = Depends(get_db)) -> Dict[str, Any]:
    """
    Permanently delete a part together with all of its sub-parts.
    """
    existing = _get_part_or_404(db, part_id)
    removed_sub_parts = _count_descendants(existing)
    db.delete(existing)
    db.commit()
    return {"status": "deleted", "id": str(part_id), "deleted_sub_parts": removed_sub_parts}


@app.post("/sequences/{prefix}/next", response_model=SequenceResponse, dependencies=[Depends(require_api_key)])
def next_sequence(prefix: str, db: Session = Depends(get_db)) -> SequenceResponse:
    """Atomically hand out the next part number for a prefix.

    The counter row is locked for the duration of the transaction, so
    concurrent callers always get distinct values. The value never drops below
    max(existing <prefix><n>) + 1, which covers parts created before the
    counter existed or under an explicit name.
    """
    prefix = prefix.strip()
    if prefix not in PREFIX_PART_TYPE:
        raise HTTPException(status_code=422, detail=f"Unknown part prefix '{prefix}'")

    # Two first-time callers may both try to create the counter row; the loser retries.
    for attempt in range(2):
        try:
            with db.begin():
                counter = db.execute(
                    select(PartCounter).where(PartCounter.prefix == prefix).with_for_update()
                ).scalar_one_or_none()

                names = db.execute(
                    select(Part.name).where(func.substr(Part.name, 1, len(prefix)) == prefix)
                ).scalars().all()
                value = next_number_from_names(names, prefix)

                if counter is None:
                    counter = PartCounter(prefix=prefix, next_value=value + 1)
                    db.add(counter)
                    db.flush()
                else:
                    value = max(value, counter.next_value)
                    counter.next_value = value + 1
            return SequenceResponse(prefix=prefix, value=value)
        except IntegrityError:
            if attempt:
                raise
            logger.info("Counter for prefix %s created concurrently, retrying", prefix)
