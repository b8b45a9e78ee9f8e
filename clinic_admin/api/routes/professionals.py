from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session
from typing import List, Optional, Union

from ...core.database import get_db
from ...models.professional import Professional
from ...schemas.professional import (
    ProfessionalCreate, ProfessionalUpdate, ProfessionalResponse
)
from .ordering import apply_ordering

router = APIRouter(prefix="/professionals", tags=["Professionals"])

SORTABLE_COLUMNS = {
    "id": Professional.id,
    "full_name": Professional.full_name,
    "display_name": Professional.display_name,
    "specialty": Professional.specialty,
    "active": Professional.active,
    "created_at": Professional.created_at,
}

@router.get("", response_model=List[ProfessionalResponse])
async def list_professionals(
    active: Optional[bool] = Query(None, alias="filter[active]"),
    order_by: Optional[str] = Query(None, alias="orderBy"),
    ascending: bool = True,
    limit: Optional[int] = Query(None, ge=1),
    db: Session = Depends(get_db)
):
    """List professionals with optional filtering, ordering and limit."""
    query = db.query(Professional)

    if active is not None:
        query = query.filter(Professional.active == active)

    query = apply_ordering(query, SORTABLE_COLUMNS, order_by, ascending)

    if limit:
        query = query.limit(limit)

    return query.all()

@router.post(
    "",
    response_model=List[ProfessionalResponse],
    status_code=status.HTTP_201_CREATED
)
async def create_professionals(
    payload: Union[List[ProfessionalCreate], ProfessionalCreate],
    db: Session = Depends(get_db)
):
    """Create one professional or a batch of them."""
    records = payload if isinstance(payload, list) else [payload]

    professionals = [Professional(**record.model_dump()) for record in records]
    db.add_all(professionals)
    db.commit()

    for professional in professionals:
        db.refresh(professional)

    return professionals

@router.patch("", response_model=List[ProfessionalResponse])
async def update_professionals(
    payload: ProfessionalUpdate,
    professional_id: Optional[int] = Query(None, alias="filter[id]"),
    db: Session = Depends(get_db)
):
    """Update the professional selected by filter[id]."""
    if professional_id is None:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="filter[id] is required for updates"
        )

    updates = payload.model_dump(exclude_unset=True)
    if not updates:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="No fields to update"
        )

    professionals = db.query(Professional).filter(
        Professional.id == professional_id
    ).all()

    for professional in professionals:
        for field, value in updates.items():
            setattr(professional, field, value)

    db.commit()

    for professional in professionals:
        db.refresh(professional)

    return professionals

@router.delete("", response_model=List[ProfessionalResponse])
async def delete_professionals(
    professional_id: Optional[int] = Query(None, alias="filter[id]"),
    db: Session = Depends(get_db)
):
    """Delete the professional selected by filter[id] and return it."""
    if professional_id is None:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="filter[id] is required for deletion"
        )

    professionals = db.query(Professional).filter(
        Professional.id == professional_id
    ).all()
    deleted = [ProfessionalResponse.model_validate(p) for p in professionals]

    for professional in professionals:
        db.delete(professional)
    db.commit()

    return deleted
