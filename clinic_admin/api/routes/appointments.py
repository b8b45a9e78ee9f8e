from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session
from typing import List, Optional, Union

from ...core.database import get_db
from ...models.appointment import Appointment
from ...schemas.appointment import AppointmentCreate, AppointmentResponse
from .ordering import apply_ordering

router = APIRouter(prefix="/appointments", tags=["Appointments"])

SORTABLE_COLUMNS = {
    "id": Appointment.id,
    "patient_name": Appointment.patient_name,
    "professional": Appointment.professional,
    "appointment_date": Appointment.appointment_date,
    "appointment_time": Appointment.appointment_time,
    "status": Appointment.status,
    "created_at": Appointment.created_at,
}

@router.get("", response_model=List[AppointmentResponse])
async def list_appointments(
    order_by: Optional[str] = Query(None, alias="orderBy"),
    ascending: bool = True,
    db: Session = Depends(get_db)
):
    """List appointments, optionally ordered."""
    query = apply_ordering(db.query(Appointment), SORTABLE_COLUMNS, order_by, ascending)
    return query.all()

@router.post(
    "",
    response_model=List[AppointmentResponse],
    status_code=status.HTTP_201_CREATED
)
async def create_appointments(
    payload: Union[List[AppointmentCreate], AppointmentCreate],
    db: Session = Depends(get_db)
):
    """Create one appointment or a batch of them."""
    records = payload if isinstance(payload, list) else [payload]

    appointments = [Appointment(**record.model_dump()) for record in records]
    db.add_all(appointments)
    db.commit()

    for appointment in appointments:
        db.refresh(appointment)

    return appointments
