from pydantic import BaseModel, ConfigDict, Field
from datetime import date, datetime, time
from typing import Optional

from ..models.appointment import AppointmentStatus


class AppointmentCreate(BaseModel):
    model_config = ConfigDict(use_enum_values=True)

    patient_name: str = Field(min_length=1, max_length=200)
    professional: str = Field(min_length=1, max_length=200)
    appointment_date: date
    appointment_time: time
    appointment_type: Optional[str] = Field(default=None, max_length=100)
    status: AppointmentStatus = AppointmentStatus.PENDING
    notes: Optional[str] = None
    first_visit: bool = False


class AppointmentResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    patient_name: str
    professional: str
    appointment_date: date
    appointment_time: time
    appointment_type: Optional[str] = None
    status: str
    notes: Optional[str] = None
    first_visit: bool
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
