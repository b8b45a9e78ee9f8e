from sqlalchemy import Column, Integer, String, DateTime, Boolean, Date, Time, Text
from sqlalchemy.sql import func
import enum

from ..core.database import Base

class AppointmentStatus(str, enum.Enum):
    PENDING = "pendente"
    CONFIRMED = "confirmado"
    COMPLETED = "concluido"
    CANCELLED = "cancelado"

class Appointment(Base):
    __tablename__ = "appointments"
    
    id = Column(Integer, primary_key=True, index=True)
    
    # Who and with whom
    patient_name = Column(String(200), nullable=False)
    professional = Column(String(200), nullable=False, index=True)
    
    # Appointment details
    appointment_date = Column(Date, nullable=False, index=True)
    appointment_time = Column(Time, nullable=False)
    appointment_type = Column(String(100), nullable=True)
    status = Column(String(20), nullable=False, default=AppointmentStatus.PENDING.value)
    notes = Column(Text, nullable=True)
    first_visit = Column(Boolean, nullable=False, default=False)
    
    # Tracking
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())
    
    def __repr__(self):
        return f"<Appointment(id={self.id}, professional='{self.professional}', date='{self.appointment_date}')>"
