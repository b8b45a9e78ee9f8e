from sqlalchemy import Column, Integer, String, DateTime, Boolean, JSON
from sqlalchemy.sql import func

from ..core.database import Base

class Professional(Base):
    __tablename__ = "professionals"
    
    id = Column(Integer, primary_key=True, index=True)
    
    # Identification
    full_name = Column(String(200), nullable=False)
    display_name = Column(String(100), nullable=True)
    specialty = Column(String(100), nullable=True)
    registration_number = Column(String(50), nullable=True)
    
    # Contact information
    email = Column(String(255), nullable=True)
    phone = Column(String(20), nullable=True)
    
    # Availability and scheduling rules (slot length, working hours, ...)
    active = Column(Boolean, nullable=False, default=True)
    service_config = Column(JSON, nullable=True)
    
    # Timestamps
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())
    
    def __repr__(self):
        return f"<Professional(id={self.id}, name='{self.full_name}', specialty='{self.specialty}')>"
