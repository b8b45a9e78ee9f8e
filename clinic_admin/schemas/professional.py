from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator
from datetime import datetime
from typing import Any, Dict, Optional


class ProfessionalBase(BaseModel):
    full_name: str = Field(min_length=1, max_length=200)
    display_name: Optional[str] = Field(default=None, max_length=100)
    specialty: Optional[str] = Field(default=None, max_length=100)
    registration_number: Optional[str] = Field(default=None, max_length=50)
    email: Optional[EmailStr] = None
    phone: Optional[str] = Field(default=None, max_length=20)
    active: bool = True
    service_config: Optional[Dict[str, Any]] = None


class ProfessionalCreate(ProfessionalBase):
    pass


class ProfessionalUpdate(BaseModel):
    """Partial update; only fields present in the body are written."""

    full_name: Optional[str] = Field(default=None, min_length=1, max_length=200)
    display_name: Optional[str] = Field(default=None, max_length=100)
    specialty: Optional[str] = Field(default=None, max_length=100)
    registration_number: Optional[str] = Field(default=None, max_length=50)
    email: Optional[EmailStr] = None
    phone: Optional[str] = Field(default=None, max_length=20)
    active: Optional[bool] = None
    service_config: Optional[Dict[str, Any]] = None

    @field_validator("full_name", "active")
    @classmethod
    def reject_null(cls, v):
        """These columns are NOT NULL; they may be omitted but not cleared."""
        if v is None:
            raise ValueError("cannot be null")
        return v


class ProfessionalResponse(ProfessionalBase):
    model_config = ConfigDict(from_attributes=True)

    id: int
    email: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
