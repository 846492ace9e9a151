"""Reference records for doctors and patients."""

from typing import Optional

from pydantic import BaseModel


class Doctor(BaseModel):
    """Doctor record. ``user_id`` links to the login that receives notifications."""

    id: str
    first_name: str
    last_name: Optional[str] = None
    department_id: Optional[str] = None
    user_id: Optional[str] = None

    @property
    def display_name(self) -> str:
        return f"Dr. {self.first_name} {self.last_name or ''}".strip()


class Patient(BaseModel):
    """Patient record."""

    id: str
    first_name: str
    last_name: Optional[str] = None
    patient_id: Optional[str] = None  # Human-readable number, e.g. PAT-000001

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name or ''}".strip()
