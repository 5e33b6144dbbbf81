"""Employee domain models."""

import json
import re
from typing import Any

from pydantic import BaseModel, Field, field_validator


# Constants for validation
MAX_NAME_LENGTH = 80


class BankDetails(BaseModel):
    """Payment details kept for payroll."""

    bank: str = ""
    agency: str = ""
    account: str = ""
    pix: str | None = None


class Documents(BaseModel):
    """Identity documents."""

    cpf: str = ""
    rg: str = ""


def _decode_json_object(value: Any) -> Any:
    """SQLite returns nested objects as JSON text."""
    if isinstance(value, str):
        return json.loads(value) if value else {}
    return value if value is not None else {}


def validate_employee_name(v: str) -> str:
    """Validate name is usable - allows Unicode letters, spaces, hyphens, apostrophes, dots."""
    v = v.strip()

    if not v:
        raise ValueError("Name cannot be empty")

    if len(v) > MAX_NAME_LENGTH:
        raise ValueError(f"Name too long (max {MAX_NAME_LENGTH} characters)")

    if not re.match(r"^[\w\s'.-]+$", v, re.UNICODE):
        raise ValueError("Name can only contain letters, spaces, hyphens, dots, and apostrophes")

    return v


def phone_digits(phone: str | None) -> str:
    """Strip everything but digits from a phone number."""
    return re.sub(r"\D", "", phone or "")


class Employee(BaseModel):
    """Employee data transfer object."""

    id: str = Field(..., description="Unique employee ID from database")
    created: str | None = Field(default=None, description="Creation timestamp (ISO format)")
    name: str = Field(..., description="Display name")
    role: str = Field(default="", description="Job title, e.g. housekeeper or gardener")
    phone: str = Field(default="", description="Contact phone; its last digits are the login password")
    photo: str | None = Field(default=None, description="Photo URL or data URI")
    address: str = Field(default="")
    admission_date: str | None = Field(default=None, description="Hiring date (YYYY-MM-DD)")
    bank_details: BankDetails = Field(default_factory=BankDetails)
    documents: Documents = Field(default_factory=Documents)

    @field_validator("bank_details", "documents", mode="before")
    @classmethod
    def decode_nested(cls, v: Any) -> Any:
        """Accept nested objects either as dicts or JSON text."""
        return _decode_json_object(v)


class EmployeeSummary(BaseModel):
    """Public subset shown on the login screen."""

    id: str
    name: str
    photo: str | None = None
