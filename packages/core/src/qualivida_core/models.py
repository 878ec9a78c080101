"""Data models for boleto extraction and resident matching.

- BoletoFields: the fields read from a boleto's text
- Resident: a roster entry, owned by the calling application
- MatchResult: outcome of matching a boleto against the roster
- Boleto: the billing record created once a match has been reviewed

BoletoFields, Resident and MatchResult are frozen: they are built once
per extraction call and never mutated afterwards.
"""

from datetime import date
from enum import Enum
from typing import Any, Optional
from uuid import uuid4

from pydantic import BaseModel, Field, model_validator


class BoletoStatus(str, Enum):
    """Payment status of a boleto, as stored by the condominium app."""

    PENDING = "Pendente"
    PAID = "Pago"
    OVERDUE = "Vencido"


class BoletoFields(BaseModel):
    """Fields extracted from the text of a boleto.

    Every field is optional; ``None`` means the parser found nothing for
    it. A populated field always satisfies its format.
    """

    model_config = {
        "frozen": True,
        "json_schema_extra": {
            "examples": [
                {
                    "cpf": "12345678900",
                    "unit": "03/005",
                    "name": "JOAO DA SILVA SANTOS",
                    "our_number": "00123456-7",
                    "due_date": "10/01/2025",
                    "amount": 450.0,
                    "reference_month": "01/2025",
                    "barcode": "23793381286000000001234567890123456789012345",
                }
            ]
        },
    }

    cpf: Optional[str] = Field(
        default=None,
        pattern=r"^[0-9]+$",
        description="Payer CPF/CNPJ, digits only",
    )
    unit: Optional[str] = Field(
        default=None,
        pattern=r"^\S+$",
        description="Residential unit, whitespace removed (e.g. '03/005', '101A')",
    )
    name: Optional[str] = Field(
        default=None,
        min_length=1,
        description="Payer name as printed on the boleto",
    )
    our_number: Optional[str] = Field(
        default=None,
        min_length=1,
        description="Nosso numero: issuer tracking code",
    )
    due_date: Optional[str] = Field(
        default=None,
        pattern=r"^[0-9]{2}/[0-9]{2}/[0-9]{4}$",
        description="Due date as dd/mm/yyyy",
    )
    amount: Optional[float] = Field(
        default=None,
        allow_inf_nan=False,
        description="Document amount in reais",
    )
    reference_month: Optional[str] = Field(
        default=None,
        pattern=r"^[0-9]{2}/[0-9]{4}$",
        description="Billing period as mm/yyyy",
    )
    barcode: Optional[str] = Field(
        default=None,
        pattern=r"^[0-9]{44,48}$",
        description="Barcode or typable line, 44 to 48 digits",
    )

    @property
    def found_fields(self) -> list[str]:
        """Names of the fields that were populated."""
        return [name for name, value in self if value is not None]

    @property
    def is_empty(self) -> bool:
        """True when no field was extracted."""
        return not self.found_fields


class Resident(BaseModel):
    """A condominium resident as supplied by the roster provider.

    Unknown keys from database exports are ignored.
    """

    model_config = {
        "frozen": True,
        "populate_by_name": True,
        "extra": "ignore",
    }

    id: Optional[str] = Field(default=None, description="Resident identifier")
    name: str = Field(description="Full name")
    unit: str = Field(description="Unit identifier, e.g. '03/005' or '101A'")
    cpf: Optional[str] = Field(default=None, description="CPF, digits only")
    email: Optional[str] = None
    phone: Optional[str] = None
    whatsapp: Optional[str] = None
    extra_data: dict[str, Any] = Field(
        default_factory=dict,
        alias="extraData",
        description="Additional columns from the import file",
    )


class MatchResult(BaseModel):
    """Outcome of matching extracted boleto fields against the roster.

    ``resident`` is set if and only if ``is_valid``. ``errors`` is only
    populated when nothing could be resolved and there are no
    suggestions to offer.
    """

    model_config = {"frozen": True}

    is_valid: bool = False
    resident: Optional[Resident] = None
    confidence: int = Field(default=0, ge=0, le=100)
    extracted_data: BoletoFields = Field(default_factory=BoletoFields)
    suggestions: list[Resident] = Field(default_factory=list)
    errors: list[str] = Field(default_factory=list)

    @model_validator(mode="after")
    def check_resident_presence(self) -> "MatchResult":
        """A resident is attached exactly when the match is valid."""
        if self.is_valid and self.resident is None:
            raise ValueError("A valid match must carry a resident")
        if not self.is_valid and self.resident is not None:
            raise ValueError("An invalid match cannot carry a resident")
        return self

    @property
    def needs_review(self) -> bool:
        """True when the caller must pick a resident among suggestions."""
        return not self.is_valid and bool(self.suggestions)


class Boleto(BaseModel):
    """A boleto billing record, ready to be stored by the application."""

    model_config = {
        "json_schema_extra": {
            "examples": [
                {
                    "resident_name": "Joao da Silva Santos",
                    "unit": "03/005",
                    "reference_month": "01/2025",
                    "due_date": "2025-01-10",
                    "amount": 450.0,
                    "status": "Pendente",
                }
            ]
        }
    }

    id: str = Field(default_factory=lambda: str(uuid4()))
    resident_id: Optional[str] = None
    resident_name: str
    unit: str
    reference_month: str = Field(pattern=r"^[0-9]{2}/[0-9]{4}$")
    due_date: date
    amount: float = Field(gt=0, allow_inf_nan=False)
    status: BoletoStatus = BoletoStatus.PENDING
    barcode: Optional[str] = None
    our_number: Optional[str] = None
    description: Optional[str] = None
    pdf_path: Optional[str] = None
    paid_date: Optional[date] = None


__all__ = [
    "BoletoStatus",
    "BoletoFields",
    "Resident",
    "MatchResult",
    "Boleto",
]
