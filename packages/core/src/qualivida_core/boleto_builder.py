"""Turns a reviewed match into a Boleto billing record."""

from datetime import date, datetime
from typing import Iterable, Optional

import structlog

from .exceptions import ValidationError
from .models import Boleto, BoletoStatus, MatchResult, Resident

logger = structlog.get_logger()


def parse_due_date(value: str) -> date:
    """Parse a dd/mm/yyyy due date.

    Raises:
        ValidationError: If the value is not a real calendar date.
    """
    try:
        return datetime.strptime(value, "%d/%m/%Y").date()
    except ValueError as e:
        raise ValidationError(
            f"Invalid due date: {value}",
            field="due_date",
            value=value,
            constraint="dd/mm/yyyy calendar date",
        ) from e


def boleto_status(due_date: date, today: Optional[date] = None) -> BoletoStatus:
    """Pending until the due date has passed, overdue afterwards."""
    today = today or date.today()
    if due_date < today:
        return BoletoStatus.OVERDUE
    return BoletoStatus.PENDING


def build_boleto(
    result: MatchResult,
    resident: Optional[Resident] = None,
    *,
    today: Optional[date] = None,
    pdf_path: Optional[str] = None,
    description: Optional[str] = None,
) -> Boleto:
    """Create the boleto for a confirmed association.

    ``resident`` is the reviewer's choice (usually one of
    ``result.suggestions``) and overrides the matched resident.

    Raises:
        ValidationError: If no resident was chosen or the extracted data
            lacks the due date, reference month or a positive amount.
    """
    chosen = resident or result.resident
    if chosen is None:
        raise ValidationError(
            "No resident selected for this boleto",
            field="resident",
            constraint="Pick a suggestion or a roster entry",
        )

    fields = result.extracted_data
    if not fields.reference_month:
        raise ValidationError("Reference month is required", field="reference_month")
    if not fields.due_date:
        raise ValidationError("Due date is required", field="due_date")
    if fields.amount is None or fields.amount <= 0:
        raise ValidationError(
            "Amount must be positive",
            field="amount",
            value=fields.amount,
            constraint="> 0",
        )

    due_date = parse_due_date(fields.due_date)
    boleto = Boleto(
        resident_id=chosen.id,
        resident_name=chosen.name,
        unit=chosen.unit,
        reference_month=fields.reference_month,
        due_date=due_date,
        amount=fields.amount,
        status=boleto_status(due_date, today),
        barcode=fields.barcode,
        our_number=fields.our_number,
        description=description,
        pdf_path=pdf_path,
    )
    logger.info(
        "boleto_built",
        boleto_id=boleto.id,
        unit=boleto.unit,
        reference_month=boleto.reference_month,
        status=boleto.status.value,
        manual=resident is not None and resident != result.resident,
    )
    return boleto


def find_duplicate(boleto: Boleto, existing: Iterable[Boleto]) -> Optional[Boleto]:
    """Existing boleto for the same unit and reference month, if any."""
    for other in existing:
        if other.unit == boleto.unit and other.reference_month == boleto.reference_month:
            return other
    return None
