"""Field parser for boleto text.

Boletos issued by different banks and administrators print the same
information with slightly different labels. The parser runs an ordered
catalog of rules over the normalized text; each field has one or more
recognizers tried in priority order and the first one that matches wins
for that field. A separate normalizer turns the raw match into the
field's canonical form.

A field that no recognizer matches, or whose match cannot be normalized,
is simply left empty. Parsing never raises.
"""

import math
import re
from dataclasses import dataclass
from typing import Any, Callable, Optional

import structlog

from .models import BoletoFields

logger = structlog.get_logger()

Recognizer = Callable[[str], Optional[str]]
Normalizer = Callable[[str], Any]

BARCODE_MIN_LENGTH = 44
BARCODE_MAX_LENGTH = 48
BARCODE_TRUNCATIONS = (44, 47, 48)
# Shorter digit runs are dates, amounts, CPFs and other noise
DIGIT_RUN_MIN_LENGTH = 20


# =============================================================================
# NORMALIZERS
# =============================================================================


def normalize_text(text: Optional[str]) -> str:
    """Collapse whitespace runs to single spaces and trim."""
    return re.sub(r"\s+", " ", text or "").strip()


def only_digits(value: Optional[str]) -> str:
    """Strip every character that is not an ASCII digit."""
    return re.sub(r"[^0-9]+", "", value or "")


def parse_money_br(value: Optional[str]) -> Optional[float]:
    """Parse a Brazilian formatted amount ("R$ 1.234,56") into a float.

    Returns None when the value is empty or does not parse to a finite
    number.
    """
    raw = (value or "").strip()
    if not raw:
        return None

    cleaned = re.sub(r"R\$\s?", "", raw, flags=re.IGNORECASE)
    cleaned = cleaned.replace(".", "").replace(",", ".", 1)
    cleaned = re.sub(r"[^0-9.]", "", cleaned)
    try:
        amount = float(cleaned)
    except ValueError:
        return None
    if not math.isfinite(amount):
        return None
    return amount


def normalize_date_br(value: Optional[str]) -> Optional[str]:
    """Reformat d/m/yyyy or d-m-yyyy as zero-padded dd/mm/yyyy."""
    s = (value or "").strip()
    m = re.search(r"([0-9]{1,2})\s*[/-]\s*([0-9]{1,2})\s*[/-]\s*([0-9]{4})", s)
    if not m:
        return None
    return f"{m.group(1).zfill(2)}/{m.group(2).zfill(2)}/{m.group(3)}"


def normalize_reference_month(value: Optional[str]) -> Optional[str]:
    """Reformat m/yyyy or m-yyyy as zero-padded mm/yyyy."""
    s = (value or "").strip()
    m = re.search(r"([0-9]{1,2})\s*[/-]\s*([0-9]{4})", s)
    if not m:
        return None
    return f"{m.group(1).zfill(2)}/{m.group(2)}"


def _non_empty(value: str) -> Optional[str]:
    return value or None


def _strip_whitespace(value: str) -> Optional[str]:
    return _non_empty(re.sub(r"\s+", "", value))


def _trimmed(value: str) -> Optional[str]:
    return _non_empty(value.strip())


def _cpf_digits(value: str) -> Optional[str]:
    return _non_empty(only_digits(value))


# =============================================================================
# RECOGNIZERS
# =============================================================================


def labeled(pattern: str, flags: int = re.IGNORECASE) -> Recognizer:
    """Build a recognizer returning the first capture group of ``pattern``."""
    compiled = re.compile(pattern, flags)

    def recognize(text: str) -> Optional[str]:
        match = compiled.search(text)
        if match and match.group(1):
            return match.group(1)
        return None

    recognize.__name__ = f"labeled({pattern!r})"
    return recognize


def barcode_candidates(text: str) -> list[str]:
    """List barcode candidates in token order.

    Each whitespace-delimited token is reduced to its digits. Runs of
    44 to 48 digits are candidates as is; longer runs, which usually have
    something glued to them, contribute their 44, 47 and 48 digit
    prefixes.
    """
    candidates: list[str] = []
    for token in text.split():
        digits = only_digits(token)
        if len(digits) < DIGIT_RUN_MIN_LENGTH:
            continue
        if BARCODE_MIN_LENGTH <= len(digits) <= BARCODE_MAX_LENGTH:
            candidates.append(digits)
        if len(digits) > BARCODE_MAX_LENGTH:
            candidates.extend(digits[:size] for size in BARCODE_TRUNCATIONS)
    return candidates


def recognize_barcode(text: str) -> Optional[str]:
    """Return the first barcode candidate with a valid length."""
    for candidate in barcode_candidates(text):
        if BARCODE_MIN_LENGTH <= len(candidate) <= BARCODE_MAX_LENGTH:
            return candidate
    return None


# =============================================================================
# RULE CATALOG
# =============================================================================


@dataclass(frozen=True)
class FieldRule:
    """Recognizers for one field, in priority order, plus its normalizer."""

    field: str
    recognizers: tuple[Recognizer, ...]
    normalize: Normalizer

    def apply(self, text: str) -> Any:
        """Run recognizers in order; the first match is normalized and returned."""
        for recognizer in self.recognizers:
            raw = recognizer(text)
            if raw is not None:
                return self.normalize(raw)
        return None


FIELD_RULES: tuple[FieldRule, ...] = (
    FieldRule(
        field="cpf",
        recognizers=(
            labeled(r"CPF\s*/\s*CNPJ\s*[:\-]?\s*([0-9.\-]{11,18})"),
            labeled(r"CPF\s*[:\-]?\s*([0-9.\-]{11,18})"),
        ),
        normalize=_cpf_digits,
    ),
    FieldRule(
        field="unit",
        recognizers=(
            labeled(r"Unidade\s*[:\-]?\s*([0-9]{1,3}\s*/\s*[0-9]{1,3})"),
            labeled(r"Unidade\s*[:\-]?\s*([0-9]{1,3}[A-Z]{0,2})"),
            labeled(r"\b([0-9]{2}\s*/\s*[0-9]{3})\b", flags=0),
        ),
        normalize=_strip_whitespace,
    ),
    FieldRule(
        field="our_number",
        recognizers=(
            labeled(r"Nosso\s*N[úu]mero\s*[:\-]?\s*([0-9.\-/]+)"),
            labeled(r"Nosso\s*Numero\s*[:\-]?\s*([0-9.\-/]+)"),
        ),
        normalize=_trimmed,
    ),
    FieldRule(
        field="due_date",
        recognizers=(
            labeled(r"Vencimento\s*[:\-]?\s*([0-9]{1,2}[/\-][0-9]{1,2}[/\-][0-9]{4})"),
            labeled(r"Venc\.?\s*[:\-]?\s*([0-9]{1,2}[/\-][0-9]{1,2}[/\-][0-9]{4})"),
        ),
        normalize=normalize_date_br,
    ),
    FieldRule(
        field="reference_month",
        recognizers=(
            labeled(r"Compet[êe]ncia\s*[:\-]?\s*([0-9]{1,2}[/\-][0-9]{4})"),
            labeled(r"Refer[êe]ncia\s*[:\-]?\s*([0-9]{1,2}[/\-][0-9]{4})"),
            labeled(r"\b([0-9]{1,2}[/\-][0-9]{4})\b", flags=0),
        ),
        normalize=normalize_reference_month,
    ),
    FieldRule(
        field="amount",
        recognizers=(
            labeled(r"Valor\s*(?:do\s*Documento)?\s*[:\-]?\s*R?\$?\s*([0-9.]+,[0-9]{2})"),
            labeled(r"\bR\$\s*([0-9.]+,[0-9]{2})\b"),
        ),
        normalize=parse_money_br,
    ),
    FieldRule(
        field="name",
        recognizers=(
            labeled(r"Nome\s*[:\-]?\s*([A-ZÀ-Ü\s]{8,})"),
        ),
        normalize=_trimmed,
    ),
    FieldRule(
        field="barcode",
        recognizers=(recognize_barcode,),
        normalize=_non_empty,
    ),
)


def mask_cpf(cpf: Optional[str]) -> Optional[str]:
    """Keep only the last two digits of a CPF for logging."""
    if not cpf:
        return cpf
    return "*" * max(len(cpf) - 2, 0) + cpf[-2:]


class BoletoFieldParser:
    """Applies the field rule catalog to boleto text.

    Example:
        parser = BoletoFieldParser()
        fields = parser.parse("CPF: 123.456.789-00 Unidade: 03/005")
        assert fields.cpf == "12345678900"
    """

    def __init__(self, rules: tuple[FieldRule, ...] = FIELD_RULES):
        self.rules = rules

    def parse(self, text: Optional[str]) -> BoletoFields:
        """Extract boleto fields from raw or normalized text."""
        normalized = normalize_text(text)
        values: dict[str, Any] = {}

        for rule in self.rules:
            if rule.field in values:
                continue
            value = rule.apply(normalized)
            if value is not None:
                values[rule.field] = value

        fields = BoletoFields(**values)
        logger.debug(
            "boleto_fields_extracted",
            found=fields.found_fields,
            cpf=mask_cpf(fields.cpf),
            unit=fields.unit,
            text_chars=len(normalized),
        )
        return fields


def extract_boleto_fields(text: Optional[str]) -> BoletoFields:
    """Parse boleto text with the default rule catalog."""
    return BoletoFieldParser().parse(text)
