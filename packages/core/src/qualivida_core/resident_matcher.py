"""Resident matching for extracted boleto fields.

The matcher runs an ordered chain of strategies against the roster:

1. CPF exact match (confidence 100)
2. Unit exact match (confidence 90), falling back to unit substring
   suggestions (confidence 50)
3. Name substring match (confidence 30), which only ever suggests

The chain stops at the first strategy that returns an exact resident.
Strategies that cannot resolve a resident may contribute suggestions for
manual review instead. Matching never raises; every outcome, including
"nobody found", is expressed in the returned MatchResult.
"""

import re
import unicodedata
from dataclasses import dataclass
from typing import Optional, Protocol, Sequence

import structlog

from .boleto_parser import mask_cpf, only_digits
from .config import MatchingConfig
from .models import BoletoFields, MatchResult, Resident

logger = structlog.get_logger()

CPF_MATCH_CONFIDENCE = 100
UNIT_MATCH_CONFIDENCE = 90
UNIT_SUGGESTION_CONFIDENCE = 50
NAME_SUGGESTION_CONFIDENCE = 30

NO_MATCH_ERROR = "no matching resident found in the system"


# =============================================================================
# NORMALIZATION
# =============================================================================


def normalize_unit(unit: Optional[str]) -> str:
    """Unit key for exact comparison: lower-cased, letters and digits only.

    "03/005" becomes "03005" and "101-A" becomes "101a".
    """
    return re.sub(r"[^a-z0-9]+", "", (unit or "").lower())


def unit_groups(unit: Optional[str]) -> tuple[str, ...]:
    """Letter and digit groups of a unit, digit groups without leading zeros.

    "03/005" and "3-5" both give ("3", "5"), while "35" gives ("35",).
    """
    groups = re.findall(r"[a-z]+|[0-9]+", (unit or "").lower())
    return tuple(
        (group.lstrip("0") or "0") if group.isdigit() else group
        for group in groups
    )


def fold_name(name: Optional[str]) -> str:
    """Lower-case a name and remove its diacritics ("JOÃO" -> "joao")."""
    decomposed = unicodedata.normalize("NFD", (name or "").lower())
    return "".join(ch for ch in decomposed if not unicodedata.combining(ch))


def _contains_either(a: str, b: str) -> bool:
    return a in b or b in a


# =============================================================================
# STRATEGIES
# =============================================================================


@dataclass(frozen=True)
class StrategyOutcome:
    """What a strategy contributed.

    ``resident`` set means an exact match and ends the chain. Otherwise
    ``suggestions`` go in front of the ones collected so far.
    """

    confidence: int = 0
    resident: Optional[Resident] = None
    suggestions: tuple[Resident, ...] = ()

    @property
    def is_terminal(self) -> bool:
        return self.resident is not None


NO_OUTCOME = StrategyOutcome()


class MatchStrategy(Protocol):
    """A single step of the matching chain."""

    name: str

    def apply(
        self, fields: BoletoFields, roster: Sequence[Resident], limit: int
    ) -> StrategyOutcome:
        ...


class CpfStrategy:
    """Exact CPF match."""

    name = "cpf"

    def apply(
        self, fields: BoletoFields, roster: Sequence[Resident], limit: int
    ) -> StrategyOutcome:
        if not fields.cpf:
            return NO_OUTCOME
        for resident in roster:
            if resident.cpf and only_digits(resident.cpf) == fields.cpf:
                return StrategyOutcome(confidence=CPF_MATCH_CONFIDENCE, resident=resident)
        return NO_OUTCOME


class UnitStrategy:
    """Exact unit match, or loose unit suggestions.

    The whole roster is searched with the letters-and-digits key first.
    Only when nothing matches is a second pass made on the digit groups
    without leading zeros, so "03/005" finds "3/5" but never "35".

    Suggestions use plain substring containment on the lower-cased unit
    strings, so short units such as "1" suggest every unit containing a 1.
    """

    name = "unit"

    def apply(
        self, fields: BoletoFields, roster: Sequence[Resident], limit: int
    ) -> StrategyOutcome:
        if not fields.unit:
            return NO_OUTCOME

        resident = self._exact(fields.unit, roster)
        if resident is not None:
            return StrategyOutcome(confidence=UNIT_MATCH_CONFIDENCE, resident=resident)

        extracted = fields.unit.lower()
        similar = [
            resident
            for resident in roster
            if _contains_either(resident.unit.lower(), extracted)
        ]
        if not similar:
            return NO_OUTCOME
        return StrategyOutcome(
            confidence=UNIT_SUGGESTION_CONFIDENCE,
            suggestions=tuple(similar[:limit]),
        )

    @staticmethod
    def _exact(unit: str, roster: Sequence[Resident]) -> Optional[Resident]:
        wanted = normalize_unit(unit)
        if not wanted:
            return None
        for resident in roster:
            if normalize_unit(resident.unit) == wanted:
                return resident

        groups = unit_groups(unit)
        for resident in roster:
            if unit_groups(resident.unit) == groups:
                return resident
        return None


class NameStrategy:
    """Name containment on accent-folded names. Suggestion only."""

    name = "name"

    def apply(
        self, fields: BoletoFields, roster: Sequence[Resident], limit: int
    ) -> StrategyOutcome:
        if not fields.name:
            return NO_OUTCOME

        extracted = fold_name(fields.name)
        for resident in roster:
            if _contains_either(fold_name(resident.name), extracted):
                return StrategyOutcome(
                    confidence=NAME_SUGGESTION_CONFIDENCE,
                    suggestions=(resident,),
                )
        return NO_OUTCOME


DEFAULT_STRATEGIES: tuple[MatchStrategy, ...] = (
    CpfStrategy(),
    UnitStrategy(),
    NameStrategy(),
)


# =============================================================================
# MATCHER
# =============================================================================


class ResidentMatcher:
    """Resolves the resident a boleto belongs to.

    Example:
        matcher = ResidentMatcher()
        result = matcher.match(fields, roster)
        if result.is_valid:
            print(result.resident.name, result.confidence)
        else:
            for suggestion in result.suggestions:
                print("maybe", suggestion.name)
    """

    def __init__(
        self,
        strategies: Sequence[MatchStrategy] = DEFAULT_STRATEGIES,
        config: Optional[MatchingConfig] = None,
    ):
        self.strategies = tuple(strategies)
        self.config = config or MatchingConfig()

    def match(self, fields: BoletoFields, roster: Sequence[Resident]) -> MatchResult:
        """Run the strategy chain and build the match result."""
        limit = self.config.max_suggestions
        suggestions: list[Resident] = []
        confidence = 0

        for strategy in self.strategies:
            outcome = strategy.apply(fields, roster, limit)

            if outcome.is_terminal:
                logger.info(
                    "resident_matched",
                    strategy=strategy.name,
                    confidence=outcome.confidence,
                    resident_id=outcome.resident.id,
                    cpf=mask_cpf(fields.cpf),
                    unit=fields.unit,
                )
                return MatchResult(
                    is_valid=True,
                    resident=outcome.resident,
                    confidence=outcome.confidence,
                    extracted_data=fields,
                )

            if outcome.suggestions:
                merged = list(outcome.suggestions)
                merged.extend(
                    s for s in suggestions
                    if not any(s is new for new in outcome.suggestions)
                )
                suggestions = merged[:limit]
                confidence = max(confidence, outcome.confidence)

        if suggestions:
            logger.info(
                "resident_match_suggestions",
                suggestions=len(suggestions),
                confidence=confidence,
                unit=fields.unit,
            )
            return MatchResult(
                confidence=confidence,
                extracted_data=fields,
                suggestions=suggestions,
            )

        logger.info(
            "resident_not_found",
            cpf=mask_cpf(fields.cpf),
            unit=fields.unit,
            found=fields.found_fields,
        )
        return MatchResult(
            confidence=0,
            extracted_data=fields,
            errors=[NO_MATCH_ERROR],
        )


def match_resident(fields: BoletoFields, roster: Sequence[Resident]) -> MatchResult:
    """Match fields against the roster with the default strategy chain."""
    return ResidentMatcher().match(fields, roster)
