"""Tests for the resident matcher."""

import pytest

from qualivida_core.config import MatchingConfig
from qualivida_core.models import BoletoFields, Resident
from qualivida_core.resident_matcher import (
    CPF_MATCH_CONFIDENCE,
    NAME_SUGGESTION_CONFIDENCE,
    NO_MATCH_ERROR,
    UNIT_MATCH_CONFIDENCE,
    UNIT_SUGGESTION_CONFIDENCE,
    CpfStrategy,
    ResidentMatcher,
    StrategyOutcome,
    UnitStrategy,
    fold_name,
    match_resident,
    normalize_unit,
    unit_groups,
)


class TestNormalization:
    @pytest.mark.parametrize(
        "unit,expected",
        [
            ("03/005", "03005"),
            ("3/5", "35"),
            ("3-5", "35"),
            ("101A", "101a"),
            ("101 - a", "101a"),
            ("0", "0"),
            ("", ""),
        ],
    )
    def test_normalize_unit(self, unit, expected):
        assert normalize_unit(unit) == expected

    @pytest.mark.parametrize(
        "unit,expected",
        [
            ("03/005", ("3", "5")),
            ("3-5", ("3", "5")),
            ("35", ("35",)),
            ("101A", ("101", "a")),
            ("00", ("0",)),
            ("", ()),
        ],
    )
    def test_unit_groups(self, unit, expected):
        assert unit_groups(unit) == expected

    def test_fold_name_strips_diacritics_and_case(self):
        assert fold_name("JOÃO GONÇALVES") == "joao goncalves"
        assert fold_name("Pedro Álvares") == "pedro alvares"
        assert fold_name(None) == ""


class TestCpfMatch:
    def test_cpf_exact_match(self, roster):
        """A CPF found in the roster is a terminal, full-confidence match."""
        fields = BoletoFields(cpf="12345678900", unit="999")
        result = match_resident(fields, roster)

        assert result.is_valid is True
        assert result.confidence == 100
        assert result.resident.id == "r1"
        assert result.suggestions == []
        assert result.errors == []
        assert result.extracted_data == fields

    def test_cpf_match_beats_unit_match(self, roster):
        fields = BoletoFields(cpf="98765432100", unit="03/005")
        result = match_resident(fields, roster)
        assert result.resident.id == "r2"
        assert result.confidence == CPF_MATCH_CONFIDENCE

    def test_roster_cpf_punctuation_is_ignored(self):
        roster = [Resident(name="Fulano de Tal", unit="7", cpf="123.456.789-00")]
        result = match_resident(BoletoFields(cpf="12345678900"), roster)
        assert result.is_valid

    def test_unknown_cpf_falls_through_to_unit(self, roster):
        fields = BoletoFields(cpf="00000000000", unit="101A")
        result = match_resident(fields, roster)
        assert result.resident.id == "r2"
        assert result.confidence == UNIT_MATCH_CONFIDENCE


class TestUnitMatch:
    def test_unit_exact_match(self, roster):
        result = match_resident(BoletoFields(unit="03/005"), roster)
        assert result.is_valid is True
        assert result.confidence == 90
        assert result.resident.id == "r1"

    def test_unit_match_ignores_separators_and_leading_zeros(self):
        roster = [Resident(id="x", name="Fulano de Tal", unit="3/5")]
        result = match_resident(BoletoFields(unit="03/005"), roster)
        assert result.is_valid is True
        assert result.confidence == 90
        assert result.resident.id == "x"

    def test_printed_unit_wins_over_zero_stripped_unit(self):
        """The unit printed on the boleto beats a unit equal only without zeros."""
        roster = [
            Resident(id="a", name="Fulano de Tal", unit="35"),
            Resident(id="b", name="Beltrano da Silva", unit="03/005"),
        ]
        result = match_resident(BoletoFields(unit="03/005"), roster)

        assert result.is_valid is True
        assert result.resident.id == "b"
        assert result.confidence == UNIT_MATCH_CONFIDENCE

    def test_unit_groups_are_not_merged(self):
        roster = [Resident(id="a", name="Fulano de Tal", unit="35")]
        result = match_resident(BoletoFields(unit="03/005"), roster)

        assert result.is_valid is False
        assert result.resident is None

    def test_unit_match_ignores_case(self, roster):
        result = match_resident(BoletoFields(unit="101a"), roster)
        assert result.resident.id == "r2"

    def test_unit_substring_suggestions(self, roster):
        """Units containing the extracted unit are suggested, not accepted."""
        result = match_resident(BoletoFields(unit="101"), roster)

        assert result.is_valid is False
        assert result.resident is None
        assert result.confidence == UNIT_SUGGESTION_CONFIDENCE
        assert [r.id for r in result.suggestions] == ["r2", "r3", "r4"]
        assert result.errors == []
        assert result.needs_review

    def test_short_unit_suggests_loosely(self, roster):
        result = match_resident(BoletoFields(unit="1"), roster)
        assert len(result.suggestions) == 3
        assert result.confidence == UNIT_SUGGESTION_CONFIDENCE

    def test_suggestion_limit_comes_from_config(self, roster):
        matcher = ResidentMatcher(config=MatchingConfig(max_suggestions=1))
        result = matcher.match(BoletoFields(unit="101"), roster)
        assert [r.id for r in result.suggestions] == ["r2"]


class TestNameMatch:
    def test_name_is_only_a_suggestion(self, roster):
        result = match_resident(BoletoFields(name="JOAO DA SILVA"), roster)

        assert result.is_valid is False
        assert result.resident is None
        assert result.confidence == NAME_SUGGESTION_CONFIDENCE
        assert [r.id for r in result.suggestions] == ["r1"]
        assert result.errors == []

    def test_roster_name_contained_in_extracted_name(self, roster):
        result = match_resident(BoletoFields(name="SR PEDRO ALVARES NETO"), roster)
        assert [r.id for r in result.suggestions] == ["r5"]

    def test_name_suggestion_is_prepended(self, roster):
        fields = BoletoFields(unit="101", name="Carlos Pereira")
        result = match_resident(fields, roster)

        assert [r.id for r in result.suggestions] == ["r3", "r2", "r4"]
        assert result.confidence == UNIT_SUGGESTION_CONFIDENCE

    def test_name_suggestion_pushes_out_last_unit_suggestion(self, roster):
        fields = BoletoFields(unit="101", name="Pedro Alvares")
        result = match_resident(fields, roster)
        assert [r.id for r in result.suggestions] == ["r5", "r2", "r3"]

    def test_identical_roster_entries_are_both_suggested(self):
        """Distinct roster entries stay distinct even with equal fields."""
        roster = [
            Resident(name="Fulano de Tal", unit="101"),
            Resident(name="Fulano de Tal", unit="101"),
        ]
        result = match_resident(BoletoFields(unit="10", name="FULANO DE TAL"), roster)

        assert len(result.suggestions) == 2
        assert result.suggestions[0] is roster[0]
        assert result.suggestions[1] is roster[1]

    def test_name_match_not_attempted_after_exact_match(self, roster):
        fields = BoletoFields(unit="101A", name="Carlos Pereira")
        result = match_resident(fields, roster)
        assert result.resident.id == "r2"
        assert result.suggestions == []

    def test_unit_match_does_not_fold_diacritics(self):
        roster = [Resident(id="x", name="Fulano de Tal", unit="10É")]
        result = match_resident(BoletoFields(unit="10E"), roster)
        assert result.is_valid is False


class TestNoMatch:
    def test_nothing_recognizable(self, roster):
        result = match_resident(BoletoFields(), roster)

        assert result.is_valid is False
        assert result.confidence == 0
        assert result.suggestions == []
        assert result.errors == [NO_MATCH_ERROR]
        assert result.errors[0].startswith("no matching resident found")

    def test_unknown_values(self, roster):
        fields = BoletoFields(cpf="99999999999", unit="77/777", name="ZEZINHO NINGUEM")
        result = match_resident(fields, roster)
        assert result.errors == [NO_MATCH_ERROR]

    def test_empty_roster(self):
        result = match_resident(BoletoFields(cpf="12345678900", unit="101"), [])
        assert result.is_valid is False
        assert result.errors == [NO_MATCH_ERROR]


class TestStrategyChain:
    def test_confidence_ordering(self):
        assert (
            CPF_MATCH_CONFIDENCE
            > UNIT_MATCH_CONFIDENCE
            > UNIT_SUGGESTION_CONFIDENCE
            > NAME_SUGGESTION_CONFIDENCE
            > 0
        )

    def test_custom_strategy_is_consulted_in_order(self, roster):
        class PhoneStrategy:
            name = "phone"

            def apply(self, fields, roster, limit):
                return StrategyOutcome(confidence=80, resident=roster[-1])

        matcher = ResidentMatcher(strategies=[CpfStrategy(), PhoneStrategy(), UnitStrategy()])

        by_cpf = matcher.match(BoletoFields(cpf="12345678900"), roster)
        assert by_cpf.resident.id == "r1"

        by_phone = matcher.match(BoletoFields(unit="03/005"), roster)
        assert by_phone.resident.id == "r5"
        assert by_phone.confidence == 80

    def test_matching_is_repeatable(self, roster):
        fields = BoletoFields(unit="101", name="Carlos Pereira")
        assert match_resident(fields, roster) == match_resident(fields, roster)
