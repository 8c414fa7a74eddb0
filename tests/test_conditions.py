"""Tests for start condition resolution."""

import pytest

from relex.conditions import INITIAL, StartCondition, prepare_start_conditions, resolve_start_conditions
from relex.errors import UndeclaredStateError
from relex.grammar import Rule


def _rules(*states: tuple[str, ...] | None) -> list[Rule]:
    return [Rule(states=s, pattern="x", action="") for s in states]


class TestPrepareStartConditions:
    def test_initial_always_present_and_inclusive(self) -> None:
        assert prepare_start_conditions(None) == {INITIAL: True}

    def test_exclusive_flag_is_inverted(self) -> None:
        table = prepare_start_conditions({"STR": True, "CODE": False})
        assert table == {"STR": False, "CODE": True, INITIAL: True}

    def test_initial_cannot_be_made_exclusive(self) -> None:
        assert prepare_start_conditions({INITIAL: True})[INITIAL] is True


class TestResolveStartConditions:
    """Membership rules for implicit, explicit and wildcard state lists."""

    def test_no_declared_conditions(self) -> None:
        table = resolve_start_conditions({}, _rules(None, None))
        assert table == {INITIAL: StartCondition(INITIAL, True, (0, 1))}

    def test_implicit_rules_join_inclusive_conditions_only(self) -> None:
        table = resolve_start_conditions({"STR": True, "CODE": False}, _rules(None))
        assert table["STR"].rule_indices == ()
        assert table["CODE"].rule_indices == (0,)
        assert table[INITIAL].rule_indices == (0,)

    def test_explicit_rules_join_listed_conditions(self) -> None:
        table = resolve_start_conditions({"STR": True}, _rules(None, ("STR",), (INITIAL, "STR")))
        assert table["STR"].rule_indices == (1, 2)
        assert table[INITIAL].rule_indices == (0, 2)

    def test_wildcard_joins_every_condition(self) -> None:
        table = resolve_start_conditions({"STR": True, "CODE": False}, _rules(("*",), None))
        assert table["STR"].rule_indices == (0,)
        assert table["CODE"].rule_indices == (0, 1)
        assert table[INITIAL].rule_indices == (0, 1)

    def test_indices_are_ascending(self) -> None:
        table = resolve_start_conditions({"S": True}, _rules(("S",), None, ("S",), ("*",)))
        for condition in table.values():
            assert list(condition.rule_indices) == sorted(condition.rule_indices)

    def test_duplicate_state_names_do_not_duplicate_indices(self) -> None:
        table = resolve_start_conditions({"S": True}, _rules(("S", "S")))
        assert table["S"].rule_indices == (0,)

    def test_undeclared_state_raises(self) -> None:
        with pytest.raises(UndeclaredStateError) as exc_info:
            resolve_start_conditions({}, _rules(None, ("NOPE",)))
        assert exc_info.value.state == "NOPE"
        assert exc_info.value.rule_index == 1

    def test_to_dict(self) -> None:
        condition = StartCondition("S", False, (1, 3))
        assert condition.to_dict() == {"rules": [1, 3], "inclusive": False}
