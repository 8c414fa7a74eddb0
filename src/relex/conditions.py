"""Start condition resolution.

Builds the table mapping each start condition (lexical state) to the
indices of the rules active in it. Membership for each rule, in
declaration order:

1. No state list: every inclusive condition.
2. State list starting with ``*``: every declared condition, inclusive
   or exclusive. The rest of the list is ignored.
3. Otherwise: exactly the listed conditions, whatever their inclusivity.

``INITIAL`` always exists and is always inclusive. Rule indices are
positions in the declared rule order and are the join key into the
action table.

Thread Safety:
StartCondition is frozen. resolve_start_conditions builds a fresh table
on every call.

"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from typing import Any

from relex.errors import UndeclaredStateError
from relex.grammar import Rule

INITIAL = "INITIAL"


@dataclass(frozen=True, slots=True)
class StartCondition:
    """A named lexical state and the rules active in it.

    Attributes:
        name: Condition name
        inclusive: Whether rules without a state list are added automatically
        rule_indices: Indices of the active rules, ascending

    """

    name: str
    inclusive: bool
    rule_indices: tuple[int, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        """Runtime form: ``{"rules": [...], "inclusive": bool}``."""
        return {"rules": list(self.rule_indices), "inclusive": self.inclusive}


def prepare_start_conditions(declared: Mapping[str, bool] | None) -> dict[str, bool]:
    """Declared conditions as name -> inclusive, with INITIAL forced inclusive.

    Args:
        declared: Condition name -> exclusive flag.
    """
    table = {name: not exclusive for name, exclusive in (declared or {}).items()}
    table[INITIAL] = True
    return table


def resolve_start_conditions(
    declared: Mapping[str, bool] | None,
    rules: Iterable[Rule],
) -> dict[str, StartCondition]:
    """Resolve which rules are active in which start conditions.

    Args:
        declared: Declared condition name -> exclusive flag
        rules: Rules in declaration order

    Returns:
        Condition name -> StartCondition, INITIAL included.

    Raises:
        UndeclaredStateError: If a rule names a condition that was not declared.
    """
    inclusive = prepare_start_conditions(declared)
    members: dict[str, list[int]] = {name: [] for name in inclusive}

    for index, rule in enumerate(rules):
        if rule.states is None:
            targets = [name for name, incl in inclusive.items() if incl]
        elif rule.is_wildcard:
            targets = list(members)
        else:
            targets = list(rule.states)

        for name in targets:
            if name not in members:
                raise UndeclaredStateError(name, index)
            if index not in members[name]:
                members[name].append(index)

    return {
        name: StartCondition(name=name, inclusive=inclusive[name], rule_indices=tuple(indices))
        for name, indices in members.items()
    }


__all__ = [
    "INITIAL",
    "StartCondition",
    "prepare_start_conditions",
    "resolve_start_conditions",
]
