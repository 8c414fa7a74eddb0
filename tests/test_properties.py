"""Property-based tests for compilation invariants.

Uses Hypothesis to generate macro tables and rule sets and check the
invariants that must hold for every input.
"""

import string

from hypothesis import given, settings
from hypothesis import strategies as st

from relex import compile_and_load, compile_grammar
from relex.conditions import INITIAL
from relex.macros import expand_macros, macro_references

# =========================================================================
# Strategies
# =========================================================================

_names = st.sampled_from(["A", "B", "C", "D", "E"])
_literals = st.text(alphabet="xyz", min_size=1, max_size=3)


@st.composite
def acyclic_macros(draw: st.DrawFn) -> dict[str, str]:
    """Macro tables where each macro only references earlier ones, in shuffled order."""
    names = draw(st.lists(_names, min_size=1, max_size=5, unique=True))
    table: dict[str, str] = {}
    for i, name in enumerate(names):
        fragments = _literals
        if i:
            fragments = st.one_of(_literals, st.sampled_from(names[:i]).map(lambda n: "{" + n + "}"))
        table[name] = "".join(draw(st.lists(fragments, min_size=1, max_size=3)))
    order = draw(st.permutations(list(table)))
    return {name: table[name] for name in order}


_states = st.sampled_from([None, ("S",), ("X",), ("S", "X"), ("*",), (INITIAL,)])


@st.composite
def rule_sets(draw: st.DrawFn) -> list[list[object]]:
    rules: list[list[object]] = []
    for _ in range(draw(st.integers(min_value=0, max_value=8))):
        pattern = draw(st.text(alphabet=string.ascii_lowercase, min_size=1, max_size=3))
        states = draw(_states)
        rules.append([list(states), pattern, ""] if states else [pattern, ""])
    return rules


# =========================================================================
# Macro expansion
# =========================================================================


class TestMacroProperties:
    @given(acyclic_macros())
    @settings(max_examples=50)
    def test_no_references_remain(self, macros: dict[str, str]) -> None:
        expanded = expand_macros(macros)
        for body in expanded.values():
            assert not [ref for ref in macro_references(body) if ref in macros]

    @given(acyclic_macros())
    @settings(max_examples=50)
    def test_idempotent(self, macros: dict[str, str]) -> None:
        once = expand_macros(macros)
        assert expand_macros(once) == once

    @given(acyclic_macros())
    @settings(max_examples=50)
    def test_same_names(self, macros: dict[str, str]) -> None:
        assert list(expand_macros(macros)) == list(macros)


# =========================================================================
# Compiled spec invariants
# =========================================================================


class TestSpecProperties:
    @given(rule_sets())
    @settings(max_examples=50)
    def test_rules_and_actions_parallel(self, rules: list[list[object]]) -> None:
        spec = compile_grammar({"startConditions": {"S": True, "X": False}, "rules": rules})
        assert len(spec.rules) == len(spec.actions) == len(rules)
        for i, (rule, action) in enumerate(zip(spec.rules, spec.actions)):
            assert rule.index == action.rule_index == i

    @given(rule_sets())
    @settings(max_examples=50)
    def test_condition_membership(self, rules: list[list[object]]) -> None:
        spec = compile_grammar({"startConditions": {"S": True, "X": False}, "rules": rules})
        assert spec.conditions[INITIAL].inclusive
        assert not spec.conditions["S"].inclusive
        for name, condition in spec.conditions.items():
            indices = condition.rule_indices
            assert list(indices) == sorted(set(indices))
            for i, entry in enumerate(rules):
                states = entry[0] if isinstance(entry[0], list) else None
                if states is None:
                    expected = condition.inclusive
                elif states[0] == "*":
                    expected = True
                else:
                    expected = name in states
                assert (i in indices) == expected

    @given(st.lists(st.sampled_from(["ab", "12", " ", "cd", "3"]), max_size=10))
    @settings(max_examples=50)
    def test_tokens_cover_input(self, pieces: list[str]) -> None:
        text = "".join(pieces)
        lexer = compile_and_load(
            {"rules": [["[0-9]+", "return 'N'"], ["[a-z]+", "return 'W'"], [" ", "return 'SP'"]]},
            text,
        )
        assert "".join(token.value for token in lexer.tokenize()) == text
