"""Structured lexical grammar.

A grammar is an ordered list of rules plus optional macros, start
conditions, options and verbatim code blocks. It is usually built from
the structured form returned by a grammar-syntax parser:

    {
        "macros": {"DIGIT": "[0-9]"},
        "startConditions": {"STR": True},      # name -> exclusive?
        "rules": [
            ["{DIGIT}+", "return 'NUMBER'"],
            [["STR"], '"', "self.pop_state()"],
        ],
        "options": {"case-insensitive": True},
        "actionInclude": "...",
        "moduleInclude": "...",
    }

Thread Safety:
Rule and Grammar are frozen and safe to share.

"""

from __future__ import annotations

import json
import re
from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Union

from relex.errors import GrammarSyntaxError, MalformedRuleError
from relex.options import LexerOptions

if TYPE_CHECKING:
    from relex.protocols import GrammarSourceParser

# First entry of a rule's state list that adds the rule to every state
WILDCARD = "*"

Pattern = Union[str, re.Pattern]
Action = Union[str, Callable[..., Any]]


@dataclass(frozen=True, slots=True)
class Rule:
    """A pattern/action pair and the start conditions it belongs to.

    Attributes:
        states: Explicit start condition names, None for implicit membership
            in every inclusive condition. A leading WILDCARD puts the rule
            in every declared condition.
        pattern: Regular expression text (may contain {MACRO} placeholders)
            or an already compiled pattern.
        action: Python statements, or a callable taking any of the action
            variables as keyword arguments.

    """

    states: tuple[str, ...] | None
    pattern: Pattern
    action: Action

    @property
    def is_wildcard(self) -> bool:
        return bool(self.states) and self.states[0] == WILDCARD

    @classmethod
    def from_entry(cls, entry: Any, index: int) -> Rule:
        """Build a Rule from a ``[states?, pattern, action]`` entry.

        Args:
            entry: Two-element ``[pattern, action]`` or three-element
                ``[states, pattern, action]`` sequence.
            index: Position of the entry, for error messages.

        Raises:
            MalformedRuleError: If the entry has any other shape.
        """
        if isinstance(entry, Rule):
            return entry
        if isinstance(entry, (str, bytes)) or not isinstance(entry, Sequence):
            raise MalformedRuleError(index, f"expected a list, got {type(entry).__name__}")

        items = list(entry)
        states: tuple[str, ...] | None = None
        if items and isinstance(items[0], (list, tuple)):
            raw_states = items.pop(0)
            if not all(isinstance(s, str) for s in raw_states):
                raise MalformedRuleError(index, "start condition names must be strings")
            states = tuple(raw_states) or None

        if len(items) != 2:
            if states is not None:
                raise MalformedRuleError(index, "start condition list must be followed by a pattern and an action")
            raise MalformedRuleError(index, f"expected [pattern, action], got {len(items)} item(s)")

        pattern, action = items
        if not isinstance(pattern, (str, re.Pattern)):
            raise MalformedRuleError(index, f"pattern must be a string or compiled pattern, got {type(pattern).__name__}")
        if action is None:
            action = ""
        if not (isinstance(action, str) or callable(action)):
            raise MalformedRuleError(index, f"action must be a string or callable, got {type(action).__name__}")
        return cls(states=states, pattern=pattern, action=action)


@dataclass(frozen=True, slots=True)
class Grammar:
    """Structured lexical grammar.

    Attributes:
        rules: Rules in declaration order (order is match priority)
        macros: Macro name -> pattern text, in declaration order
        start_conditions: Declared condition name -> exclusive flag
        options: Per-grammar options
        action_include: Code placed verbatim before the action dispatch
        module_include: Code appended after the emitted unit

    """

    rules: tuple[Rule, ...] = ()
    macros: Mapping[str, str] = field(default_factory=dict)
    start_conditions: Mapping[str, bool] = field(default_factory=dict)
    options: LexerOptions = field(default_factory=LexerOptions)
    action_include: str = ""
    module_include: str = ""

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> Grammar:
        """Create a Grammar from its structured form.

        Both camelCase (``startConditions``) and snake_case
        (``start_conditions``) keys are accepted; unknown keys are ignored.

        Raises:
            MalformedRuleError: If a rule entry has the wrong shape.
        """

        def pick(*keys: str) -> Any:
            for key in keys:
                if data.get(key) is not None:
                    return data[key]
            return None

        rules = tuple(Rule.from_entry(entry, i) for i, entry in enumerate(pick("rules") or ()))
        conditions = {name: bool(exclusive) for name, exclusive in (pick("startConditions", "start_conditions") or {}).items()}
        options = pick("options")
        if not isinstance(options, LexerOptions):
            options = LexerOptions.from_dict(options)
        return cls(
            rules=rules,
            macros=dict(pick("macros") or {}),
            start_conditions=conditions,
            options=options,
            action_include=pick("actionInclude", "action_include") or "",
            module_include=(pick("moduleInclude", "module_include") or "").strip(),
        )

    def with_rule(self, rule: Rule) -> Grammar:
        """Return a copy of this grammar with ``rule`` appended."""
        return Grammar(
            rules=(*self.rules, rule),
            macros=self.macros,
            start_conditions=self.start_conditions,
            options=self.options,
            action_include=self.action_include,
            module_include=self.module_include,
        )


def parse_grammar(
    source: Grammar | Mapping[str, Any] | str | None,
    parser: GrammarSourceParser | None = None,
) -> Grammar:
    """Normalize any accepted grammar input into a Grammar.

    Args:
        source: A Grammar, its structured form, unparsed grammar text, or None
            for an empty grammar.
        parser: Grammar-syntax parser for unparsed text. Without one, text
            is decoded as JSON.

    Raises:
        GrammarSyntaxError: If text cannot be decoded.
        MalformedRuleError: If a rule entry has the wrong shape.
    """
    if source is None:
        return Grammar()
    if isinstance(source, Grammar):
        return source
    if isinstance(source, str):
        if parser is not None:
            data = parser.parse(source)
        else:
            try:
                data = json.loads(source)
            except json.JSONDecodeError as e:
                raise GrammarSyntaxError(e.msg, lineno=e.lineno, col_offset=e.colno) from e
        if not isinstance(data, Mapping):
            raise GrammarSyntaxError(f"grammar must be an object, got {type(data).__name__}")
        return Grammar.from_dict(data)
    return Grammar.from_dict(source)


__all__ = ["WILDCARD", "Grammar", "Rule", "parse_grammar"]
