"""Grammar compilation pipeline and the compiled lexer spec.

compile_grammar runs every stage in a fixed order:

    parse_grammar -> flex rule -> expand_macros -> compile_rules
        -> resolve_start_conditions -> build_actions -> assemble_spec

Each stage is a pure function of its inputs and builds fresh tables, so
concurrent compilations never share mutable state. Any error aborts the
whole compilation.

Example:
    >>> spec = compile_grammar({
    ...     "macros": {"DIGIT": "[0-9]"},
    ...     "rules": [["{DIGIT}+", "return 'NUMBER'"]],
    ... })
    >>> spec.rules[0].source
    '([0-9])+'

"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from relex.actions import FLEX_RULE, ActionEntry, build_actions, render_dispatch
from relex.conditions import INITIAL, StartCondition, resolve_start_conditions
from relex.errors import CompilationError
from relex.grammar import Grammar, parse_grammar
from relex.macros import expand_macros
from relex.options import LexerOptions, ModuleType
from relex.rules import CompiledRule, compile_rules
from relex.utils.logger import get_logger

if TYPE_CHECKING:
    from relex.protocols import GrammarSourceParser

logger = get_logger(__name__)


@dataclass(frozen=True, slots=True)
class CompiledLexerSpec:
    """Fully resolved lexer, ready for emission or in-process scanning.

    ``rules[i]`` and ``actions[i]`` always describe the same source rule.

    Attributes:
        rules: Compiled matchers in priority order
        conditions: Start condition name -> StartCondition
        actions: Action entries, parallel to ``rules``
        action_dispatch: Python source of the action dispatch
        options: Lexer options
        action_include: Code placed before the action dispatch
        module_include: Code appended after the emitted unit
        condition_stack: Initial condition stack

    """

    rules: tuple[CompiledRule, ...]
    conditions: Mapping[str, StartCondition]
    actions: tuple[ActionEntry, ...]
    action_dispatch: str
    options: LexerOptions
    action_include: str = ""
    module_include: str = ""
    condition_stack: tuple[str, ...] = (INITIAL,)

    @property
    def module_type(self) -> ModuleType:
        return self.options.module_type

    @property
    def module_name(self) -> str:
        return self.options.module_name

    def conditions_table(self) -> dict[str, dict[str, Any]]:
        """Start conditions in runtime form (``{"rules": [...], "inclusive": bool}``)."""
        return {name: condition.to_dict() for name, condition in self.conditions.items()}


def assemble_spec(
    rules: tuple[CompiledRule, ...],
    conditions: Mapping[str, StartCondition],
    actions: tuple[ActionEntry, ...],
    options: LexerOptions,
    action_include: str = "",
    module_include: str = "",
) -> CompiledLexerSpec:
    """Combine compiled parts into a CompiledLexerSpec.

    Raises:
        CompilationError: If rules and actions are not index-aligned.
    """
    if len(rules) != len(actions):
        raise CompilationError(f"{len(rules)} rule(s) but {len(actions)} action(s)")
    for position, (rule, action) in enumerate(zip(rules, actions)):
        if not (rule.index == action.rule_index == position):
            raise CompilationError(
                f"Index mismatch at position {position}: rule {rule.index}, action {action.rule_index}"
            )
    known = set(range(len(rules)))
    for condition in conditions.values():
        stray = set(condition.rule_indices) - known
        if stray:
            raise CompilationError(f"Start condition '{condition.name}' references unknown rule(s) {sorted(stray)}")

    return CompiledLexerSpec(
        rules=rules,
        conditions=dict(conditions),
        actions=actions,
        action_dispatch=render_dispatch(actions),
        options=options,
        action_include=action_include,
        module_include=module_include,
    )


def compile_grammar(
    grammar: Grammar | Mapping[str, Any] | str | None,
    tokens: Mapping[str, Any] | None = None,
    *,
    parser: GrammarSourceParser | None = None,
) -> CompiledLexerSpec:
    """Compile a lexical grammar.

    Args:
        grammar: A Grammar, its structured form, or unparsed grammar text
        tokens: Optional token name -> id map; ``return 'NAME'`` in actions
            then returns the mapped id
        parser: Grammar-syntax parser used when ``grammar`` is text

    Returns:
        Immutable CompiledLexerSpec.

    Raises:
        RelexError: Any grammar, macro or action error.
    """
    grammar = parse_grammar(grammar, parser)
    if grammar.options.flex:
        grammar = grammar.with_rule(FLEX_RULE)

    macros = expand_macros(grammar.macros)
    rules = compile_rules(grammar.rules, macros, grammar.options.case_insensitive)
    conditions = resolve_start_conditions(grammar.start_conditions, grammar.rules)
    actions = build_actions(grammar.rules, tokens)
    logger.debug(
        "Compiled %d rule(s), %d macro(s), %d start condition(s)",
        len(rules),
        len(macros),
        len(conditions),
    )

    return assemble_spec(
        rules=rules,
        conditions=conditions,
        actions=actions,
        options=grammar.options,
        action_include=grammar.action_include,
        module_include=grammar.module_include,
    )


__all__ = ["CompiledLexerSpec", "assemble_spec", "compile_grammar"]
