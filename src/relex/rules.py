"""Rule pattern compilation.

Each rule pattern has its macro placeholders substituted and is compiled
into a matcher. Matchers are applied with ``Pattern.match(text, pos)``, so
they only ever match at the current scan position; they are never used
to search ahead.

The output keeps the input order. Order is match priority: the runtime
tries rules in this order and the earlier rule wins ties.

"""

from __future__ import annotations

import re
from collections.abc import Iterable, Mapping
from dataclasses import dataclass

from relex.errors import RulePatternError
from relex.grammar import Rule
from relex.macros import check_references, substitute_macros


@dataclass(frozen=True, slots=True)
class CompiledRule:
    """A rule's compiled matcher.

    Attributes:
        index: Position of the rule in the declared rule order
        source: Pattern text after macro expansion
        matcher: Compiled pattern

    """

    index: int
    source: str
    matcher: re.Pattern[str]

    def render(self) -> str:
        """Python expression that rebuilds the matcher in an emitted module."""
        flags = self.matcher.flags & ~re.UNICODE
        if flags == re.IGNORECASE:
            return f"re.compile({self.matcher.pattern!r}, re.I)"
        if flags:
            return f"re.compile({self.matcher.pattern!r}, {int(flags)})"
        return f"re.compile({self.matcher.pattern!r})"


def compile_pattern(pattern: str, index: int, case_insensitive: bool = False) -> re.Pattern[str]:
    """Compile one expanded pattern, grouped so alternations stay together."""
    flags = re.IGNORECASE if case_insensitive else 0
    try:
        return re.compile("(?:" + pattern + ")", flags)
    except re.error as e:
        raise RulePatternError(index, pattern, str(e)) from e


def compile_rules(
    rules: Iterable[Rule],
    macros: Mapping[str, str] | None = None,
    case_insensitive: bool = False,
) -> tuple[CompiledRule, ...]:
    """Compile rule patterns in declaration order.

    Args:
        rules: Rules in declaration order
        macros: Fully expanded macro table
        case_insensitive: Compile string patterns with re.IGNORECASE

    Returns:
        One CompiledRule per rule; ``result[i].index == i``.

    Raises:
        RulePatternError: If a pattern is not a valid regular expression.
    """
    macros = macros or {}
    compiled: list[CompiledRule] = []
    for index, rule in enumerate(rules):
        pattern = rule.pattern
        if isinstance(pattern, re.Pattern):
            compiled.append(CompiledRule(index=index, source=pattern.pattern, matcher=pattern))
            continue
        check_references(pattern, macros, f"rule {index}")
        expanded = substitute_macros(pattern, macros)
        compiled.append(
            CompiledRule(
                index=index,
                source=expanded,
                matcher=compile_pattern(expanded, index, case_insensitive),
            )
        )
    return tuple(compiled)


__all__ = ["CompiledRule", "compile_pattern", "compile_rules"]
