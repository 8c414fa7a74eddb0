"""Macro expansion.

Macros are named pattern fragments. Any macro or rule pattern may refer
to a macro with a ``{NAME}`` placeholder, which is replaced by the
macro's text wrapped in parentheses so quantifiers keep applying to the
whole fragment:

    >>> expand_macros({"DIGIT": "[0-9]", "INT": "{DIGIT}+"})
    {'DIGIT': '[0-9]', 'INT': '([0-9])+'}

Expansion runs full passes over the table until one makes no change.
Cyclic references would never reach that fixed point, so the reference
graph is checked first and a cycle raises MacroCycleError.

Placeholders naming an undefined macro are left verbatim (regex
quantifiers such as ``{2,3}`` share the brace syntax) and logged; under
CompileConfig(strict_macros=True) they raise UnresolvedMacroError.

"""

from __future__ import annotations

import re
from collections.abc import Mapping

from relex.config import get_compile_config
from relex.errors import MacroCycleError, UnresolvedMacroError
from relex.utils.logger import get_logger

logger = get_logger(__name__)

_PLACEHOLDER = re.compile(r"\{([A-Za-z_][\w-]*)\}")


def macro_references(text: str) -> list[str]:
    """Names of all ``{NAME}`` placeholders in ``text``, in order of appearance."""
    return _PLACEHOLDER.findall(text)


def substitute_macros(text: str, macros: Mapping[str, str], *, skip: str | None = None) -> str:
    """Replace every ``{NAME}`` of a known macro with ``(text)``.

    Args:
        text: Pattern text
        macros: Macro table
        skip: Macro name to leave untouched (a macro's own name)

    Returns:
        Text with one level of macro references substituted.
    """
    for name, body in macros.items():
        if name != skip:
            text = text.replace("{" + name + "}", "(" + body + ")")
    return text


def check_references(text: str, macros: Mapping[str, str], where: str) -> None:
    """Report placeholders in ``text`` that name no macro in ``macros``."""
    for name in macro_references(text):
        if name in macros:
            continue
        if get_compile_config().strict_macros:
            raise UnresolvedMacroError(name, where)
        logger.warning("Undefined macro {%s} in %s left verbatim", name, where)


def find_cycle(macros: Mapping[str, str]) -> list[str] | None:
    """Find a reference cycle among macros.

    Returns:
        The names along the first cycle found, with the starting name
        repeated at the end (e.g. ``["A", "B", "A"]``), or None.
    """
    graph = {name: [ref for ref in macro_references(body) if ref in macros] for name, body in macros.items()}
    visiting: list[str] = []
    done: set[str] = set()

    def visit(name: str) -> list[str] | None:
        if name in visiting:
            return visiting[visiting.index(name) :] + [name]
        if name in done:
            return None
        visiting.append(name)
        for ref in graph[name]:
            cycle = visit(ref)
            if cycle is not None:
                return cycle
        visiting.pop()
        done.add(name)
        return None

    for name in graph:
        cycle = visit(name)
        if cycle is not None:
            return cycle
    return None


def expand_macros(macros: Mapping[str, str] | None) -> dict[str, str]:
    """Expand macro cross-references to a fixed point.

    The input mapping is never modified; each pass builds a new mapping
    from the previous one.

    Args:
        macros: Macro name -> raw pattern text, in declaration order

    Returns:
        Macro name -> pattern text with no references to other macros left.

    Raises:
        MacroCycleError: If macros reference each other cyclically.
        UnresolvedMacroError: If strict macro checking is on and a
            placeholder names an undefined macro.
    """
    if not macros:
        return {}

    cycle = find_cycle(macros)
    if cycle is not None:
        raise MacroCycleError(cycle)
    for name, body in macros.items():
        check_references(body, macros, f"macro '{name}'")

    current = dict(macros)
    # An acyclic table settles within one pass per level of nesting.
    for passes in range(1, len(current) + 2):
        expanded = {name: substitute_macros(body, current, skip=name) for name, body in current.items()}
        changed = expanded != current
        current = expanded
        if not changed:
            logger.debug("Expanded %d macro(s) in %d pass(es)", len(current), passes)
            return current
    raise MacroCycleError(list(current))


__all__ = [
    "check_references",
    "expand_macros",
    "find_cycle",
    "macro_references",
    "substitute_macros",
]
