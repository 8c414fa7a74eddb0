"""Protocols for relex.

Defines the contract for the external grammar-syntax parser that turns
unparsed lexical grammar text into the structured form relex compiles.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any, Protocol


class GrammarSourceParser(Protocol):
    """Protocol for parsers of textual lexical grammars.

    The returned mapping uses the structured grammar keys: ``rules``,
    ``macros``, ``startConditions``, ``options``, ``actionInclude`` and
    ``moduleInclude``.

    Thread Safety:
        Implementations must be stateless or use only local variables.

    """

    def parse(self, source: str) -> Mapping[str, Any]:
        """Parse grammar source text into its structured form."""
        ...
