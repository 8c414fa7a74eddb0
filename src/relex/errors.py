"""Exception classes for relex.

Provides standardized exceptions for error handling throughout relex.
Every compilation error aborts the whole compilation; no partial
CompiledLexerSpec is ever returned.

Errors raised by generated scanners at scan time (LexicalError) live in
relex.runtime, because emitted modules must not import relex. It is
re-exported here for convenience.
"""

from __future__ import annotations

from collections.abc import Iterable

from relex.runtime import LexicalError


class RelexError(Exception):
    """Base exception for all relex compilation errors.

    Subclass this for specific error categories.
    """

    pass


class GrammarError(RelexError):
    """Error in the shape or content of a lexical grammar."""

    pass


class GrammarSyntaxError(GrammarError):
    """Unparsed grammar text could not be decoded.

    Raised when grammar source text is neither valid JSON nor accepted
    by the configured grammar-source parser.
    """

    def __init__(
        self,
        message: str,
        lineno: int | None = None,
        col_offset: int | None = None,
        source_file: str | None = None,
    ) -> None:
        """Initialize grammar syntax error with optional location.

        Args:
            message: Error description
            lineno: Line number where error occurred (1-indexed)
            col_offset: Column offset where error occurred (1-indexed)
            source_file: Path to grammar file (optional)
        """
        self.message = message
        self.lineno = lineno
        self.col_offset = col_offset
        self.source_file = source_file

        location = ""
        if source_file:
            location = f"{source_file}:"
        if lineno is not None:
            location += f"{lineno}:"
            if col_offset is not None:
                location += f"{col_offset}:"
        if location:
            location = location.rstrip(":") + " "

        super().__init__(f"{location}{message}")


class MalformedRuleError(GrammarError):
    """A rule entry has the wrong shape.

    Raised for entries such as an explicit state list with no following
    pattern/action pair.
    """

    def __init__(self, rule_index: int, message: str) -> None:
        """Initialize malformed rule error.

        Args:
            rule_index: Position of the rule in the grammar's rule list
            message: Description of what is wrong with the entry
        """
        self.rule_index = rule_index
        super().__init__(f"Rule {rule_index}: {message}")


class UndeclaredStateError(GrammarError):
    """A rule references a start condition that was never declared."""

    def __init__(self, state: str, rule_index: int) -> None:
        self.state = state
        self.rule_index = rule_index
        super().__init__(f"Rule {rule_index}: start condition '{state}' is not declared")


class RulePatternError(GrammarError):
    """A rule pattern is not a valid regular expression after macro expansion."""

    def __init__(self, rule_index: int, pattern: str, reason: str) -> None:
        self.rule_index = rule_index
        self.pattern = pattern
        self.reason = reason
        super().__init__(f"Rule {rule_index}: invalid pattern {pattern!r}: {reason}")


class OptionsError(GrammarError):
    """An option value is not recognized."""

    def __init__(self, option: str, value: object, message: str) -> None:
        self.option = option
        self.value = value
        super().__init__(f"Option '{option}' = {value!r}: {message}")


class MacroError(RelexError):
    """Error while expanding macro definitions."""

    pass


class MacroCycleError(MacroError):
    """Macro definitions reference each other in a cycle.

    Expanding such a table would never reach a fixed point.
    """

    def __init__(self, cycle: Iterable[str]) -> None:
        """Initialize macro cycle error.

        Args:
            cycle: Macro names along the cycle, first name repeated at the end
                (e.g., ["A", "B", "A"])
        """
        self.cycle = tuple(cycle)
        super().__init__("Cyclic macro reference: " + " -> ".join(self.cycle))


class UnresolvedMacroError(MacroError):
    """A macro placeholder names a macro that does not exist.

    Only raised when strict macro checking is enabled; otherwise the
    placeholder is left verbatim and a warning is logged.
    """

    def __init__(self, name: str, where: str) -> None:
        """Initialize unresolved macro error.

        Args:
            name: The undefined macro name
            where: Where the reference was found (e.g., "macro 'ID'", "rule 3")
        """
        self.name = name
        self.where = where
        super().__init__(f"Undefined macro '{{{name}}}' referenced in {where}")


class CompilationError(RelexError):
    """Internal consistency check failed while assembling a compiled spec."""

    pass


class ActionSourceError(RelexError):
    """A callable action cannot be converted into source text for emission."""

    def __init__(self, rule_index: int, message: str) -> None:
        self.rule_index = rule_index
        super().__init__(f"Rule {rule_index} action: {message}")


class TemplateError(RelexError):
    """Error with an output skeleton template."""

    pass


class TemplateNotFoundError(TemplateError):
    """No skeleton template exists under the requested name."""

    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f"Template '{name}' not found")


class TemplateMismatchError(TemplateError):
    """Required placeholders are missing from a skeleton template.

    Indicates a corrupted or mismatched skeleton, not a grammar problem.
    """

    def __init__(self, missing: Iterable[str]) -> None:
        """Initialize template mismatch error.

        Args:
            missing: Names of the placeholders absent from the skeleton
        """
        self.missing = tuple(missing)
        names = ", ".join("{{" + name + "}}" for name in self.missing)
        super().__init__(f"Placeholder(s) {names} not found in template")


class SerializationError(RelexError):
    """A compiled spec cannot be converted to or from its data form."""

    pass


__all__ = [
    "ActionSourceError",
    "CompilationError",
    "GrammarError",
    "GrammarSyntaxError",
    "LexicalError",
    "MacroCycleError",
    "MacroError",
    "MalformedRuleError",
    "OptionsError",
    "RelexError",
    "RulePatternError",
    "SerializationError",
    "TemplateError",
    "TemplateMismatchError",
    "TemplateNotFoundError",
    "UndeclaredStateError",
    "UnresolvedMacroError",
]
