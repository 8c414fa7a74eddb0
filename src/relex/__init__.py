"""
relex — Lexer generator backend

Compiles a declarative lexical grammar (macros, pattern rules, start
conditions, actions and options) into a compiled scanner spec, and emits
that spec as self-contained Python source.

Quick Start:
    >>> from relex import compile_and_load
    >>> lexer = compile_and_load(
    ...     {
    ...         "macros": {"DIGIT": "[0-9]"},
    ...         "rules": [["{DIGIT}+", "return 'NUMBER'"], ["\\\\s+", ""]],
    ...     },
    ...     "123 45",
    ... )
    >>> lexer.lex(), lexer.yytext
    ('NUMBER', '123')

    >>> # Or emit a module for another toolchain
    >>> from relex import generate
    >>> source = generate({"rules": [["x", "return 'X'"]], "options": {"moduleType": "sync-import"}})

Pipeline:
    grammar -> expand_macros -> compile_rules -> resolve_start_conditions
        -> build_actions -> CompiledLexerSpec -> emit
"""

from collections.abc import Mapping
from typing import Any

from relex.actions import ActionEntry
from relex.assembler import CompiledLexerSpec, assemble_spec, compile_grammar
from relex.conditions import INITIAL, StartCondition
from relex.config import (
    CompileConfig,
    compile_config_context,
    get_compile_config,
    reset_compile_config,
    set_compile_config,
)
from relex.emitter import LexerGenerator, Placeholder, emit
from relex.errors import (
    LexicalError,
    MacroCycleError,
    MalformedRuleError,
    RelexError,
    TemplateMismatchError,
    UndeclaredStateError,
    UnresolvedMacroError,
)
from relex.grammar import WILDCARD, Grammar, Rule, parse_grammar
from relex.options import LexerOptions, ModuleType
from relex.protocols import GrammarSourceParser
from relex.rules import CompiledRule
from relex.runtime import Location, Scanner, Token
from relex.scanner import build_scanner, load_module_text

__version__ = "0.1.0"


def compile_and_load(
    grammar: Grammar | Mapping[str, Any] | str | None,
    source: str | None = None,
    tokens: Mapping[str, Any] | None = None,
    *,
    parser: GrammarSourceParser | None = None,
) -> Scanner:
    """Compile a grammar and return a live scanner.

    The scanner interprets the compiled tables directly; no module text
    is generated.

    Args:
        grammar: A Grammar, its structured form, or unparsed grammar text
        source: Input text to prime the scanner with (optional)
        tokens: Optional token name -> id map
        parser: Grammar-syntax parser used when ``grammar`` is text

    Returns:
        Scanner; call lex() for each token until it returns Scanner.EOF.

    Example:
        >>> lexer = compile_and_load({"rules": [["a+", "return 'A'"]]}, "aaa")
        >>> lexer.lex()
        'A'
    """
    spec = compile_grammar(grammar, tokens, parser=parser)
    return build_scanner(spec, source)


def generate(
    grammar: Grammar | Mapping[str, Any] | str | None,
    tokens: Mapping[str, Any] | None = None,
    *,
    parser: GrammarSourceParser | None = None,
) -> str:
    """Compile a grammar and emit it in the convention its options name.

    Example:
        >>> source = generate({"rules": [["a+", "return 'A'"]]})
        >>> "class GeneratedLexer(Scanner):" in source
        True
    """
    return emit(compile_grammar(grammar, tokens, parser=parser))


__all__ = [  # noqa: RUF022 (grouped by category)
    # Version
    "__version__",
    # Core API
    "compile_grammar",
    "compile_and_load",
    "emit",
    "generate",
    "load_module_text",
    "build_scanner",
    "LexerGenerator",
    # Grammar input
    "Grammar",
    "Rule",
    "WILDCARD",
    "parse_grammar",
    "GrammarSourceParser",
    "LexerOptions",
    "ModuleType",
    # Compiled spec
    "CompiledLexerSpec",
    "CompiledRule",
    "StartCondition",
    "ActionEntry",
    "INITIAL",
    "assemble_spec",
    "Placeholder",
    # Runtime
    "Scanner",
    "Token",
    "Location",
    # Errors
    "RelexError",
    "LexicalError",
    "MalformedRuleError",
    "UndeclaredStateError",
    "MacroCycleError",
    "UnresolvedMacroError",
    "TemplateMismatchError",
    # Configuration (ContextVar-based)
    "CompileConfig",
    "get_compile_config",
    "set_compile_config",
    "reset_compile_config",
    "compile_config_context",
]
