"""Module emission.

Renders a CompiledLexerSpec as self-contained Python source. The unit is
the scanner runtime (relex.runtime, embedded verbatim) followed by a
skeleton template whose placeholders are filled from the spec:

    {{RULES}}           compiled matchers, in priority order
    {{CONDITIONS}}      start condition table
    {{OPTIONS}}         runtime options
    {{ACTION_INCLUDE}}  verbatim code placed before the dispatch
    {{STATE_ACTIONS}}   the action dispatch

The unit is then wrapped per output convention (see ModuleType). Every
placeholder is checked before anything is substituted; a skeleton
missing one is rejected with TemplateMismatchError.

Example:
    >>> spec = compile_grammar({"rules": [["[0-9]+", "return 'NUMBER'"]]})
    >>> text = emit(spec, ModuleType.SYNC_IMPORT)
    >>> "def lex():" in text
    True

"""

from __future__ import annotations

import inspect
import pprint
import re
import textwrap
from collections.abc import Mapping
from enum import Enum
from pathlib import Path
from typing import TYPE_CHECKING, Any

from relex import runtime
from relex.assembler import CompiledLexerSpec, compile_grammar
from relex.config import get_compile_config
from relex.errors import TemplateError, TemplateMismatchError, TemplateNotFoundError
from relex.options import LEXER_CLASS, ModuleType
from relex.utils.logger import get_logger

if TYPE_CHECKING:
    from relex.grammar import Grammar
    from relex.protocols import GrammarSourceParser

logger = get_logger(__name__)

_INDENT = " " * 8

_TEMPLATES_DIR = Path(__file__).parent / "templates"


class Placeholder(Enum):
    """Placeholders every skeleton template must contain."""

    RULES = "RULES"
    CONDITIONS = "CONDITIONS"
    OPTIONS = "OPTIONS"
    ACTION_INCLUDE = "ACTION_INCLUDE"
    STATE_ACTIONS = "STATE_ACTIONS"

    @property
    def marker(self) -> str:
        return "{{" + self.value + "}}"


_MARKER = re.compile(r"\{\{(" + "|".join(p.value for p in Placeholder) + r")\}\}")


def load_template(name: str | None = None) -> str:
    """Read a skeleton template shipped under relex/templates/<name>/.

    Args:
        name: Template name; defaults to CompileConfig.template

    Raises:
        TemplateNotFoundError: If no such template exists.
    """
    name = name or get_compile_config().template
    path = _TEMPLATES_DIR / name / "lexer.tmpl"
    if not path.is_file():
        raise TemplateNotFoundError(name)
    return path.read_text(encoding="utf-8").rstrip()


def render_template(skeleton: str, values: Mapping[Placeholder, str]) -> str:
    """Substitute placeholder values into a skeleton.

    All placeholders are validated before substitution, and substitution is
    a single pass, so marker text inside a value is never expanded.

    Raises:
        TemplateMismatchError: If the skeleton lacks a placeholder.
        TemplateError: If no value is given for a placeholder.
    """
    missing = [p.value for p in Placeholder if p.marker not in skeleton]
    if missing:
        raise TemplateMismatchError(missing)
    unset = [p.value for p in Placeholder if p not in values]
    if unset:
        raise TemplateError("No value for placeholder(s) " + ", ".join(unset))
    return _MARKER.sub(lambda m: values[Placeholder(m.group(1))], skeleton)


def placeholder_values(spec: CompiledLexerSpec) -> dict[Placeholder, str]:
    """Rendered value of every placeholder for ``spec``."""
    if spec.rules:
        rules = "(\n" + "".join(f"{_INDENT}{rule.render()},\n" for rule in spec.rules) + "    )"
    else:
        rules = "()"
    return {
        Placeholder.RULES: rules,
        Placeholder.CONDITIONS: pprint.pformat(spec.conditions_table(), sort_dicts=False),
        Placeholder.OPTIONS: repr(spec.options.to_runtime_dict()),
        Placeholder.ACTION_INCLUDE: textwrap.dedent(spec.action_include).strip("\n"),
        Placeholder.STATE_ACTIONS: textwrap.indent(spec.action_dispatch, _INDENT),
    }


def _header() -> str:
    from relex import __version__

    return f"# generated by relex {__version__}\n"


def generate_module_function(spec: CompiledLexerSpec, template: str | None = None) -> str:
    """Render the unit: header, embedded runtime and filled skeleton."""
    body = render_template(load_template(template), placeholder_values(spec))
    return _header() + inspect.getsource(runtime).rstrip() + "\n\n\n" + body + "\n"


def _module_include(spec: CompiledLexerSpec, indent: str = "") -> str:
    if not spec.module_include:
        return ""
    return "\n" + textwrap.indent(textwrap.dedent(spec.module_include), indent) + "\n"


def generate_module(spec: CompiledLexerSpec, template: str | None = None) -> str:
    """Bare convention: the unit, with the scanner bound to ``lexer``."""
    unit = generate_module_function(spec, template)
    return unit + f"\n\nlexer = {LEXER_CLASS}()\n" + _module_include(spec)


def generate_sync_import_module(spec: CompiledLexerSpec, template: str | None = None) -> str:
    """Sync-import convention: an importable module exporting ``lexer`` and ``lex()``."""
    name = spec.module_name
    unit = generate_module_function(spec, template)
    exports = (
        f"\n\n{name} = {LEXER_CLASS}()\n"
        f"lexer = {name}\n"
        "\n\ndef lex():\n"
        "    return lexer.lex()\n"
        "\n\n__all__ = [\"lexer\", \"lex\"]\n"
    )
    return unit + exports + _module_include(spec)


def generate_async_define_module(spec: CompiledLexerSpec, template: str | None = None) -> str:
    """Async-define convention: ``define()`` coroutine resolving to the scanner, no dependencies."""
    unit = generate_module_function(spec, template)
    factory = (
        "\n\nasync def define():\n"
        f"    lexer = {LEXER_CLASS}()\n"
        + _module_include(spec, "    ")
        + "    return lexer\n"
    )
    return unit + factory


_GENERATORS = {
    ModuleType.BARE: generate_module,
    ModuleType.SYNC_IMPORT: generate_sync_import_module,
    ModuleType.ASYNC_DEFINE: generate_async_define_module,
}


def emit(
    spec: CompiledLexerSpec,
    module_type: ModuleType | str | None = None,
    *,
    template: str | None = None,
) -> str:
    """Render ``spec`` as Python source in the requested convention.

    Args:
        spec: Compiled lexer spec
        module_type: Output convention; defaults to the spec's moduleType option
        template: Skeleton template name; defaults to CompileConfig.template

    Raises:
        TemplateError: If the skeleton is missing or mismatched.
        ActionSourceError: If a callable action's source cannot be recovered.
    """
    convention = spec.module_type if module_type is None else ModuleType.parse(module_type)
    logger.debug("Emitting %s module (%d rule(s))", convention.value, len(spec.rules))
    return _GENERATORS[convention](spec, template)


class LexerGenerator:
    """Compiles a grammar once and emits it in any convention.

    Usage:
        >>> generator = LexerGenerator({"rules": [["x", "return 'X'"]]})
        >>> source = generator.generate_sync_import_module()
    """

    __slots__ = ("_spec",)

    def __init__(
        self,
        grammar: Grammar | Mapping[str, Any] | str | None,
        tokens: Mapping[str, Any] | None = None,
        *,
        parser: GrammarSourceParser | None = None,
    ) -> None:
        self._spec = compile_grammar(grammar, tokens, parser=parser)

    @property
    def spec(self) -> CompiledLexerSpec:
        return self._spec

    def generate(self) -> str:
        """Emit in the convention named by the grammar's moduleType option."""
        return emit(self._spec)

    def generate_module(self) -> str:
        return generate_module(self._spec)

    def generate_sync_import_module(self) -> str:
        return generate_sync_import_module(self._spec)

    def generate_async_define_module(self) -> str:
        return generate_async_define_module(self._spec)


__all__ = [
    "LEXER_CLASS",
    "LexerGenerator",
    "Placeholder",
    "emit",
    "generate_async_define_module",
    "generate_module",
    "generate_module_function",
    "generate_sync_import_module",
    "load_template",
    "placeholder_values",
    "render_template",
]
