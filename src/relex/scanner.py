"""In-process scanners.

build_scanner interprets a CompiledLexerSpec directly: the runtime Scanner
gets the compiled matchers, the start condition table and one bound
callable per action. No module text is generated or evaluated.

load_module_text is the interop path: it evaluates text emitted in the
bare convention and returns the scanner it defines.

Example:
    >>> spec = compile_grammar({"rules": [["[0-9]+", "return 'NUMBER'"], ["\\\\s+", ""]]})
    >>> scanner = build_scanner(spec, "12 34")
    >>> scanner.lex(), scanner.yytext
    ('NUMBER', '12')

"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, TextIO

from relex.actions import bind_actions
from relex.runtime import Scanner

if TYPE_CHECKING:
    from relex.assembler import CompiledLexerSpec


def build_scanner(
    spec: CompiledLexerSpec,
    source: str | None = None,
    *,
    yy: Any = None,
    output: TextIO | None = None,
) -> Scanner:
    """Create a live scanner from a compiled spec.

    Args:
        spec: Compiled lexer spec
        source: Input text to prime the scanner with (optional)
        yy: Shared state object handed to actions as ``yy`` (optional)
        output: Stream for echoed text (defaults to sys.stdout)

    Returns:
        Scanner ready for lex() once input is set.
    """
    scanner = Scanner(
        rules=tuple(rule.matcher for rule in spec.rules),
        conditions=spec.conditions_table(),
        options=spec.options.to_runtime_dict(),
        actions=bind_actions(spec.actions, spec.action_include),
        output=output,
    )
    if source is not None or yy is not None:
        scanner.set_input(source or "", yy)
    return scanner


def load_module_text(text: str, source: str | None = None, *, name: str = "relex_generated") -> Any:
    """Evaluate bare-convention module text and return its ``lexer``.

    Args:
        text: Output of generate_module() / emit(spec, "bare")
        source: Input text to prime the scanner with (optional)
        name: Module name the text is evaluated under
    """
    namespace: dict[str, Any] = {"__name__": name}
    exec(compile(text, f"<{name}>", "exec", dont_inherit=True), namespace)
    lexer = namespace["lexer"]
    if source is not None:
        lexer.set_input(source)
    return lexer


__all__ = ["build_scanner", "load_module_text"]
