"""Action table construction.

Every rule has an action: Python statements run when the rule wins a
match. An action returns a token, or None to keep scanning. Inside an
action these names are bound:

    yytext    matched text            yy        shared state object
    yyleng    length of yytext        yy_       the scanner
    yylineno  current line (0-based)  yy_start  current start condition
    yylloc    Location of the match   self      the scanner

String actions are rewritten twice before use:

- token substitution (only with a token map): ``return 'NAME'`` becomes
  ``return <id>``; unmapped names stay quoted literals
- variable qualification: ``yytext``, ``yyleng``, ``yylineno`` and
  ``yylloc`` become ``yy_.<name>`` so reads and writes go to the scanner

Callable actions are bound once: they receive, as keyword arguments,
whichever of ``yytext, yyleng, yylineno, yylloc, yy, yy_, yy_start``
their signature declares.

Example:
    >>> qualify_variables("return len(yytext)")
    'return len(yy_.yytext)'
    >>> substitute_tokens("return 'NUMBER'", {"NUMBER": 5})
    'return 5'

"""

from __future__ import annotations

import ast
import inspect
import io
import re
import textwrap
import tokenize
from collections.abc import Callable, Iterable, Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any

from relex.errors import ActionSourceError, MalformedRuleError
from relex.grammar import Rule
from relex.utils.logger import get_logger

logger = get_logger(__name__)

# Scanner state readable and writable from actions
SCANNER_VARIABLES = frozenset({"yytext", "yyleng", "yylineno", "yylloc"})

# Keyword arguments a callable action may declare
CALLBACK_PARAMETERS = ("yytext", "yyleng", "yylineno", "yylloc", "yy", "yy_", "yy_start")

# Catch-all rule appended when the flex option is on
FLEX_RULE = Rule(states=None, pattern="(?s:.)", action="yy_.echo(yytext)")

# A single-line, unprefixed string literal naming a token
_TOKEN_LITERAL = re.compile(r"""(['"])([^'"\\\r\n]+)\1""")

# Source lines with their line endings, split the way the parser counts lines
_LINES = re.compile(r"[^\r\n]*(?:\r\n|\r|\n)|[^\r\n]+")

# Actions are parsed and checked as the body of this function
_ACTION_HEADER = "def _action(self, yy, yy_, yy_start):\n"
_ACTION_INDENT = "    "

ActionFunction = Callable[[Any, Any, Any, str], Any]


@dataclass(frozen=True, slots=True)
class ActionEntry:
    """One rule's action.

    Attributes:
        rule_index: Index of the rule this action belongs to
        body: Rewritten Python statements (string actions)
        callback: The user callable (callable actions)
        parameters: Keyword arguments the callback declares

    """

    rule_index: int
    body: str | None = None
    callback: Callable[..., Any] | None = None
    parameters: tuple[str, ...] = field(default=())

    def source(self) -> str:
        """Statements for this action, recovering callback bodies from source."""
        if self.callback is None:
            return self.body or "pass"
        try:
            return qualify_variables(callback_body(self.callback, self.rule_index))
        except SyntaxError as e:
            raise ActionSourceError(self.rule_index, f"cannot parse action: {e.msg}") from e


def _apply_edits(lines: list[str], edits: Iterable[tuple[int, int, int, str]]) -> str:
    """Apply ``(row, start, end, text)`` replacements; rows are 1-based."""
    for row, start, end, text in sorted(edits, reverse=True):
        line = lines[row - 1]
        lines[row - 1] = line[:start] + text + line[end:]
    return "".join(lines)


def _wrap_action(lines: Sequence[str]) -> str:
    indented = (_ACTION_INDENT + line if line.strip() else line for line in lines)
    return _ACTION_HEADER + "".join(indented)


def substitute_tokens(body: str, tokens: Mapping[str, Any]) -> str:
    """Rewrite ``return 'NAME'`` statements to return the mapped token id.

    Works on Python tokens. Only a ``return`` of a single quoted literal
    that ends the statement is touched, so token names inside other string
    literals (triple-quoted ones included) and comments are left alone.

    Raises:
        tokenize.TokenError: If ``body`` cannot be tokenized.
    """
    toks = list(tokenize.generate_tokens(io.StringIO(body).readline))
    edits: list[tuple[int, int, int, str]] = []
    for keyword_tok, literal, after in zip(toks, toks[1:], toks[2:]):
        if not (keyword_tok.type == tokenize.NAME and keyword_tok.string == "return"):
            continue
        m = _TOKEN_LITERAL.fullmatch(literal.string) if literal.type == tokenize.STRING else None
        if m is None:
            continue
        if not (after.type in (tokenize.NEWLINE, tokenize.COMMENT, tokenize.ENDMARKER) or after.string == ";"):
            continue

        name = m.group(2)
        if name not in tokens:
            text = repr(name)
        elif isinstance(tokens[name], int) and not isinstance(tokens[name], bool):
            text = str(tokens[name])
        else:
            text = repr(tokens[name])
        edits.append((literal.start[0], literal.start[1], literal.end[1], text))

    if not edits:
        return body
    return _apply_edits(io.StringIO(body).readlines(), edits)


def _parameter_names(args: ast.arguments) -> frozenset[str]:
    params = [*args.posonlyargs, *args.args, *args.kwonlyargs]
    if args.vararg is not None:
        params.append(args.vararg)
    if args.kwarg is not None:
        params.append(args.kwarg)
    return frozenset(param.arg for param in params)


def _bound_names(body: Iterable[ast.AST], *, targets: bool) -> frozenset[str]:
    """Names bound by a scope's own statements, nested scopes excluded.

    Declarations and definitions always count (``global``, ``nonlocal``,
    ``def``, ``class``, imports, ``except ... as``, match captures).
    Assignment targets count only when ``targets`` is true.
    """
    names: set[str] = set()
    stack = list(body)
    while stack:
        node = stack.pop()
        if isinstance(node, (ast.FunctionDef, ast.AsyncFunctionDef, ast.ClassDef)):
            names.add(node.name)
            continue
        if isinstance(node, (ast.Lambda, ast.ListComp, ast.SetComp, ast.DictComp, ast.GeneratorExp)):
            continue
        if isinstance(node, (ast.Global, ast.Nonlocal)):
            names.update(node.names)
        elif isinstance(node, ast.alias):
            names.add((node.asname or node.name).split(".")[0])
        elif isinstance(node, ast.ExceptHandler) and node.name:
            names.add(node.name)
        elif isinstance(node, (ast.MatchAs, ast.MatchStar)) and node.name:
            names.add(node.name)
        elif targets and isinstance(node, ast.Name) and not isinstance(node.ctx, ast.Load):
            names.add(node.id)
        stack.extend(ast.iter_child_nodes(node))
    return frozenset(names)


class _ScannerNames(ast.NodeVisitor):
    """Collects the positions of names that refer to scanner variables.

    A name bound locally by a nested function, lambda, comprehension or
    class body is a different variable and is skipped, as is one declared
    ``global`` or ``nonlocal``.
    """

    def __init__(self, hidden: frozenset[str]) -> None:
        self.positions: list[tuple[int, int, str]] = []
        self._hidden = hidden

    def _scoped(self, hidden: frozenset[str], nodes: Iterable[ast.AST | None]) -> None:
        outer = self._hidden
        self._hidden = outer | hidden
        for node in nodes:
            if node is not None:
                self.visit(node)
        self._hidden = outer

    def visit_Name(self, node: ast.Name) -> None:
        if node.id in SCANNER_VARIABLES and node.id not in self._hidden:
            self.positions.append((node.lineno, node.col_offset, node.id))

    def _visit_function(self, node: ast.FunctionDef | ast.AsyncFunctionDef) -> None:
        args = node.args
        for expr in (*node.decorator_list, *args.defaults, *args.kw_defaults):
            if expr is not None:
                self.visit(expr)
        self._scoped(_parameter_names(args) | _bound_names(node.body, targets=True), node.body)

    visit_FunctionDef = _visit_function
    visit_AsyncFunctionDef = _visit_function

    def visit_Lambda(self, node: ast.Lambda) -> None:
        args = node.args
        for expr in (*args.defaults, *args.kw_defaults):
            if expr is not None:
                self.visit(expr)
        self._scoped(_parameter_names(args), [node.body])

    def visit_ClassDef(self, node: ast.ClassDef) -> None:
        for expr in (*node.decorator_list, *node.bases, *node.keywords):
            self.visit(expr)
        self._scoped(_bound_names(node.body, targets=True), node.body)

    def _visit_comprehension(self, node: ast.ListComp | ast.SetComp | ast.GeneratorExp | ast.DictComp) -> None:
        first, *rest = node.generators
        # The first iterable is evaluated in the enclosing scope
        self.visit(first.iter)
        targets = frozenset(
            name.id for gen in node.generators for name in ast.walk(gen.target) if isinstance(name, ast.Name)
        )
        inner: list[ast.AST | None] = [*first.ifs]
        for gen in rest:
            inner += [gen.iter, *gen.ifs]
        if isinstance(node, ast.DictComp):
            inner += [node.key, node.value]
        else:
            inner.append(node.elt)
        self._scoped(targets, inner)

    visit_ListComp = _visit_comprehension
    visit_SetComp = _visit_comprehension
    visit_GeneratorExp = _visit_comprehension
    visit_DictComp = _visit_comprehension


def qualify_variables(body: str) -> str:
    """Rewrite scanner variables to ``yy_.<name>``.

    Works on the parsed action, so only plain names that refer to the
    scanner are rewritten. Text in strings and comments, longer
    identifiers (``yytext2``), attribute accesses (``obj.yytext``),
    keyword argument names and names bound in a nested scope are left
    alone. Everything but the rewritten names keeps its original text.

    Raises:
        SyntaxError: If ``body`` is not valid Python.
    """
    lines = _LINES.findall(body)
    action = ast.parse(_wrap_action(lines)).body[0]
    assert isinstance(action, ast.FunctionDef)
    finder = _ScannerNames(_bound_names(action.body, targets=False))
    for stmt in action.body:
        finder.visit(stmt)
    if not finder.positions:
        return body

    edits: list[tuple[int, int, int, str]] = []
    for lineno, byte_col, name in finder.positions:
        row = lineno - 1
        # Column offsets are UTF-8 byte offsets into the indented line
        indented = (_ACTION_INDENT + lines[row - 1]).encode("utf-8")
        col = len(indented[:byte_col].decode("utf-8")) - len(_ACTION_INDENT)
        if lines[row - 1][col : col + len(name)] == name:
            edits.append((row, col, col, "yy_."))
    return _apply_edits(lines, edits)


def normalize_body(action: str) -> str:
    """Dedent an action; an action with no statements becomes ``pass``."""
    body = textwrap.dedent(action).strip("\n")
    statements = [line for line in body.splitlines() if line.strip() and not line.strip().startswith("#")]
    return body if statements else "pass"


def callback_body(callback: Callable[..., Any], rule_index: int) -> str:
    """Recover the statements of a callable action from its source.

    Raises:
        ActionSourceError: If the source is unavailable or ambiguous.
    """
    try:
        source = textwrap.dedent(inspect.getsource(callback))
    except (OSError, TypeError) as e:
        raise ActionSourceError(rule_index, f"source of {callback!r} is not available") from e
    try:
        tree = ast.parse(source)
    except SyntaxError as e:
        raise ActionSourceError(rule_index, f"source of {callback!r} cannot be isolated") from e

    name = getattr(callback, "__name__", "")
    if name == "<lambda>":
        lambdas = [node for node in ast.walk(tree) if isinstance(node, ast.Lambda)]
        if len(lambdas) != 1:
            raise ActionSourceError(rule_index, "lambda source is ambiguous; use a def")
        return "return " + ast.unparse(lambdas[0].body)
    for node in ast.walk(tree):
        if isinstance(node, (ast.FunctionDef, ast.AsyncFunctionDef)) and node.name == name:
            return "\n".join(ast.unparse(stmt) for stmt in node.body)
    raise ActionSourceError(rule_index, f"definition of {name!r} not found in its source")


def callback_parameters(callback: Callable[..., Any], rule_index: int) -> tuple[str, ...]:
    """Action variables a callable action declares.

    Raises:
        MalformedRuleError: If the callback requires an argument that is
            not an action variable.
    """
    try:
        signature = inspect.signature(callback)
    except (TypeError, ValueError) as e:
        raise MalformedRuleError(rule_index, f"cannot inspect action {callback!r}") from e

    names: list[str] = []
    for param in signature.parameters.values():
        if param.kind is inspect.Parameter.VAR_KEYWORD:
            return CALLBACK_PARAMETERS
        if param.kind is inspect.Parameter.VAR_POSITIONAL:
            continue
        if param.name in CALLBACK_PARAMETERS:
            names.append(param.name)
        elif param.default is inspect.Parameter.empty:
            raise MalformedRuleError(rule_index, f"action parameter {param.name!r} is not an action variable")
    return tuple(names)


def _check_syntax(body: str, rule_index: int) -> None:
    try:
        ast.parse(_wrap_action(_LINES.findall(body)))
    except SyntaxError as e:
        raise ActionSourceError(rule_index, f"invalid Python: {e.msg}") from e


def build_actions(
    rules: Iterable[Rule],
    tokens: Mapping[str, Any] | None = None,
) -> tuple[ActionEntry, ...]:
    """Build one ActionEntry per rule, in rule order.

    Args:
        rules: Rules in declaration order
        tokens: Optional token name -> id map for token substitution

    Returns:
        Entries where ``result[i].rule_index == i``.

    Raises:
        ActionSourceError: If a string action is not valid Python.
        MalformedRuleError: If a callable action has an unusable signature.
    """
    entries: list[ActionEntry] = []
    for index, rule in enumerate(rules):
        action = rule.action
        if not isinstance(action, str):
            entries.append(
                ActionEntry(rule_index=index, callback=action, parameters=callback_parameters(action, index))
            )
            continue

        body = normalize_body(action)
        try:
            if tokens:
                body = substitute_tokens(body, tokens)
            body = qualify_variables(body)
        except (tokenize.TokenError, SyntaxError) as e:
            raise ActionSourceError(index, f"invalid Python: {e.args[0]}") from e
        _check_syntax(body, index)
        entries.append(ActionEntry(rule_index=index, body=body))

    logger.debug("Built %d action(s)%s", len(entries), " with token map" if tokens else "")
    return tuple(entries)


def render_dispatch(entries: Sequence[ActionEntry]) -> str:
    """Render the action dispatch as a ``match rule_index:`` statement.

    The text is unindented; the emitter places it inside
    ``perform_action(self, yy, yy_, rule_index, yy_start)``.
    """
    if not entries:
        return "return None"
    lines = ["match rule_index:"]
    for entry in entries:
        lines.append(f"    case {entry.rule_index}:")
        lines.append(textwrap.indent(entry.source(), " " * 8))
    return "\n".join(lines)


def bind_actions(entries: Sequence[ActionEntry], action_include: str = "") -> tuple[ActionFunction, ...]:
    """Turn action entries into callables for an in-process scanner.

    String actions are compiled together with ``action_include`` into one
    namespace, once. Each returned callable has the signature
    ``(scanner, yy, yy_, yy_start)``.
    """
    parts = [textwrap.dedent(action_include)] if action_include.strip() else []
    for entry in entries:
        if entry.callback is None:
            parts.append(
                f"def _rule_{entry.rule_index}(self, yy, yy_, yy_start):\n" + textwrap.indent(entry.source(), "    ")
            )

    namespace: dict[str, Any] = {"__name__": "relex.actions.bound", "re": re}
    exec(compile("\n\n".join(parts) + "\n", "<relex actions>", "exec", dont_inherit=True), namespace)

    bound: list[ActionFunction] = []
    for entry in entries:
        if entry.callback is None:
            bound.append(namespace[f"_rule_{entry.rule_index}"])
        else:
            bound.append(_bind_callback(entry.callback, entry.parameters))
    return tuple(bound)


def _bind_callback(callback: Callable[..., Any], parameters: tuple[str, ...]) -> ActionFunction:
    getters: dict[str, Callable[[Any, Any, Any, str], Any]] = {
        "yytext": lambda scanner, yy, yy_, start: scanner.yytext,
        "yyleng": lambda scanner, yy, yy_, start: scanner.yyleng,
        "yylineno": lambda scanner, yy, yy_, start: scanner.yylineno,
        "yylloc": lambda scanner, yy, yy_, start: scanner.yylloc,
        "yy": lambda scanner, yy, yy_, start: yy,
        "yy_": lambda scanner, yy, yy_, start: yy_,
        "yy_start": lambda scanner, yy, yy_, start: start,
    }
    selected = [(name, getters[name]) for name in parameters]

    def action(scanner: Any, yy: Any, yy_: Any, yy_start: str) -> Any:
        return callback(**{name: get(scanner, yy, yy_, yy_start) for name, get in selected})

    return action


__all__ = [
    "CALLBACK_PARAMETERS",
    "FLEX_RULE",
    "SCANNER_VARIABLES",
    "ActionEntry",
    "bind_actions",
    "build_actions",
    "callback_body",
    "callback_parameters",
    "normalize_body",
    "qualify_variables",
    "render_dispatch",
    "substitute_tokens",
]
