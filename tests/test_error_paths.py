"""Error-path and malformed input tests.

Exercises error formatting, the exception hierarchy, and compile-time
rejection of malformed grammars.
"""

import pytest

from relex import compile_and_load, compile_grammar
from relex.errors import (
    ActionSourceError,
    GrammarError,
    GrammarSyntaxError,
    LexicalError,
    MacroCycleError,
    MacroError,
    MalformedRuleError,
    OptionsError,
    RelexError,
    RulePatternError,
    TemplateMismatchError,
    UndeclaredStateError,
    UnresolvedMacroError,
)

# =========================================================================
# Formatting
# =========================================================================


class TestGrammarSyntaxErrorFormatting:
    def test_message_only(self) -> None:
        err = GrammarSyntaxError("unexpected token")
        assert str(err) == "unexpected token"
        assert err.lineno is None

    def test_with_line_and_column(self) -> None:
        err = GrammarSyntaxError("missing bracket", lineno=10, col_offset=5)
        assert str(err) == "10:5 missing bracket"

    def test_with_source_file(self) -> None:
        err = GrammarSyntaxError("error", lineno=1, col_offset=1, source_file="calc.jisonlex")
        assert str(err) == "calc.jisonlex:1:1 error"


class TestMessages:
    def test_malformed_rule(self) -> None:
        assert str(MalformedRuleError(2, "bad")) == "Rule 2: bad"

    def test_undeclared_state(self) -> None:
        assert "'STR'" in str(UndeclaredStateError("STR", 0))

    def test_macro_cycle(self) -> None:
        assert str(MacroCycleError(["A", "B", "A"])) == "Cyclic macro reference: A -> B -> A"

    def test_unresolved_macro(self) -> None:
        assert str(UnresolvedMacroError("X", "rule 1")) == "Undefined macro '{X}' referenced in rule 1"

    def test_template_mismatch(self) -> None:
        assert "{{RULES}}" in str(TemplateMismatchError(["RULES"]))


# =========================================================================
# Hierarchy
# =========================================================================


class TestHierarchy:
    @pytest.mark.parametrize(
        "error",
        [
            GrammarSyntaxError("x"),
            MalformedRuleError(0, "x"),
            UndeclaredStateError("S", 0),
            RulePatternError(0, "(", "x"),
            OptionsError("flex", 1, "x"),
        ],
    )
    def test_grammar_errors(self, error: RelexError) -> None:
        assert isinstance(error, GrammarError)
        assert isinstance(error, RelexError)

    def test_macro_errors(self) -> None:
        assert isinstance(MacroCycleError(["A", "A"]), MacroError)
        assert isinstance(UnresolvedMacroError("A", "x"), MacroError)

    def test_lexical_error_is_not_a_compile_error(self) -> None:
        assert not issubclass(LexicalError, RelexError)


# =========================================================================
# Malformed grammars
# =========================================================================


class TestMalformedGrammars:
    def test_state_list_without_action(self) -> None:
        with pytest.raises(MalformedRuleError):
            compile_grammar({"rules": [[["INITIAL"], "a"]]})

    def test_undeclared_state(self) -> None:
        with pytest.raises(UndeclaredStateError):
            compile_grammar({"rules": [[["COMMENT"], "a", ""]]})

    def test_invalid_regex(self) -> None:
        with pytest.raises(RulePatternError):
            compile_grammar({"rules": [["(", ""]]})

    def test_invalid_regex_after_macro_expansion(self) -> None:
        with pytest.raises(RulePatternError):
            compile_grammar({"macros": {"OPEN": "("}, "rules": [["{OPEN}a", ""]]})

    def test_invalid_action(self) -> None:
        with pytest.raises(ActionSourceError):
            compile_grammar({"rules": [["a", "return return"]]})

    def test_unknown_module_type(self) -> None:
        with pytest.raises(OptionsError):
            compile_grammar({"options": {"moduleType": "esm"}})

    def test_action_exception_propagates(self) -> None:
        lexer = compile_and_load({"rules": [["a", "raise ValueError('boom')"]]}, "a")
        with pytest.raises(ValueError, match="boom"):
            lexer.lex()
