"""Tests for action table construction."""

import pytest

from relex.actions import (
    CALLBACK_PARAMETERS,
    ActionEntry,
    bind_actions,
    build_actions,
    callback_body,
    callback_parameters,
    normalize_body,
    qualify_variables,
    render_dispatch,
    substitute_tokens,
)
from relex.errors import ActionSourceError, MalformedRuleError
from relex.grammar import Rule

# =========================================================================
# Token substitution
# =========================================================================


class TestSubstituteTokens:
    def test_mapped_int(self) -> None:
        assert substitute_tokens("return 'NUMBER'", {"NUMBER": 5}) == "return 5"

    def test_mapped_string(self) -> None:
        assert substitute_tokens('return "ID"', {"ID": "ident"}) == "return 'ident'"

    def test_unmapped_name_stays_literal(self) -> None:
        assert substitute_tokens("return 'OTHER'", {"NUMBER": 5}) == "return 'OTHER'"

    def test_statement_must_end_after_literal(self) -> None:
        body = "return 'A' + yytext"
        assert substitute_tokens(body, {"A": 1}) == body

    def test_trailing_comment_allowed(self) -> None:
        assert substitute_tokens("return 'A'  # token", {"A": 1}) == "return 1  # token"

    def test_each_line(self) -> None:
        body = "if yytext:\n    return 'A'\nreturn 'B'"
        assert substitute_tokens(body, {"A": 1, "B": 2}) == "if yytext:\n    return 1\nreturn 2"

    def test_names_in_other_strings_untouched(self) -> None:
        body = "print('return NUMBER')"
        assert substitute_tokens(body, {"NUMBER": 5}) == body

    def test_triple_quoted_string_untouched(self) -> None:
        body = "msg = \"\"\"\nreturn 'FOO'\n\"\"\"\nreturn msg"
        assert substitute_tokens(body, {"FOO": 5}) == body

    def test_semicolon_ends_statement(self) -> None:
        assert substitute_tokens("return 'A'; x = 1", {"A": 1}) == "return 1; x = 1"

    def test_prefixed_literal_untouched(self) -> None:
        body = "return r'A'"
        assert substitute_tokens(body, {"A": 1}) == body


# =========================================================================
# Variable qualification
# =========================================================================


class TestQualifyVariables:
    def test_read(self) -> None:
        assert qualify_variables("return yytext") == "return yy_.yytext"

    def test_write(self) -> None:
        assert qualify_variables("yytext = yytext.strip()") == "yy_.yytext = yy_.yytext.strip()"

    def test_all_variables(self) -> None:
        result = qualify_variables("x = (yytext, yyleng, yylineno, yylloc)")
        assert result == "x = (yy_.yytext, yy_.yyleng, yy_.yylineno, yy_.yylloc)"

    def test_whole_identifiers_only(self) -> None:
        assert qualify_variables("yytext2 = my_yytext") == "yytext2 = my_yytext"

    def test_attribute_access_untouched(self) -> None:
        assert qualify_variables("return yy_.yytext") == "return yy_.yytext"
        assert qualify_variables("return obj.yyleng") == "return obj.yyleng"

    def test_strings_and_comments_untouched(self) -> None:
        body = "s = 'yytext'  # yyleng"
        assert qualify_variables(body) == body

    def test_multiline(self) -> None:
        body = "if yyleng > 2:\n    return yytext\n"
        assert qualify_variables(body) == "if yy_.yyleng > 2:\n    return yy_.yytext\n"

    def test_keyword_argument_name_untouched(self) -> None:
        assert qualify_variables("return dict(yytext=yytext)") == "return dict(yytext=yy_.yytext)"

    def test_lambda_parameter_untouched(self) -> None:
        body = "f = lambda yytext: yytext.upper()\nreturn f(yytext)"
        assert qualify_variables(body) == "f = lambda yytext: yytext.upper()\nreturn f(yy_.yytext)"

    def test_nested_function_locals_untouched(self) -> None:
        body = "def up(yytext):\n    yyleng = len(yytext)\n    return yytext.upper() * yyleng\nreturn up(yytext)"
        expected = "def up(yytext):\n    yyleng = len(yytext)\n    return yytext.upper() * yyleng\nreturn up(yy_.yytext)"
        assert qualify_variables(body) == expected

    def test_nested_function_reads_scanner(self) -> None:
        body = "def size():\n    return yyleng\nreturn size()"
        assert qualify_variables(body) == "def size():\n    return yy_.yyleng\nreturn size()"

    def test_global_declaration_untouched(self) -> None:
        body = "global yyleng\nyyleng = 1"
        assert qualify_variables(body) == body

    def test_comprehension_target_untouched(self) -> None:
        body = "return [yytext for yytext in parts]"
        assert qualify_variables(body) == body
        assert qualify_variables("return [c for c in yytext]") == "return [c for c in yy_.yytext]"

    def test_non_ascii_text_before_name(self) -> None:
        assert qualify_variables("s = '\u00e9\u00e9'; return yytext") == "s = '\u00e9\u00e9'; return yy_.yytext"

    def test_invalid_python_raises(self) -> None:
        with pytest.raises(SyntaxError):
            qualify_variables("return (")


class TestNormalizeBody:
    def test_dedent(self) -> None:
        assert normalize_body("\n    x = 1\n    return x\n") == "x = 1\nreturn x"

    def test_empty_is_pass(self) -> None:
        assert normalize_body("") == "pass"
        assert normalize_body("   \n") == "pass"

    def test_comment_only_is_pass(self) -> None:
        assert normalize_body("# skip whitespace") == "pass"


# =========================================================================
# build_actions
# =========================================================================


class TestBuildActions:
    def test_one_entry_per_rule_in_order(self) -> None:
        rules = [Rule(None, "a", "return 'A'"), Rule(None, "b", ""), Rule(None, "c", "return 'C'")]
        entries = build_actions(rules)
        assert [e.rule_index for e in entries] == [0, 1, 2]
        assert entries[1].body == "pass"

    def test_token_map_applied(self) -> None:
        entries = build_actions([Rule(None, "a", "return 'A'")], {"A": 7})
        assert entries[0].body == "return 7"

    def test_without_token_map_literal_kept(self) -> None:
        entries = build_actions([Rule(None, "a", "return 'A'")])
        assert entries[0].body == "return 'A'"

    def test_invalid_python_rejected(self) -> None:
        with pytest.raises(ActionSourceError) as exc_info:
            build_actions([Rule(None, "a", "return ("), Rule(None, "b", "")])
        assert exc_info.value.rule_index == 0

    def test_callable_action(self) -> None:
        def action(yytext):
            return yytext.upper()

        entries = build_actions([Rule(None, "a", action)])
        assert entries[0].callback is action
        assert entries[0].parameters == ("yytext",)


class TestCallbackParameters:
    def test_selected_names(self) -> None:
        def action(yy_, yytext, yylloc):
            return None

        assert callback_parameters(action, 0) == ("yy_", "yytext", "yylloc")

    def test_var_keyword_gets_everything(self) -> None:
        def action(**kwargs):
            return None

        assert callback_parameters(action, 0) == CALLBACK_PARAMETERS

    def test_optional_unknown_parameter_ignored(self) -> None:
        def action(yytext, scale=2):
            return None

        assert callback_parameters(action, 0) == ("yytext",)

    def test_required_unknown_parameter_rejected(self) -> None:
        def action(token):
            return None

        with pytest.raises(MalformedRuleError) as exc_info:
            callback_parameters(action, 3)
        assert exc_info.value.rule_index == 3


class TestCallbackBody:
    def test_def(self) -> None:
        def action(yytext):
            if yytext == "x":
                return "X"
            return None

        body = callback_body(action, 0)
        assert body.splitlines()[0] == "if yytext == 'x':"
        assert body.splitlines()[-1] == "return None"

    def test_lambda(self) -> None:
        action = lambda yytext: yytext.upper()  # noqa: E731
        assert callback_body(action, 0) == "return yytext.upper()"

    def test_builtin_has_no_source(self) -> None:
        with pytest.raises(ActionSourceError):
            callback_body(len, 0)

    def test_entry_source_qualifies_variables(self) -> None:
        def action(yytext):
            return yytext

        entry = ActionEntry(rule_index=0, callback=action, parameters=("yytext",))
        assert entry.source() == "return yy_.yytext"


# =========================================================================
# Dispatch and binding
# =========================================================================


class TestRenderDispatch:
    def test_match_statement(self) -> None:
        entries = build_actions([Rule(None, "a", "return 'A'"), Rule(None, "b", "")])
        assert render_dispatch(entries) == (
            "match rule_index:\n"
            "    case 0:\n"
            "        return 'A'\n"
            "    case 1:\n"
            "        pass"
        )

    def test_empty(self) -> None:
        assert render_dispatch(()) == "return None"


class _FakeScanner:
    yytext = "abc"
    yyleng = 3
    yylineno = 0
    yylloc = None


class TestBindActions:
    def test_string_action(self) -> None:
        entries = build_actions([Rule(None, "a", "return yytext.upper()")])
        (action,) = bind_actions(entries)
        scanner = _FakeScanner()
        assert action(scanner, None, scanner, "INITIAL") == "ABC"

    def test_action_include_shared(self) -> None:
        entries = build_actions([Rule(None, "a", "return helper(yytext)")])
        (action,) = bind_actions(entries, "def helper(text):\n    return text * 2\n")
        scanner = _FakeScanner()
        assert action(scanner, None, scanner, "INITIAL") == "abcabc"

    def test_callable_receives_declared_variables(self) -> None:
        seen = {}

        def action(yytext, yy_start):
            seen.update(yytext=yytext, start=yy_start)
            return "T"

        (bound,) = bind_actions(build_actions([Rule(None, "a", action)]))
        scanner = _FakeScanner()
        assert bound(scanner, None, scanner, "STR") == "T"
        assert seen == {"yytext": "abc", "start": "STR"}
