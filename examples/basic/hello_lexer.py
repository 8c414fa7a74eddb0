"""Compile a grammar and scan input in-process."""

from relex import compile_and_load

lexer = compile_and_load(
    {
        "macros": {"DIGIT": "[0-9]"},
        "rules": [
            ["\\s+", ""],
            ["{DIGIT}+(\\.{DIGIT}+)?", "return 'NUMBER'"],
            ["[-+*/()]", "return yytext"],
        ],
    },
    "3.5 * (2 + 4)",
)

for token in lexer.tokenize():
    print(f"{token.type!s:8} {token.value!r:8} line {token.location.first_line}")
