"""Scan quoted strings with an exclusive start condition."""

from relex import compile_and_load

lexer = compile_and_load(
    {
        "startConditions": {"STR": True},
        "rules": [
            ['"', "self.begin('STR')"],
            [["STR"], '[^"\\\\]+|\\\\.', "return 'CHARS'"],
            [["STR"], '"', "self.pop_state()"],
            ["\\s+", ""],
            ["[A-Za-z_]\\w*", "return 'NAME'"],
        ],
    },
    'greeting "hello \\"world\\""',
)

print([(t.type, t.value) for t in lexer.tokenize()])
