"""Return numeric token ids for a parser with a token map."""

from relex import generate, load_module_text

TOKENS = {"NUMBER": 10, "PLUS": 11}

source = generate(
    {"rules": [["\\s+", ""], ["[0-9]+", "return 'NUMBER'"], ["\\+", "return 'PLUS'"]]},
    TOKENS,
)
lexer = load_module_text(source, "1 + 2")
print([t.type for t in lexer.tokenize()])
