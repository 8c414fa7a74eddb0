"""Emit a grammar in each output convention and load the results."""

import asyncio

from relex import LexerGenerator, load_module_text

generator = LexerGenerator(
    {
        "rules": [["\\s+", ""], ["[a-z]+", "return 'WORD'"]],
        "options": {"moduleName": "word_lexer"},
        "moduleInclude": "VERSION = 1",
    }
)

bare = generator.generate_module()
lexer = load_module_text(bare, "hello world")
print("bare:", [t.value for t in lexer.tokenize()])

namespace: dict = {"__name__": "word_lexer"}
exec(generator.generate_sync_import_module(), namespace)
namespace["word_lexer"].set_input("sync import")
print("sync-import:", namespace["lex"](), namespace["word_lexer"].yytext)

namespace = {"__name__": "word_lexer_async"}
exec(generator.generate_async_define_module(), namespace)
async_lexer = asyncio.run(namespace["define"]())
print("async-define:", [t.value for t in async_lexer.tokenize("async define")])
