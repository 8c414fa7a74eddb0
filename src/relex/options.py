"""Per-grammar lexer options.

LexerOptions is built from the ``options`` block of a grammar. Recognized
keys keep the names used in grammar files (``case-insensitive``,
``moduleType``, ...); anything else is carried through untouched so it
still reaches the runtime scanner and the emitted module.

Thread Safety:
LexerOptions is frozen. ModuleType is an enum (inherently immutable).

"""

from __future__ import annotations

import builtins
import keyword
from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from relex import runtime
from relex.errors import OptionsError

# Class defined by every skeleton template
LEXER_CLASS = "GeneratedLexer"

# Names an emitted module already binds; the scanner binding must not shadow them
RESERVED_MODULE_NAMES = frozenset(
    {name for name in vars(runtime) if not name.startswith("__")}
    | set(dir(builtins))
    | {LEXER_CLASS, "lex", "define", "__all__"}
)


class ModuleType(Enum):
    """Output conventions for emitted lexer modules.

    - BARE: the unit itself, evaluated locally into a live scanner
    - SYNC_IMPORT: an importable module exporting ``lexer`` and ``lex()``
    - ASYNC_DEFINE: a module whose ``define()`` coroutine resolves to the scanner

    """

    BARE = "bare"
    SYNC_IMPORT = "sync-import"
    ASYNC_DEFINE = "async-define"

    @classmethod
    def parse(cls, value: ModuleType | str | None) -> ModuleType:
        """Resolve a moduleType option value.

        Accepts the enum itself, its value, or one of the aliases
        ``js``, ``commonjs`` and ``amd``. None means BARE.
        """
        if value is None:
            return cls.BARE
        if isinstance(value, cls):
            return value
        resolved = _MODULE_TYPE_ALIASES.get(str(value).lower())
        if resolved is None:
            raise OptionsError("moduleType", value, "expected one of " + ", ".join(sorted(_MODULE_TYPE_ALIASES)))
        return resolved


_MODULE_TYPE_ALIASES: dict[str, ModuleType] = {
    "bare": ModuleType.BARE,
    "js": ModuleType.BARE,
    "sync-import": ModuleType.SYNC_IMPORT,
    "commonjs": ModuleType.SYNC_IMPORT,
    "async-define": ModuleType.ASYNC_DEFINE,
    "amd": ModuleType.ASYNC_DEFINE,
}

# Grammar option key -> LexerOptions field
_OPTION_FIELDS: dict[str, str] = {
    "case-insensitive": "case_insensitive",
    "flex": "flex",
    "backtrack_lexer": "backtrack_lexer",
    "ranges": "ranges",
    "moduleType": "module_type",
    "moduleName": "module_name",
}


@dataclass(frozen=True, slots=True)
class LexerOptions:
    """Immutable lexer options.

    Attributes:
        case_insensitive: Compile every rule pattern with re.IGNORECASE
        flex: Append a catch-all rule echoing unmatched text, and let the
            runtime pick the longest match
        backtrack_lexer: Allow actions to reject() a match
        ranges: Track absolute offsets in yylloc.range
        module_type: Output convention used by generate()
        module_name: Identifier the sync-import convention binds the scanner to
        extra: Unrecognized options, passed through to the runtime

    """

    case_insensitive: bool = False
    flex: bool = False
    backtrack_lexer: bool = False
    ranges: bool = False
    module_type: ModuleType = ModuleType.BARE
    module_name: str = "lexer"
    extra: Mapping[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, options: Mapping[str, Any] | None) -> LexerOptions:
        """Create LexerOptions from a grammar's options block.

        Args:
            options: Mapping of option names (grammar spelling) to values.

        Returns:
            New LexerOptions; unknown keys are kept in ``extra``.

        Example:
            >>> opts = LexerOptions.from_dict({"case-insensitive": True, "moduleType": "amd"})
            >>> opts.case_insensitive, opts.module_type
            (True, <ModuleType.ASYNC_DEFINE: 'async-define'>)

        """
        values: dict[str, Any] = {}
        extra: dict[str, Any] = {}
        for key, value in (options or {}).items():
            name = _OPTION_FIELDS.get(key)
            if name is None:
                extra[key] = value
            elif name == "module_type":
                values[name] = ModuleType.parse(value)
            elif name == "module_name":
                module_name = str(value) if value else "lexer"
                if not module_name.isidentifier() or keyword.iskeyword(module_name):
                    raise OptionsError(key, value, "must be a valid Python identifier")
                if module_name in RESERVED_MODULE_NAMES:
                    raise OptionsError(key, value, "is already bound in the emitted module")
                values[name] = module_name
            else:
                values[name] = bool(value)
        return cls(extra=extra, **values)

    def to_runtime_dict(self) -> dict[str, Any]:
        """Options as seen by the runtime scanner and the emitted module.

        Only options that are switched on are included, using the grammar
        spelling of their names.
        """
        result: dict[str, Any] = dict(self.extra)
        if self.case_insensitive:
            result["case-insensitive"] = True
        if self.flex:
            result["flex"] = True
        if self.backtrack_lexer:
            result["backtrack_lexer"] = True
        if self.ranges:
            result["ranges"] = True
        if self.module_type is not ModuleType.BARE:
            result["moduleType"] = self.module_type.value
        if self.module_name != "lexer":
            result["moduleName"] = self.module_name
        return result


__all__ = ["LEXER_CLASS", "RESERVED_MODULE_NAMES", "LexerOptions", "ModuleType"]
