"""Compiled spec serialization — JSON round-trip for CompiledLexerSpec.

Converts a compiled lexer spec to/from a JSON-compatible dict. Useful for:
- Caching compiled grammars between builds
- Handing the compiled tables to tools that drive their own matcher
- Debugging and inspection

All output is deterministic (sorted keys) for cache-key stability.
Callable actions have no data form and raise SerializationError.

Example:
    from relex import compile_grammar
    from relex.serialization import to_json, from_json

    spec = compile_grammar({"rules": [["[0-9]+", "return 'NUMBER'"]]})
    restored = from_json(to_json(spec))
    assert restored.rules[0].source == spec.rules[0].source

Thread Safety:
    All functions are pure and safe to call from any thread.

"""

import json
import re
from typing import Any

from relex.actions import ActionEntry
from relex.assembler import CompiledLexerSpec, assemble_spec
from relex.conditions import StartCondition
from relex.errors import SerializationError
from relex.options import LexerOptions
from relex.rules import CompiledRule

# Bumped whenever the dict layout changes
FORMAT_VERSION = 1


def to_dict(spec: CompiledLexerSpec) -> dict[str, Any]:
    """Convert a compiled spec to a JSON-compatible dict.

    Raises:
        SerializationError: If an action is a callable.
    """
    actions = []
    for entry in spec.actions:
        if entry.callback is not None:
            raise SerializationError(f"Rule {entry.rule_index} has a callable action")
        actions.append(entry.body)

    return {
        "_format": FORMAT_VERSION,
        "rules": [
            {"pattern": rule.matcher.pattern, "source": rule.source, "flags": int(rule.matcher.flags & ~re.UNICODE)}
            for rule in spec.rules
        ],
        "actions": actions,
        "conditions": spec.conditions_table(),
        "options": spec.options.to_runtime_dict(),
        "actionInclude": spec.action_include,
        "moduleInclude": spec.module_include,
    }


def from_dict(data: dict[str, Any]) -> CompiledLexerSpec:
    """Reconstruct a compiled spec from a dict produced by to_dict().

    Raises:
        SerializationError: If the dict is malformed or from another format version.
    """
    if data.get("_format") != FORMAT_VERSION:
        raise SerializationError(f"Unsupported format version: {data.get('_format')!r}")
    try:
        rules = tuple(
            CompiledRule(index=i, source=item["source"], matcher=re.compile(item["pattern"], item["flags"]))
            for i, item in enumerate(data["rules"])
        )
        actions = tuple(ActionEntry(rule_index=i, body=body) for i, body in enumerate(data["actions"]))
        conditions = {
            name: StartCondition(name=name, inclusive=bool(item["inclusive"]), rule_indices=tuple(item["rules"]))
            for name, item in data["conditions"].items()
        }
    except (KeyError, TypeError, re.error) as e:
        raise SerializationError(f"Malformed compiled spec: {e}") from e

    return assemble_spec(
        rules=rules,
        conditions=conditions,
        actions=actions,
        options=LexerOptions.from_dict(data.get("options")),
        action_include=data.get("actionInclude", ""),
        module_include=data.get("moduleInclude", ""),
    )


def to_json(spec: CompiledLexerSpec, *, indent: int | None = None) -> str:
    """Serialize a compiled spec to a JSON string (sorted keys)."""
    return json.dumps(to_dict(spec), sort_keys=True, indent=indent)


def from_json(text: str) -> CompiledLexerSpec:
    """Deserialize a JSON string produced by to_json()."""
    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        raise SerializationError(f"Invalid JSON: {e.msg}") from e
    return from_dict(data)


__all__ = ["FORMAT_VERSION", "from_dict", "from_json", "to_dict", "to_json"]
