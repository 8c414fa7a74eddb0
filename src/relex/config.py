"""ContextVar-based compile configuration for relex.

Per-grammar settings (case sensitivity, module type, ...) travel with the
grammar as LexerOptions. CompileConfig holds the ambient settings that
apply to every compilation in the current context: how strictly macro
references are checked and which output skeleton the emitter uses.

Thread Safety:
    ContextVars are thread-local. Each thread has independent storage,
    so no locks are needed.

Usage:
    from relex.config import CompileConfig, compile_config_context

    with compile_config_context(CompileConfig(strict_macros=True)):
        spec = compile_grammar(grammar)  # undefined {MACRO} now raises

"""

from collections.abc import Iterator
from contextlib import contextmanager
from contextvars import ContextVar
from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class CompileConfig:
    """Immutable compile configuration.

    Attributes:
        strict_macros: Raise UnresolvedMacroError for placeholders naming an
            undefined macro instead of leaving them verbatim with a warning
        template: Name of the output skeleton under relex/templates/

    """

    strict_macros: bool = False
    template: str = "python"

    @classmethod
    def from_dict(cls, config_dict: dict) -> "CompileConfig":
        """Create CompileConfig from dictionary.

        Only includes keys that are valid CompileConfig fields; unknown keys
        are silently ignored.

        Args:
            config_dict: Dictionary with config values. Keys should match
                CompileConfig attribute names.

        Returns:
            New CompileConfig instance with values from dict.

        Example:
            >>> config = CompileConfig.from_dict({"strict_macros": True, "other": 1})
            >>> config.strict_macros
            True

        """
        valid_fields = {f.name for f in cls.__dataclass_fields__.values()}
        filtered = {k: v for k, v in config_dict.items() if k in valid_fields}
        return cls(**filtered)


# Module-level default config (reused, never recreated)
_DEFAULT_CONFIG: CompileConfig = CompileConfig()

_compile_config: ContextVar[CompileConfig] = ContextVar(
    "compile_config",
    default=_DEFAULT_CONFIG,
)


def get_compile_config() -> CompileConfig:
    """Get current compile configuration (thread-local)."""
    return _compile_config.get()


def set_compile_config(config: CompileConfig) -> None:
    """Set compile configuration for current context.

    Args:
        config: CompileConfig instance to use for this context.

    """
    _compile_config.set(config)


def reset_compile_config() -> None:
    """Reset to the module-level default configuration."""
    _compile_config.set(_DEFAULT_CONFIG)


@contextmanager
def compile_config_context(config: CompileConfig) -> Iterator[None]:
    """Context manager for temporary config changes.

    Restores the previous config even if an exception is raised.

    Example:
        >>> with compile_config_context(CompileConfig(strict_macros=True)):
        ...     get_compile_config().strict_macros
        True

    """
    previous = _compile_config.get()
    _compile_config.set(config)
    try:
        yield
    finally:
        _compile_config.set(previous)


__all__ = [
    "CompileConfig",
    "get_compile_config",
    "set_compile_config",
    "reset_compile_config",
    "compile_config_context",
]
