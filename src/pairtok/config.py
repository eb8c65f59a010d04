"""Tokenizer settings."""

import os
from dataclasses import dataclass, fields, replace
from typing import Final

from .errors import ConfigError

ENV_PREFIX: Final[str] = "PAIRTOK_"
_TRUE: Final[frozenset[str]] = frozenset({"1", "true", "yes", "on"})
_FALSE: Final[frozenset[str]] = frozenset({"0", "false", "no", "off"})


@dataclass
class TokenizerConfig:
    """
    Numeric limits and flags read by the tokenizer.

    The object is a plain settings holder; nothing in the library writes to it.
    """

    max_vocab_size: int = 100_000
    # maximum number of characters per encode request
    max_token_length: int = 1024
    enable_caching: bool = True
    cache_capacity: int = 10_000
    # chunk size for parallel encoding, <= 0 disables chunking
    parallel_threshold: int = 1000
    # seconds, None disables the deadline
    operation_timeout: float | None = 300.0
    special_tokens: str = "<|endoftext|>"
    preserve_whitespace: bool = True
    num_workers: int | None = None
    segmenter: str = "grapheme"

    def __post_init__(self) -> None:
        for name in ("max_vocab_size", "max_token_length", "cache_capacity"):
            value = getattr(self, name)
            if value <= 0:
                raise ConfigError("value must be positive", field=name, value=value)
        if self.operation_timeout is not None and self.operation_timeout < 0:
            raise ConfigError(
                "timeout must not be negative",
                field="operation_timeout",
                value=self.operation_timeout,
            )

    def special_token_list(self) -> list[str]:
        """Return configured special tokens, trimmed, without blanks or repeats."""
        seen: dict[str, None] = {}
        for tok in (self.special_tokens or "").split(","):
            tok = tok.strip()
            if tok:
                seen.setdefault(tok)
        return list(seen)

    def copy(self, **overrides) -> "TokenizerConfig":
        """Return a clone, optionally with some fields replaced."""
        return replace(self, **overrides)

    @classmethod
    def from_env(cls, prefix: str = ENV_PREFIX) -> "TokenizerConfig":
        """
        Build a config from environment variables.

        Each field maps to ``{prefix}{FIELD_NAME}``, e.g. ``PAIRTOK_MAX_TOKEN_LENGTH``.
        Unset variables keep their defaults.

        :raises ConfigError: If a variable cannot be converted to the field type.
        """
        overrides: dict[str, object] = {}
        for f in fields(cls):
            raw = os.environ.get(f"{prefix}{f.name.upper()}")
            if raw is None:
                continue
            overrides[f.name] = _convert(f.name, raw.strip(), f.default)
        return cls(**overrides)


def _convert(name: str, raw: str, default: object) -> object:
    """Convert an environment string using the type of the field default."""
    if isinstance(default, bool):
        if raw.lower() in _TRUE:
            return True
        if raw.lower() in _FALSE:
            return False
        raise ConfigError("expected a boolean", field=name, value=raw)

    # optional numeric fields accept "none" to disable
    if default is None or name == "operation_timeout":
        if raw.lower() in ("", "none"):
            return None

    try:
        if isinstance(default, int) or name == "num_workers":
            return int(raw)
        if isinstance(default, float):
            return float(raw)
    except ValueError:
        raise ConfigError("expected a number", field=name, value=raw)

    return raw


__all__ = ["TokenizerConfig", "ENV_PREFIX"]
