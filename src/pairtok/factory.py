"""Factory functions for creating tokenizers."""

from pathlib import Path

from .config import TokenizerConfig
from .tokenizer import Tokenizer


def get_tokenizer(config: TokenizerConfig | None = None, **overrides) -> Tokenizer:
    """
    Create a tokenizer with an empty vocabulary.

    :param config: Base settings; defaults are used when omitted.
    :param overrides: Individual config fields to replace.

    .. code-block:: python

        tok = get_tokenizer(max_token_length=4096, special_tokens="<|endoftext|>,<|pad|>")
    """
    config = config or TokenizerConfig()
    if overrides:
        config = config.copy(**overrides)
    return Tokenizer(config)


def from_pretrained(path: str | Path, config: TokenizerConfig | None = None) -> Tokenizer:
    """
    Create a tokenizer from a saved vocabulary file.

    Special tokens are not stored in the file; they are registered again from ``config``.

    :param path: Path to a JSON vocabulary written by ``Tokenizer.save``.
    :param config: Settings for the new tokenizer.
    :raises VocabularyNotFoundError: If ``path`` does not exist.
    :raises VocabularyCorruptError: If the file cannot be parsed.
    """
    tokenizer = Tokenizer(config)
    tokenizer.load(path)
    return tokenizer


__all__ = ["get_tokenizer", "from_pretrained"]
