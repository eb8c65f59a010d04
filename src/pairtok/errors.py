"""Custom exception hierarchy for pairtok tokenization errors."""

from pathlib import Path

import regex as re


class PairTokError(Exception):
    """Base exception for all pairtok errors."""


class InvalidInputError(PairTokError):
    """Raised when an argument is malformed, before any state is mutated."""


class InvalidArgumentError(InvalidInputError):
    """Raised when an argument is well formed but outside the accepted range."""


class InputTooLargeError(InvalidInputError):
    """Raised when an encode request exceeds the configured maximum length."""

    def __init__(self, message: str, *, length: int, limit: int) -> None:
        super().__init__(f"{message} (length: {length}) (limit: {limit})")
        self.length = length
        self.limit = limit


class TokenizationError(PairTokError):
    """Raised when tokenization fails for an unexpected reason."""

    def __init__(self, message: str, *, input_text: str | None = None) -> None:
        super().__init__(message)
        self.input_text = input_text


class TokenizationCancelled(PairTokError):
    """Raised when the caller cancelled or the operation deadline elapsed."""

    def __init__(self, message: str = "operation cancelled", *, timed_out: bool = False) -> None:
        if timed_out:
            message += " (deadline exceeded)"
        super().__init__(message)
        self.timed_out = timed_out


class VocabularyError(PairTokError):
    """Raised when vocabulary operations fail."""

    def __init__(
        self,
        message: str,
        *,
        path: str | Path | None = None,
        invalid_id: int | None = None,
    ) -> None:
        extra = " "
        if path is not None:
            extra += f"(path: {path}) "
        if invalid_id is not None:
            extra += f"(invalid id: {invalid_id}) "
        super().__init__((message + extra).rstrip())
        self.path = str(path) if path is not None else None
        self.invalid_id = invalid_id


class VocabularyNotFoundError(VocabularyError):
    """Raised when a vocabulary file does not exist."""


class VocabularyCorruptError(VocabularyError):
    """Raised when a vocabulary file cannot be parsed into token -> id pairs."""


class PatternError(PairTokError):
    """Raised when compiling and/or validating segmentation patterns."""

    def __init__(
        self,
        message: str,
        *,
        pattern: str | None = None,
        regex_err: re.error | None = None,
    ) -> None:
        """
        Initialize PatternError with pattern details.

        Args:
            message: Error message.
            pattern: The regex pattern that failed.
            regex_err: The underlying regex error from the regex library.
        """
        extra = " "
        if pattern:
            extra += f"(pattern: {pattern!r}) "
        if regex_err:
            extra += f"(reason: {regex_err}) "
        super().__init__((message + extra).rstrip())
        self.pattern = pattern
        self.regex_err = regex_err


class ConfigError(PairTokError):
    """Raised when tokenizer settings are invalid."""

    def __init__(self, message: str, *, field: str | None = None, value: object = None) -> None:
        if field is not None:
            message = f"{message} (field: {field}) (got {value!r})"
        super().__init__(message)
        self.field = field
        self.value = value
