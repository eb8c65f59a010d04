"""pairtok: byte-pair encoding over text elements."""

from importlib.metadata import PackageNotFoundError, version

from ._progress import TokenizationProgress, disable_progress, enable_progress
from .builder import VocabularyBuilder
from .cache import TokenCache
from .cancellation import CancellationToken
from .config import TokenizerConfig
from .encoder import BytePairEncoder
from .errors import (
    ConfigError,
    InputTooLargeError,
    InvalidArgumentError,
    InvalidInputError,
    PairTokError,
    PatternError,
    TokenizationCancelled,
    TokenizationError,
    VocabularyCorruptError,
    VocabularyError,
    VocabularyNotFoundError,
)
from .factory import from_pretrained, get_tokenizer
from .metrics import MetricsSink, NullMetrics, TokenizerMetrics
from .pattern import Segmenter, get_segmenter, list_segmenters
from .tokenizer import Tokenizer
from .types import MergeRule, Token, TokenPair
from .vocab import VocabularyStore


try:
    __version__ = version("pairtok")
except PackageNotFoundError:
    __version__ = "dev"

__all__ = [
    "Tokenizer",
    "TokenizerConfig",
    "VocabularyStore",
    "BytePairEncoder",
    "TokenCache",
    "VocabularyBuilder",
    "CancellationToken",
    "TokenizationProgress",
    "Token",
    "TokenPair",
    "MergeRule",
    "MetricsSink",
    "TokenizerMetrics",
    "NullMetrics",
    "Segmenter",
    "PairTokError",
    "InvalidInputError",
    "InvalidArgumentError",
    "InputTooLargeError",
    "TokenizationError",
    "TokenizationCancelled",
    "VocabularyError",
    "VocabularyNotFoundError",
    "VocabularyCorruptError",
    "PatternError",
    "ConfigError",
    "get_tokenizer",
    "from_pretrained",
    "get_segmenter",
    "list_segmenters",
    "enable_progress",
    "disable_progress",
]
