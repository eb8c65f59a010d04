"""
Request-level tokenizer: caching, chunked parallel encoding, deadlines and streaming.
"""

import logging
import os
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from typing import Iterable, Iterator, Sequence

import regex as re

from ._progress import ProgressCallback, TokenizationProgress, _is_enabled
from .cache import TokenCache
from .cancellation import CancellationToken, check, wait_all
from .config import TokenizerConfig
from .encoder import BytePairEncoder
from .errors import (
    InputTooLargeError,
    InvalidInputError,
    PairTokError,
    TokenizationCancelled,
    TokenizationError,
    VocabularyError,
)
from .metrics import MetricsSink, TokenizerMetrics
from .pattern import SegmentFn
from .types import MergeRule, Token, TokenId
from .vocab import VocabularyStore

log = logging.getLogger(__name__)

_WHITESPACE = re.compile(r"\s+")
_END = object()


def split_into_chunks(text: str, size: int) -> list[str]:
    """Split text into contiguous chunks of ``size`` characters; the last may be shorter."""
    return [text[idx : idx + size] for idx in range(0, len(text), size)]


class Tokenizer:
    """
    Entry point for encoding and decoding.

    Owns the token cache and a metrics sink, and shares its vocabulary with
    the byte-pair encoder. Configured special tokens are registered before
    any encoding happens.
    """

    def __init__(
        self,
        config: TokenizerConfig | None = None,
        vocabulary: VocabularyStore | None = None,
        metrics: MetricsSink | None = None,
        segmenter: str | SegmentFn | None = None,
    ) -> None:
        self.config = config or TokenizerConfig()
        self.metrics = metrics if metrics is not None else TokenizerMetrics()
        self.vocabulary = vocabulary if vocabulary is not None else VocabularyStore()
        self.encoder = BytePairEncoder(
            self.vocabulary, self.config, segmenter, metrics=self.metrics
        )
        self.cache = TokenCache(self.metrics, capacity=self.config.cache_capacity)
        self._register_special_tokens()

    def _register_special_tokens(self) -> None:
        for seq in self.config.special_token_list():
            self.vocabulary.add_special_token(seq)
        log.debug(f"registered {len(self.config.special_token_list())} special tokens")

    def encode(self, text: str, cancel: CancellationToken | None = None) -> list[Token]:
        """
        Encode text into tokens.

        Texts at or above ``parallel_threshold`` characters are split into
        fixed-size chunks that are encoded concurrently and reassembled in
        their original order.

        :param text: Text to encode.
        :param cancel: Optional caller cancellation, linked with the configured timeout.
        :returns: Encoded token sequence.
        :raises InputTooLargeError: If ``text`` exceeds ``max_token_length``.
        :raises TokenizationCancelled: If cancelled or the deadline passes.
        :raises TokenizationError: On any other failure, with the cause attached.
        """
        if not text:
            return []

        limit = self.config.max_token_length
        if len(text) > limit:
            raise InputTooLargeError(
                "input text exceeds maximum length", length=len(text), limit=limit
            )

        with self.metrics.measure("encode"):
            token = CancellationToken.linked(cancel, self.config.operation_timeout)
            try:
                return self._encode(text, token)
            except (InputTooLargeError, TokenizationCancelled, TokenizationError):
                raise
            except Exception as e:
                log.exception("failed to encode text")
                raise TokenizationError("failed to encode text", input_text=text) from e

    def _encode(self, text: str, token: CancellationToken) -> list[Token]:
        if not self.config.preserve_whitespace:
            text = _WHITESPACE.sub(" ", text).strip()
            if not text:
                return []

        caching = self.config.enable_caching
        if caching:
            cached = self.cache.try_get(text)
            if cached is not None:
                self._count_tokens(cached)
                return cached

        token.raise_if_cancelled()

        # a special token is never split, however long it is
        special = self.vocabulary.get_token(text)
        threshold = self.config.parallel_threshold
        if special is not None and special.is_special:
            tokens = [special]
        elif threshold > 0 and len(text) >= threshold:
            tokens = self._encode_chunks(split_into_chunks(text, threshold), token)
        else:
            tokens = self.encoder.encode(text, token)

        self._count_tokens(tokens)
        if caching:
            self.cache.put(text, tokens)
        return tokens

    def _encode_chunks(self, chunks: list[str], token: CancellationToken) -> list[Token]:
        """Encode chunks on a worker pool and concatenate them in input order."""
        if self.config.num_workers is None:
            workers = os.cpu_count() or 1
        else:
            workers = max(1, self.config.num_workers)  # "0" interpreted as 1 worker
        workers = min(workers, len(chunks))

        log.debug(f"encoding {len(chunks)} chunks on {workers} workers")
        with self.metrics.measure("parallel_encode"):
            pool = ThreadPoolExecutor(max_workers=workers, thread_name_prefix="pairtok")
            try:
                futures = [pool.submit(self.encoder.encode, chunk, token) for chunk in chunks]
                results = wait_all(futures, token)
            finally:
                # do not block on workers that are still winding down after a cancel
                pool.shutdown(wait=False, cancel_futures=True)

        return [tok for chunk_toks in results for tok in chunk_toks]

    def _count_tokens(self, tokens: Iterable[Token]) -> None:
        for tok in tokens:
            self.metrics.increment_token_count(tok.value)

    def encode_ids(self, text: str, cancel: CancellationToken | None = None) -> list[TokenId]:
        """Encode text and return only the token ids."""
        return [tok.id for tok in self.encode(text, cancel)]

    def decode(
        self, tokens: Sequence[Token] | None, cancel: CancellationToken | None = None
    ) -> str:
        """
        Decode tokens by concatenating their values.

        Cancellation is checked between tokens.

        :raises TokenizationCancelled: If cancelled or the deadline passes.
        :raises TokenizationError: On any other failure, with the cause attached.
        """
        if not tokens:
            return ""

        with self.metrics.measure("decode"):
            token = CancellationToken.linked(cancel, self.config.operation_timeout)
            try:
                parts: list[str] = []
                for tok in tokens:
                    token.raise_if_cancelled()
                    parts.append(tok.value)
                return "".join(parts)
            except TokenizationCancelled:
                raise
            except Exception as e:
                log.exception("failed to decode tokens")
                raise TokenizationError("failed to decode tokens") from e

    def decode_ids(
        self, ids: Sequence[TokenId] | None, cancel: CancellationToken | None = None
    ) -> str:
        """
        Decode token ids through the vocabulary.

        :raises VocabularyError: If any id is not in the vocabulary.
        """
        tokens: list[Token] = []
        for token_id in ids or ():
            tok = self.vocabulary.try_get_token(token_id)
            if tok is None:
                raise VocabularyError("token not found in vocabulary", invalid_id=token_id)
            tokens.append(tok)
        return self.decode(tokens, cancel)

    def encode_stream(
        self,
        texts: Iterable[str],
        progress: ProgressCallback | None = None,
        cancel: CancellationToken | None = None,
    ) -> Iterator[list[Token]]:
        """
        Lazily encode a stream of texts, one item at a time.

        Yields each item's tokens in stream order and reports cumulative
        progress after every item, to ``progress`` if given, otherwise to the
        log when progress reporting is enabled.

        :raises InvalidInputError: If ``texts`` is None.
        """
        if texts is None:
            raise InvalidInputError("text stream must not be None")
        return self._encode_stream(texts, progress, cancel)

    def _encode_stream(
        self,
        texts: Iterable[str],
        progress: ProgressCallback | None,
        cancel: CancellationToken | None,
    ) -> Iterator[list[Token]]:
        processed = 0
        items = 0
        with self.metrics.measure("encode_stream"):
            try:
                it = iter(texts)
                while True:
                    # before each pull
                    check(cancel)
                    text = next(it, _END)
                    if text is _END:
                        return
                    tokens = self.encode(text, cancel)
                    processed += len(tokens)
                    items += 1
                    report = TokenizationProgress(
                        processed_tokens=processed,
                        items_processed=items,
                    )
                    if progress is not None:
                        progress(report)
                    elif _is_enabled():
                        log.debug(f"stream progress: {items} items, {processed} tokens")
                    yield tokens
            except PairTokError:
                raise
            except Exception as e:
                log.exception("failed to encode stream")
                raise TokenizationError("failed to encode stream") from e

    def learn_merge_rules(
        self,
        corpus: Iterable[str],
        num_merges: int,
        cancel: CancellationToken | None = None,
        verbose: bool = False,
    ) -> list[MergeRule]:
        """Learn merge rules into the shared vocabulary and drop stale cache entries."""
        rules = self.encoder.learn_merge_rules(corpus, num_merges, cancel, verbose=verbose)
        self.cache.clear()
        return rules

    def save(self, path: str | Path) -> None:
        self.vocabulary.save(path)

    def load(self, path: str | Path) -> None:
        """
        Replace the vocabulary from ``path`` and restore configured special tokens.

        :raises VocabularyNotFoundError: If ``path`` does not exist.
        :raises VocabularyCorruptError: If the file cannot be parsed.
        """
        self.vocabulary.load(path)
        self._register_special_tokens()
        self.cache.clear()

    def clear_cache(self) -> None:
        self.cache.clear()

    def log_metrics(self) -> None:
        self.metrics.log_metrics()


__all__ = ["Tokenizer", "split_into_chunks"]
