"""Unit tests for Tokenizer encode/decode, chunking, caching, deadlines and streaming."""

import threading
import time

import pytest

import pairtok as ptok
from pairtok import CancellationToken, Token, Tokenizer, TokenizerConfig
from pairtok.errors import (
    InputTooLargeError,
    InvalidInputError,
    TokenizationCancelled,
    TokenizationError,
    VocabularyError,
)


# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def config():
    return TokenizerConfig(
        max_vocab_size=1000,
        max_token_length=1024,
        enable_caching=True,
        parallel_threshold=100,
        special_tokens="<|endoftext|>",
    )


@pytest.fixture
def tokenizer(config):
    return Tokenizer(config)


def values(tokens: list[Token]) -> list[str]:
    return [t.value for t in tokens]


# Encode-decode round-trip
# ---------------------------------------------------------------------------


def test_encode_decode_roundtrip(tokenizer):
    text = "Hello, world!"
    tokens = tokenizer.encode(text)
    assert tokens
    assert tokenizer.decode(tokens) == text


def test_empty_input(tokenizer):
    """Empty input encodes to an empty list and decodes to an empty string."""
    assert tokenizer.encode("") == []
    assert tokenizer.decode([]) == ""
    assert tokenizer.decode(None) == ""
    assert len(tokenizer.cache) == 0


def test_ids_roundtrip(tokenizer):
    ids = tokenizer.encode_ids("abc")
    assert tokenizer.decode_ids(ids) == "abc"


def test_decode_unknown_id_raises(tokenizer):
    with pytest.raises(VocabularyError):
        tokenizer.decode_ids([9999])


# Special tokens
# ---------------------------------------------------------------------------


def test_special_token_scenario():
    """With an empty vocabulary the configured special token gets id 0."""
    tok = Tokenizer(TokenizerConfig(special_tokens="<|endoftext|>"))
    tokens = tok.encode("<|endoftext|>")
    assert [(t.value, t.id, t.is_special) for t in tokens] == [("<|endoftext|>", 0, True)]
    assert tok.decode(tokens) == "<|endoftext|>"


def test_special_token_list_is_parsed():
    """Comma separated entries are trimmed and blanks skipped."""
    tok = Tokenizer(TokenizerConfig(special_tokens=" <|a|> ,, <|b|>,"))
    assert tok.vocabulary.get_token("<|a|>").is_special
    assert tok.vocabulary.try_get_id("<|a|>") == 0
    assert tok.vocabulary.get_token("<|b|>").is_special
    assert tok.vocabulary.try_get_id("<|b|>") == 1
    assert tok.vocabulary.size() == 2


def test_long_special_token_is_not_chunked():
    """Special tokens at or above the parallel threshold stay whole."""
    special = "<|" + "x" * 20 + "|>"
    tok = Tokenizer(TokenizerConfig(special_tokens=special, parallel_threshold=5))
    assert tok.encode(special) == [Token(special, 0, True)]


def test_special_token_precedence_over_merges(tokenizer):
    tokenizer.learn_merge_rules(["<|<|<|", "endoftext endoftext"], 10)
    tokens = tokenizer.encode("<|endoftext|>")
    assert len(tokens) == 1
    assert tokens[0].is_special


# Length limit
# ---------------------------------------------------------------------------


def test_max_length_boundary(tokenizer, config):
    """Exactly at the limit succeeds, one over fails before any work."""
    text = "a" * config.max_token_length
    assert tokenizer.decode(tokenizer.encode(text)) == text

    with pytest.raises(InputTooLargeError) as exc_info:
        tokenizer.encode("b" * (config.max_token_length + 1))
    assert exc_info.value.limit == config.max_token_length
    assert not tokenizer.vocabulary.contains("b")


# Parallel chunking
# ---------------------------------------------------------------------------


def test_parallel_encode_preserves_order(tokenizer):
    """Chunks are reassembled in text order, not completion order."""
    text = "".join(chr(0x4E00 + i) for i in range(350))
    tokens = tokenizer.encode(text)
    assert tokenizer.decode(tokens) == text
    assert len(tokens) == 350


def test_parallel_matches_sequential(config):
    """Chunk-aligned input gives the same tokens on both paths."""
    corpus = ["abab", "abab"]
    text = "ab" * 150

    parallel = Tokenizer(config)
    parallel.learn_merge_rules(corpus, 5)
    sequential = Tokenizer(config.copy(parallel_threshold=0))
    sequential.learn_merge_rules(corpus, 5)

    assert values(parallel.encode(text)) == values(sequential.encode(text))


def test_chunk_split_sizes():
    from pairtok.tokenizer import split_into_chunks

    assert split_into_chunks("abcdefg", 3) == ["abc", "def", "g"]
    assert split_into_chunks("abc", 3) == ["abc"]


# Caching and metrics
# ---------------------------------------------------------------------------


def test_cache_hit_skips_encoder(tokenizer, monkeypatch):
    """A repeated text is served from the cache."""
    first = tokenizer.encode("cached text")

    def fail(*args, **kwargs):
        raise AssertionError("encoder should not be called")

    monkeypatch.setattr(tokenizer.encoder, "encode", fail)
    assert tokenizer.encode("cached text") == first
    assert tokenizer.metrics.summary().cache_hits == 1


def test_caching_disabled(config):
    tok = Tokenizer(config.copy(enable_caching=False))
    tok.encode("hello")
    tok.encode("hello")
    assert len(tok.cache) == 0
    assert tok.metrics.summary().cache_hits == 0


def test_token_counts_recorded(tokenizer):
    tokenizer.encode("aab")
    assert tokenizer.metrics.token_count("a") == 2
    assert tokenizer.metrics.token_count("b") == 1
    assert tokenizer.metrics.summary().operations["encode"].calls == 1


def test_learning_invalidates_cache(tokenizer):
    before = tokenizer.encode("abab")
    tokenizer.learn_merge_rules(["abab", "abab"], 1)
    after = tokenizer.encode("abab")
    assert values(before) == ["a", "b", "a", "b"]
    assert values(after) == ["ab", "ab"]


def test_learning_is_recorded_in_metrics(tokenizer):
    tokenizer.learn_merge_rules(["abab", "abab"], 1)
    assert tokenizer.metrics.summary().operations["learn_merge_rules"].calls == 1


def test_whitespace_collapsed_when_not_preserved(config):
    tok = Tokenizer(config.copy(preserve_whitespace=False))
    assert tok.decode(tok.encode("  a \t\n b  ")) == "a b"
    assert tok.encode("   ") == []


# Cancellation and failures
# ---------------------------------------------------------------------------


def test_cancelled_encode(tokenizer):
    """Caller cancellation surfaces as TokenizationCancelled, not a failure."""
    token = CancellationToken()
    token.cancel()
    with pytest.raises(TokenizationCancelled) as exc_info:
        tokenizer.encode("hello", token)
    assert not exc_info.value.timed_out


def test_timeout_cancels_encode(config):
    tok = Tokenizer(config.copy(operation_timeout=0))
    with pytest.raises(TokenizationCancelled) as exc_info:
        tok.encode("hello")
    assert exc_info.value.timed_out


def test_cancelled_decode(tokenizer):
    tokens = tokenizer.encode("hello")
    token = CancellationToken()
    token.cancel()
    with pytest.raises(TokenizationCancelled):
        tokenizer.decode(tokens, token)


def test_cancel_during_parallel_encode(tokenizer, monkeypatch):
    """Cancelling while chunks run stops the join promptly."""

    def slow_encode(text, cancel=None):
        while not cancel.cancelled:
            time.sleep(0.01)
        cancel.raise_if_cancelled()

    monkeypatch.setattr(tokenizer.encoder, "encode", slow_encode)
    token = CancellationToken()
    threading.Timer(0.1, token.cancel).start()

    start = time.monotonic()
    with pytest.raises(TokenizationCancelled):
        tokenizer.encode("x" * 300, token)
    assert time.monotonic() - start < 5


def test_internal_failure_is_wrapped(tokenizer, monkeypatch):
    """Unexpected errors become TokenizationError with the cause attached."""

    def broken(*args, **kwargs):
        raise RuntimeError("boom")

    monkeypatch.setattr(tokenizer.encoder, "encode", broken)
    with pytest.raises(TokenizationError) as exc_info:
        tokenizer.encode("hello")
    assert isinstance(exc_info.value.__cause__, RuntimeError)


def test_internal_invalid_input_is_wrapped(tokenizer, monkeypatch):
    """Input errors raised below the tokenizer surface as TokenizationError."""

    def broken(*args, **kwargs):
        raise InvalidInputError("bad element")

    monkeypatch.setattr(tokenizer.encoder, "encode", broken)
    with pytest.raises(TokenizationError) as exc_info:
        tokenizer.encode("hello")
    assert isinstance(exc_info.value.__cause__, InvalidInputError)


def test_empty_segments_from_custom_segmenter(config):
    tok = Tokenizer(config, segmenter=lambda text: text.split(" "))
    assert values(tok.encode("a  b")) == ["a", "b"]
    assert tok.decode_ids(tok.encode_ids("a  b")) == "ab"


# Streaming
# ---------------------------------------------------------------------------


def test_encode_stream_reports_progress(tokenizer):
    inputs = ["Hello", ", ", "world", "!"]
    reports = []

    encoded = list(tokenizer.encode_stream(iter(inputs), progress=reports.append))

    assert tokenizer.decode([t for item in encoded for t in item]) == "Hello, world!"
    assert [r.items_processed for r in reports] == [1, 2, 3, 4]
    assert [r.processed_tokens for r in reports] == [5, 7, 12, 13]


def test_encode_stream_cancellation(tokenizer):
    """Cancelling between items stops the stream before the next item is pulled."""
    token = CancellationToken()
    pulled = []

    def source():
        for text in ["one", "two", "three"]:
            pulled.append(text)
            yield text

    stream = tokenizer.encode_stream(source(), cancel=token)
    assert values(next(stream)) == ["o", "n", "e"]
    token.cancel()
    with pytest.raises(TokenizationCancelled):
        next(stream)
    assert pulled == ["one"]


def test_encode_stream_wraps_source_errors(tokenizer):
    def source():
        yield "ok"
        raise ValueError("broken source")

    with pytest.raises(TokenizationError) as exc_info:
        list(tokenizer.encode_stream(source()))
    assert isinstance(exc_info.value.__cause__, ValueError)


def test_encode_stream_none_raises(tokenizer):
    with pytest.raises(InvalidInputError):
        tokenizer.encode_stream(None)


# Save and load
# ---------------------------------------------------------------------------


def test_save_load_restores_special_tokens(tokenizer, config, tmp_path):
    tokenizer.encode("hello world")
    path = tmp_path / "vocab.json"
    tokenizer.save(path)

    loaded = ptok.from_pretrained(path, config)
    assert loaded.vocabulary.get_vocabulary() == tokenizer.vocabulary.get_vocabulary()
    assert loaded.encode("<|endoftext|>")[0].is_special
    assert loaded.encode_ids("hello") == tokenizer.encode_ids("hello")
