"""Benchmark pairtok encoding on a slice of the Sci-Fi Gutenberg dataset.

Compares sequential and chunked-parallel encoding, measures the cache hit path
and decoding throughput, and prints one markdown table row per mode.
"""

import argparse
import time

from datasets import load_dataset

from pairtok import Tokenizer, TokenizerConfig

HF_DATASET = "stevez80/Sci-Fi-Books-gutenberg"


def load_corpus(num_docs: int) -> list[str]:
    """Load up to `num_docs` documents via dataset indexing."""
    print(f"Loading {HF_DATASET} (non-streaming) …")
    ds = load_dataset(HF_DATASET, split="train")
    return ds[:num_docs]["text"]


def make_tokenizer(threshold: int, max_len: int, caching: bool) -> Tokenizer:
    config = TokenizerConfig(
        max_token_length=max_len,
        parallel_threshold=threshold,
        enable_caching=caching,
        operation_timeout=None,
    )
    return Tokenizer(config)


def run(tok: Tokenizer, docs: list[str], train_docs: list[str], merges: int) -> tuple[float, float, float, int]:
    """Return (train secs, encode secs, decode secs, total tokens)."""
    t0 = time.perf_counter()
    tok.learn_merge_rules(train_docs, merges)
    train_secs = time.perf_counter() - t0

    t0 = time.perf_counter()
    encoded = [tok.encode(doc) for doc in docs]
    encode_secs = time.perf_counter() - t0

    t0 = time.perf_counter()
    for tokens in encoded:
        tok.decode(tokens)
    decode_secs = time.perf_counter() - t0

    return train_secs, encode_secs, decode_secs, sum(len(t) for t in encoded)


def main() -> None:
    """Run the benchmark and print a markdown table."""
    parser = argparse.ArgumentParser(description="Benchmark pairtok encode() and decode().")
    parser.add_argument("--num-docs", type=int, default=50)
    parser.add_argument("--doc-chars", type=int, default=20_000, help="Characters kept per document.")
    parser.add_argument("--merges", type=int, default=200)
    parser.add_argument("--threshold", type=int, default=2_000, help="Chunk size for parallel mode.")
    args = parser.parse_args()

    docs = [doc[: args.doc_chars] for doc in load_corpus(args.num_docs) if doc]
    if not docs:
        raise RuntimeError("No documents loaded from dataset.")
    # learning is quadratic in corpus size, keep it to a small sample
    train_docs = [doc[:2_000] for doc in docs[:10]]
    total_chars = sum(len(d) for d in docs)

    modes = {
        "sequential": make_tokenizer(0, args.doc_chars, caching=False),
        "parallel": make_tokenizer(args.threshold, args.doc_chars, caching=False),
    }

    print()
    print(f"| {'Mode':12} | {'Training':10} | {'Encoding':18} | {'Decoding':20} | {'Chars/Token':11} |")
    print(f"| {'-' * 12} | {'-' * 10} | {'-' * 18} | {'-' * 20} | {'-' * 11} |")
    for name, tok in modes.items():
        train_secs, enc, dec, n_tokens = run(tok, docs, train_docs, args.merges)
        print(
            f"| {name:12} | {f'{train_secs:.2f} s':10} | {f'{total_chars / enc:,.0f} chars/s':18} "
            f"| {f'{n_tokens / dec:,.0f} tokens/s':20} | {total_chars / n_tokens:11.2f} |"
        )

    # --- Cache hit path ---
    tok = make_tokenizer(args.threshold, args.doc_chars, caching=True)
    tok.learn_merge_rules(train_docs, args.merges)
    for doc in docs:
        tok.encode(doc)
    t0 = time.perf_counter()
    for doc in docs:
        tok.encode(doc)
    cached_secs = time.perf_counter() - t0
    summary = tok.metrics.summary()
    print()
    print(f"cached re-encode: {total_chars / cached_secs:,.0f} chars/s (hit rate {summary.cache_hit_rate:.0%})")


if __name__ == "__main__":
    main()
