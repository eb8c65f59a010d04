"""Build a pairtok vocabulary from a Hugging Face dataset or a local text file."""

import argparse
import logging
import time
from pathlib import Path
from typing import Iterator

from datasets import load_dataset

from pairtok import BytePairEncoder, TokenizerConfig, VocabularyBuilder, VocabularyStore

# Configure logging to show INFO level and above.
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    datefmt="%H:%M:%S",
)

HF_DATASET = "stevez80/Sci-Fi-Books-gutenberg"


def iter_corpus(dataset: str, num_docs: int | None, text_file: Path | None) -> Iterator[str]:
    """Yield corpus documents lazily, from a local file when given."""
    if text_file is not None:
        with text_file.open("r", encoding="utf-8") as f:
            for line in f:
                if line.strip():
                    yield line
        return

    print(f"Loading {dataset} (streaming) …")
    ds = load_dataset(dataset, split="train", streaming=True)
    for idx, row in enumerate(ds):
        if num_docs is not None and idx >= num_docs:
            break
        yield row["text"]


def main() -> None:
    """Learn merge rules from a corpus and save the resulting vocabulary."""
    parser = argparse.ArgumentParser(description="Build a pairtok vocabulary.")
    parser.add_argument("--dataset", type=str, default=HF_DATASET)
    parser.add_argument(
        "--text-file",
        type=Path,
        default=None,
        help="Local UTF-8 text file, one document per line (overrides --dataset).",
    )
    parser.add_argument("--num-docs", type=int, default=200)
    parser.add_argument("--merges", type=int, default=1000, help="Number of merges to learn.")
    parser.add_argument("--output", type=Path, default=Path("vocab.json"))
    parser.add_argument("--verbose", action="store_true", help="Enable debug logging.")
    args = parser.parse_args()

    config = TokenizerConfig.from_env()
    encoder = BytePairEncoder(VocabularyStore(), config)
    builder = VocabularyBuilder(config, encoder)

    if args.verbose:
        logging.getLogger("pairtok").setLevel(logging.DEBUG)

    start = time.perf_counter()
    vocab = builder.build_from_corpus(
        iter_corpus(args.dataset, args.num_docs, args.text_file), args.merges
    )
    elapsed = time.perf_counter() - start

    vocab.save(args.output)
    print(f"✓ Learned {len(vocab.get_merge_rules()):,} merge rules in {elapsed:.2f}s")
    print(f"✓ Vocabulary of {vocab.size():,} tokens saved to {args.output}")


if __name__ == "__main__":
    main()
