"""
Byte-pair encoder: initial segmentation, merge application and merge learning.
"""

import logging
from itertools import pairwise
from typing import Final, Iterable, Sequence

from ._sanitise import render_value
from .cancellation import CancellationToken, check
from .config import TokenizerConfig
from .errors import InvalidInputError
from .metrics import MetricsSink, NullMetrics
from .pattern import SegmentFn, get_segmenter
from .types import MergeRule, PairKey, Token, TokenPair
from .vocab import VocabularyStore

log = logging.getLogger(__name__)

# segmentation checks for cancellation once per this many elements
_CANCEL_CHECK_EVERY: Final[int] = 1024


def _rank(pair: TokenPair) -> tuple[int, str, str]:
    """Sort key: frequency descending, then first value, then second value."""
    return (-pair.frequency, pair.first.value, pair.second.value)


class BytePairEncoder:
    """
    Greedy BPE over text elements, backed by a shared vocabulary.

    Encoding registers previously unseen text elements in the vocabulary, so
    it mutates the vocabulary as a side effect.
    """

    def __init__(
        self,
        vocabulary: VocabularyStore,
        config: TokenizerConfig | None = None,
        segmenter: str | SegmentFn | None = None,
        metrics: MetricsSink | None = None,
    ) -> None:
        if vocabulary is None:
            raise InvalidInputError("vocabulary must not be None")
        self.vocabulary = vocabulary
        self.config = config or TokenizerConfig()
        self.segment: SegmentFn = get_segmenter(
            segmenter if segmenter is not None else self.config.segmenter
        )
        self.metrics = metrics if metrics is not None else NullMetrics()

    def encode(self, text: str, cancel: CancellationToken | None = None) -> list[Token]:
        """
        Encode text into tokens.

        A text that is exactly a registered special token is returned as that
        single token without segmentation or merging.

        :param text: Text to encode; empty input yields an empty list.
        :param cancel: Optional token checked between elements and merge passes.
        :returns: Encoded token sequence.
        :raises TokenizationCancelled: If ``cancel`` fires during encoding.
        """
        if not text:
            return []

        special = self.vocabulary.get_token(text)
        if special is not None and special.is_special:
            return [special]

        tokens = self._initial_tokenize(text, cancel)
        self.apply_merges(tokens, self.vocabulary.get_merge_rules(), cancel)
        return tokens

    def _initial_tokenize(
        self, text: str, cancel: CancellationToken | None = None
    ) -> list[Token]:
        """Split text into elements and map each to a token, registering new ones."""
        tokens: list[Token] = []
        for idx, element in enumerate(self.segment(text)):
            if idx % _CANCEL_CHECK_EVERY == 0:
                check(cancel)
            if not element:
                continue
            token = self.vocabulary.get_token(element)
            if token is None:
                token_id = self.vocabulary.add_token(element)
                token = self.vocabulary.try_get_token(token_id)
            tokens.append(token)
        return tokens

    def apply_merges(
        self,
        tokens: list[Token],
        rules: Iterable[MergeRule],
        cancel: CancellationToken | None = None,
    ) -> None:
        """
        Apply merge rules to ``tokens`` in place until none applies.

        Each pass walks the rules in registration order and scans the sequence
        left to right for each rule. After a merge the scan stays on the same
        position, since the merged token may combine with its right neighbour.
        """
        rules = list(rules)
        changed = True
        while changed and len(tokens) > 1:
            check(cancel)
            changed = False
            for rule in rules:
                first, second = rule.first, rule.second
                merged: Token | None = None
                i = 0
                while i < len(tokens) - 1:
                    if tokens[i].value != first or tokens[i + 1].value != second:
                        i += 1
                        continue
                    if merged is None:
                        merged = self.vocabulary.get_token(rule.merged_value)
                        if merged is None:
                            log.warning(
                                f"merge result {render_value(rule.merged_value)} "
                                "missing from vocabulary, skipping rule"
                            )
                            break
                    tokens[i] = merged
                    del tokens[i + 1]
                    changed = True

    def find_most_frequent_pairs(self, tokens: Sequence[Token]) -> list[TokenPair]:
        """
        Count adjacent pairs by value and rank them.

        :returns: Pairs ordered by frequency descending, then first value and
            second value ascending.
        """
        return sorted(self._count_pairs(tokens).values(), key=_rank)

    @staticmethod
    def _count_pairs(tokens: Sequence[Token]) -> dict[PairKey, TokenPair]:
        pairs: dict[PairKey, TokenPair] = {}
        for a, b in pairwise(tokens):
            key = (a.value, b.value)
            pair = pairs.get(key)
            if pair is None:
                pair = pairs[key] = TokenPair(a, b)
            pair.frequency += 1
        return pairs

    def learn_merge_rules(
        self,
        corpus: Iterable[str],
        num_merges: int,
        cancel: CancellationToken | None = None,
        verbose: bool = False,
    ) -> list[MergeRule]:
        """
        Learn up to ``num_merges`` merge rules from a corpus.

        Existing merge rules are cleared first. All corpus items are segmented
        into one working sequence, then the top ranked pair is merged
        repeatedly. Learning stops early once no pair occurs at least twice.

        :param corpus: Texts to learn from, consumed lazily one item at a time.
        :param num_merges: Maximum number of rules to learn.
        :param cancel: Optional token checked between corpus items and merges.
        :param verbose: Log each learned merge when ``True``.
        :returns: Learned rules in priority order.
        :raises TokenizationCancelled: If ``cancel`` fires.
        """
        with self.metrics.measure("learn_merge_rules"):
            return self._learn(corpus, num_merges, cancel, verbose)

    def _learn(
        self,
        corpus: Iterable[str],
        num_merges: int,
        cancel: CancellationToken | None,
        verbose: bool,
    ) -> list[MergeRule]:
        self.vocabulary.clear_merge_rules()
        rules: list[MergeRule] = []
        working: list[Token] = []

        for text in corpus:
            check(cancel)
            if text:
                working.extend(self._initial_tokenize(text, cancel))

        log.debug(f"learning merges over {len(working)} initial tokens")

        while len(rules) < num_merges and len(working) > 1:
            check(cancel)
            pairs = self._count_pairs(working)
            best = min(pairs.values(), key=_rank, default=None)
            # a pair seen once does not generalize
            if best is None or best.frequency < 2:
                break

            self.vocabulary.add_token(best.merged_value)
            rule = MergeRule(best, len(rules))
            rules.append(rule)
            self.vocabulary.add_merge_rule(rule)
            self.apply_merges(working, [rule], cancel)

            if verbose:
                log.info(
                    "merge %d/%d: (%s, %s) -> %s (frequency %d)",
                    len(rules),
                    num_merges,
                    render_value(rule.first),
                    render_value(rule.second),
                    render_value(rule.merged_value),
                    best.frequency,
                )

        if len(rules) < num_merges:
            log.warning(
                f"no more repeated pairs to merge after {len(rules)} merges "
                f"(requested {num_merges}) stopping early"
            )

        return rules


__all__ = ["BytePairEncoder"]
