"""Corpus-driven vocabulary construction."""

import logging
from typing import Iterable

from .cancellation import CancellationToken
from .config import TokenizerConfig
from .encoder import BytePairEncoder
from .errors import InvalidArgumentError, InvalidInputError
from .vocab import VocabularyStore

log = logging.getLogger(__name__)


class VocabularyBuilder:
    """
    Builds vocabularies from a corpus using an encoder's merge learning.

    Example:
       >>> config = TokenizerConfig(max_vocab_size=1000)
       >>> encoder = BytePairEncoder(VocabularyStore(), config)
       >>> builder = VocabularyBuilder(config, encoder)
       >>> vocab = builder.build_from_corpus(["ab", "ab", "ac"], target_size=1)
       >>> vocab.contains("ab")
       True
    """

    def __init__(self, config: TokenizerConfig, encoder: BytePairEncoder) -> None:
        if config is None:
            raise InvalidInputError("config must not be None")
        if encoder is None:
            raise InvalidInputError("encoder must not be None")
        self.config = config
        self.encoder = encoder

    def build_from_corpus(
        self,
        corpus: Iterable[str],
        target_size: int,
        cancel: CancellationToken | None = None,
    ) -> VocabularyStore:
        """
        Learn up to ``target_size`` merges and return a fresh vocabulary.

        The result holds the configured special tokens followed by the merged
        value of every learned rule, in rule order, and carries the rules
        themselves.

        :raises InvalidArgumentError: If ``target_size`` is not positive or
            exceeds ``max_vocab_size``.
        """
        if target_size <= 0:
            raise InvalidArgumentError(f"target size must be positive (got {target_size})")
        if target_size > self.config.max_vocab_size:
            raise InvalidArgumentError(
                f"target size exceeds maximum vocabulary size of {self.config.max_vocab_size} "
                f"(got {target_size})"
            )

        vocabulary = VocabularyStore()
        rules = self.encoder.learn_merge_rules(corpus, target_size, cancel)

        for seq in self.config.special_token_list():
            vocabulary.add_token(seq, is_special=True)

        for rule in rules:
            vocabulary.add_token(rule.merged_value)
            vocabulary.add_merge_rule(rule)

        log.info(
            f"built vocabulary with {vocabulary.size()} tokens from {len(rules)} merge rules"
        )
        return vocabulary

    def update_vocabulary(
        self, vocabulary: VocabularyStore, new_tokens: Iterable[str | None]
    ) -> None:
        """
        Register each value in ``new_tokens`` as a regular token.

        Already registered values are left as they are; None entries are skipped.

        :raises InvalidArgumentError: If ``vocabulary`` is not a ``VocabularyStore``.
        :raises InvalidInputError: If ``new_tokens`` is None or contains an empty string.
        """
        if not isinstance(vocabulary, VocabularyStore):
            raise InvalidArgumentError(
                f"vocabulary must be a VocabularyStore instance (got {type(vocabulary).__name__})"
            )
        if new_tokens is None:
            raise InvalidInputError("new_tokens must not be None")

        for value in new_tokens:
            if value is not None:
                vocabulary.add_token(value, is_special=False)


__all__ = ["VocabularyBuilder"]
