"""
Vocabulary store: the token <-> id bijection and the ordered merge rule list.
"""

import json
import logging
import threading
from dataclasses import dataclass, field
from pathlib import Path

from .errors import (
    InvalidInputError,
    VocabularyCorruptError,
    VocabularyNotFoundError,
)
from .types import MergeRule, Token, TokenId

log = logging.getLogger(__name__)


@dataclass(slots=True)
class _Maps:
    """Both directions of the mapping, swapped together on load."""

    value_to_id: dict[str, TokenId] = field(default_factory=dict)
    id_to_token: dict[TokenId, Token] = field(default_factory=dict)


class VocabularyStore:
    """
    Thread-safe mapping between token values and ids, plus learned merge rules.

    Lookups never take a lock. Insertion of new values is serialized so that
    id allocation and the update of both maps happen as one step: the id map
    is filled before the value map, so any reader that finds a value can
    always resolve its id to a token.
    """

    def __init__(self) -> None:
        self._maps = _Maps()
        self._next_id: TokenId = 0
        self._insert_lock = threading.Lock()
        self._merge_rules: list[MergeRule] = []
        self._rules_lock = threading.Lock()

    def size(self) -> int:
        """Return the number of distinct registered tokens."""
        return len(self._maps.value_to_id)

    def __len__(self) -> int:
        return self.size()

    def __contains__(self, value: object) -> bool:
        return isinstance(value, str) and self.contains(value)

    def contains(self, value: str | None) -> bool:
        return bool(value) and value in self._maps.value_to_id

    def try_get_id(self, value: str | None) -> TokenId | None:
        """Return the id registered for ``value``, or None."""
        if not value:
            return None
        return self._maps.value_to_id.get(value)

    def try_get_token(self, token_id: TokenId) -> Token | None:
        """Return the token registered under ``token_id``, or None."""
        return self._maps.id_to_token.get(token_id)

    def get_token(self, value: str | None) -> Token | None:
        """Return the token registered for ``value``, or None."""
        if not value:
            return None
        maps = self._maps
        token_id = maps.value_to_id.get(value)
        if token_id is None:
            return None
        return maps.id_to_token.get(token_id)

    def get_vocabulary(self) -> dict[str, TokenId]:
        """Return a copy of the value -> id mapping."""
        with self._insert_lock:
            return dict(self._maps.value_to_id)

    def add_token(self, value: str, is_special: bool = False) -> TokenId:
        """
        Register ``value`` and return its id.

        Re-adding a registered value returns the existing id and leaves the
        vocabulary unchanged, including its special flag.

        :raises InvalidInputError: If ``value`` is empty.
        """
        if not value or not isinstance(value, str):
            raise InvalidInputError("token value must be a non-empty string")

        # fast path: already registered
        existing = self._maps.value_to_id.get(value)
        if existing is not None:
            return existing

        with self._insert_lock:
            maps = self._maps
            # another thread may have won the race
            existing = maps.value_to_id.get(value)
            if existing is not None:
                return existing

            token_id = self._next_id
            self._next_id += 1
            maps.id_to_token[token_id] = Token(value, token_id, is_special)
            maps.value_to_id[value] = token_id

        return token_id

    def add_special_token(self, value: str) -> TokenId:
        """
        Register ``value`` as a special token and return its id.

        Unlike ``add_token`` this also flags an already registered value as
        special, keeping its id. Used to restore special tokens after ``load``.

        :raises InvalidInputError: If ``value`` is empty.
        """
        token_id = self.add_token(value, is_special=True)
        with self._insert_lock:
            maps = self._maps
            token = maps.id_to_token.get(token_id)
            if token is not None and not token.is_special:
                maps.id_to_token[token_id] = Token(value, token_id, True)
        return token_id

    def get_merge_rules(self) -> list[MergeRule]:
        """Return a snapshot of the merge rules in registration order."""
        with self._rules_lock:
            return list(self._merge_rules)

    def add_merge_rule(self, rule: MergeRule) -> None:
        if rule is None:
            raise InvalidInputError("merge rule must not be None")
        with self._rules_lock:
            self._merge_rules.append(rule)

    def clear_merge_rules(self) -> None:
        with self._rules_lock:
            self._merge_rules.clear()

    def save(self, path: str | Path) -> None:
        """
        Write the value -> id mapping to ``path`` as a JSON object.

        Merge rules and special flags are not persisted.
        """
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)

        vocab = self.get_vocabulary()
        log.debug(f"saving {len(vocab)} tokens to {path}")
        with path.open("w", encoding="utf-8", newline="\n") as f:
            json.dump(vocab, f, ensure_ascii=False)
        log.info(f"vocabulary saved to {path}")

    def load(self, path: str | Path) -> None:
        """
        Replace the vocabulary with the mapping stored at ``path``.

        The current state is only swapped out once the whole file has been
        read and validated. The id counter continues past the largest loaded id.

        :raises VocabularyNotFoundError: If ``path`` does not exist.
        :raises VocabularyCorruptError: If the file is not a ``{str: int}`` JSON object.
        """
        path = Path(path)
        if not path.is_file():
            raise VocabularyNotFoundError("vocabulary file not found", path=path)

        log.info(f"loading vocabulary from {path}")
        try:
            with path.open("r", encoding="utf-8") as f:
                raw = json.load(f)
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            raise VocabularyCorruptError("failed to parse vocabulary", path=path) from e

        if not isinstance(raw, dict):
            raise VocabularyCorruptError("expected a JSON object", path=path)

        value_to_id: dict[str, TokenId] = {}
        id_to_token: dict[TokenId, Token] = {}
        next_id = 0
        for value, token_id in raw.items():
            # bool is a subclass of int but never a valid id
            if isinstance(token_id, bool) or not isinstance(token_id, int) or token_id < 0:
                raise VocabularyCorruptError(
                    f"invalid id for token {value!r}", path=path
                )
            if not value:
                continue
            if token_id in id_to_token:
                raise VocabularyCorruptError(
                    "duplicate token id", path=path, invalid_id=token_id
                )
            value_to_id[value] = token_id
            id_to_token[token_id] = Token(value, token_id)
            next_id = max(next_id, token_id + 1)

        with self._insert_lock:
            self._maps = _Maps(value_to_id, id_to_token)
            self._next_id = next_id

        log.info(f"vocabulary loaded: {len(value_to_id)} tokens")


__all__ = ["VocabularyStore"]
