"""
Core types for tokenization.
"""

from dataclasses import dataclass, field

type TokenId = int
type TokenValue = str
type PairKey = tuple[TokenValue, TokenValue]


@dataclass(frozen=True, slots=True)
class Token:
    """
    A vocabulary entry: string content plus its id.

    Tokens compare and hash by id, so a token stays equal to itself after it
    is flagged as special.
    """

    value: TokenValue = field(compare=False)
    id: TokenId
    is_special: bool = field(default=False, compare=False)


@dataclass(slots=True)
class TokenPair:
    """Two adjacent tokens and how often they occur together."""

    first: Token
    second: Token
    frequency: int = 0

    @property
    def key(self) -> PairKey:
        return (self.first.value, self.second.value)

    @property
    def merged_value(self) -> TokenValue:
        return self.first.value + self.second.value


@dataclass(frozen=True, slots=True)
class MergeRule:
    """
    Learned instruction to replace an adjacent pair with its concatenation.

    ``priority`` is the insertion order of the rule, lower means learned earlier.
    """

    pair: TokenPair
    priority: int

    @property
    def first(self) -> TokenValue:
        return self.pair.first.value

    @property
    def second(self) -> TokenValue:
        return self.pair.second.value

    @property
    def merged_value(self) -> TokenValue:
        return self.pair.merged_value
