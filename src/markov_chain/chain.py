"""
Immutable first-order Markov chain and its weighted sampler.

A chain maps every token that was observed as a predecessor to a :class:`Link` holding the
counts of the tokens that followed it. The empty string is the end-of-stream sentinel: it is
the implicit predecessor of each stream's first token and the implicit successor of its last.
"""

import random
from collections.abc import Iterator, Mapping
from types import MappingProxyType

import numpy as np

from ._types import END_OF_STREAM, Token
from .errors import ChainInvariantError

type RandomSource = random.Random | np.random.Generator


def _draw_below(rng: RandomSource, upper: int) -> int:
    if isinstance(rng, np.random.Generator):
        return int(rng.integers(upper))
    return rng.randrange(upper)


class Link:
    """
    Outgoing transition counts for a single source token.

    Occurrences are kept in lexicographic order of the next token, so for a seeded random
    source every call to :meth:`sample` is reproducible, not only the overall distribution.
    """

    __slots__ = ("source_token", "_occurrences", "_total", "_tokens", "_cumulative")

    def __init__(self, source_token: Token, occurrences: Mapping[Token, int], total: int | None = None):
        if any(count < 0 for count in occurrences.values()):
            raise ChainInvariantError(f"negative occurrence count for {source_token!r}")
        counts = {token: int(occurrences[token]) for token in sorted(occurrences) if occurrences[token] > 0}

        self.source_token = source_token
        self._occurrences = MappingProxyType(counts)
        self._tokens = tuple(counts)
        self._cumulative = np.cumsum(np.fromiter(counts.values(), dtype=np.int64, count=len(counts)))
        self._total = int(self._cumulative[-1]) if len(counts) else 0

        if total is not None and total != self.total:
            raise ChainInvariantError(
                f"link {source_token!r} total {total} != sum of occurrences {self.total}")

    @property
    def total(self) -> int:
        return self._total

    @property
    def occurrences(self) -> Mapping[Token, int]:
        return self._occurrences

    def __repr__(self) -> str:
        return f"Link({self.source_token!r}, {dict(self._occurrences)!r}, total={self.total})"

    def __eq__(self, other):
        if not isinstance(other, Link):
            return NotImplemented
        return self.source_token == other.source_token and self._occurrences == other._occurrences

    def __hash__(self):
        return hash((self.source_token, self.total))

    def _token_at(self, goal: int) -> Token:
        # First cumulative count strictly greater than goal.
        idx = int(np.searchsorted(self._cumulative, goal, side="right"))
        if idx >= len(self._tokens):
            raise ChainInvariantError(
                f"draw {goal} outside cumulative table of {self.source_token!r} (total={self.total})")
        return self._tokens[idx]

    def sample(self, rng: RandomSource) -> Token:
        """
        Draw a next token with probability ``occurrences[token] / total``.

        Args:
            rng (RandomSource): A ``random.Random`` or ``numpy.random.Generator``.

        Returns:
            Token: The sampled next token, possibly the end-of-stream sentinel.
        """
        if self.total <= 0:
            raise ValueError(f"link {self.source_token!r} has no occurrences to sample from")
        return self._token_at(_draw_below(rng, self.total))

    def sample_many(self, rng: np.random.Generator, size: int) -> list[Token]:
        if size < 0:
            raise ValueError("size must be non-negative")
        if self.total <= 0:
            raise ValueError(f"link {self.source_token!r} has no occurrences to sample from")
        goals = rng.integers(self.total, size=size)
        indices = np.searchsorted(self._cumulative, goals, side="right")
        if size and int(indices.max()) >= len(self._tokens):
            raise ChainInvariantError(f"draw outside cumulative table of {self.source_token!r}")
        return [self._tokens[i] for i in indices]

    def probability_of(self, next_token: Token) -> tuple[float, bool]:
        count = self._occurrences.get(next_token)
        if count is None:
            return 0.0, False
        return count / self.total, True

    def possibilities(self) -> set[Token]:
        return set(self._tokens)


class Chain(Mapping[Token, Link]):
    """Read-only mapping from source token to :class:`Link`; safe to share between threads."""

    def __init__(self, links: Mapping[Token, Link] | None = None):
        self._links: Mapping[Token, Link] = MappingProxyType(dict(links or {}))

    def __getitem__(self, token: Token) -> Link:
        return self._links[token]

    def __iter__(self) -> Iterator[Token]:
        return iter(self._links)

    def __len__(self) -> int:
        return len(self._links)

    def __repr__(self) -> str:
        return f"Chain({len(self)} links)"

    def link(self, token: Token) -> Link | None:
        return self._links.get(token)

    def next_token(self, token: Token, rng: RandomSource) -> Token | None:
        link = self._links.get(token)
        if link is None:
            return None
        return link.sample(rng)

    def probability_of(self, token: Token, next_token: Token) -> tuple[float, bool]:
        link = self._links.get(token)
        if link is None:
            return 0.0, False
        return link.probability_of(next_token)

    def generate(
        self, rng: RandomSource, start: Token = END_OF_STREAM, max_tokens: int | None = None
    ) -> Iterator[Token]:
        """
        Walk the chain from ``start``, yielding sampled tokens.

        The walk stops when the end-of-stream sentinel is drawn, when a token without a link
        is reached, or after ``max_tokens`` tokens. The sentinel itself is never yielded.
        """
        current = start
        emitted = 0
        while max_tokens is None or emitted < max_tokens:
            current = self.next_token(current, rng)
            if current is None or current == END_OF_STREAM:
                return
            yield current
            emitted += 1
