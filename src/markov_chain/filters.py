from abc import ABC, abstractmethod
from collections.abc import Callable, Iterable, Iterator, Mapping

import regex as re

from ._types import Token
from .errors import ChainBuildError, FilterError
from .sources import WORD_PATTERN


class TokenFilter(ABC):
    @abstractmethod
    def filter_token(self, candidate: Token) -> list[Token]:
        """
        Transform one candidate token into the tokens that should be passed on.

        Args:
            candidate (Token): The token produced upstream.

        Returns:
            list[Token]: Zero or more tokens, in order. An empty list drops the candidate.
        """

    def __call__(self, candidate: Token) -> list[Token]:
        return self.filter_token(candidate)


class FunctionFilter(TokenFilter):
    """Adapts a plain callable into a TokenFilter."""

    def __init__(self, func: Callable[[Token], list[Token]]):
        self.func = func

    def filter_token(self, candidate: Token) -> list[Token]:
        return list(self.func(candidate))


class LowercaseFilter(TokenFilter):
    def filter_token(self, candidate: Token) -> list[Token]:
        return [candidate.lower()]


class TrimFilter(TokenFilter):
    def filter_token(self, candidate: Token) -> list[Token]:
        return [candidate.strip()]


class SubstitutionFilter(TokenFilter):
    """Replaces candidates that exactly match a key of ``substitutions``."""

    def __init__(self, substitutions: Mapping[Token, Token]):
        self.substitutions = dict(substitutions)

    def filter_token(self, candidate: Token) -> list[Token]:
        return [self.substitutions.get(candidate, candidate)]


class PrefixFilter(TokenFilter):
    """
    Strips ``prefix`` from candidates.

    With ``iterate`` the prefix is removed repeatedly until it no longer matches or the
    candidate is empty, so ``"##x"`` with prefix ``"#"`` becomes ``"x"``.
    """

    def __init__(self, prefix: str, iterate: bool = False):
        self.prefix = prefix
        self.iterate = iterate

    def filter_token(self, candidate: Token) -> list[Token]:
        if not self.iterate or not self.prefix:
            return [candidate.removeprefix(self.prefix)]
        trimmed = candidate
        while trimmed.startswith(self.prefix):
            trimmed = trimmed[len(self.prefix):]
        return [trimmed]


class SplitFilter(TokenFilter):
    """Expands one candidate into every match of ``pattern``, e.g. a line into its words."""

    def __init__(self, pattern: str = WORD_PATTERN):
        self.pattern = pattern
        self._compiled = re.compile(pattern)

    def __getstate__(self):
        return {"pattern": self.pattern}

    def __setstate__(self, state):
        self.__init__(state["pattern"])

    def filter_token(self, candidate: Token) -> list[Token]:
        return self._compiled.findall(candidate)


class FilteredTokenSource:
    """
    A token source with one filter applied to every candidate.

    Multi-token expansions are handed out in order before the next upstream candidate is
    read; empty expansions are skipped.
    """

    def __init__(self, source: Iterable[Token], token_filter: TokenFilter):
        self.source = source
        self.token_filter = token_filter

    def __iter__(self) -> Iterator[Token]:
        for candidate in self.source:
            try:
                tokens = self.token_filter.filter_token(candidate)
            except ChainBuildError:
                raise
            except Exception as exc:
                raise FilterError(
                    f"{type(self.token_filter).__name__} failed on {candidate!r}: {exc}") from exc
            yield from tokens


def apply_filters(source: Iterable[Token], *filters: TokenFilter) -> Iterable[Token]:
    """Applies ``filters`` to ``source`` in order; the first filter sees the raw tokens."""
    for token_filter in filters:
        source = FilteredTokenSource(source, token_filter)
    return source


def make_filtered_sources(token_filter: TokenFilter, *sources: Iterable[Token]) -> list[FilteredTokenSource]:
    return [FilteredTokenSource(source, token_filter) for source in sources]
