import logging
import os
import pickle
import time
from abc import ABC, abstractmethod
from collections import Counter, defaultdict
from collections.abc import Iterable, Sequence
from multiprocessing import Pool
from multiprocessing.pool import ThreadPool

import tqdm

from ._types import END_OF_STREAM, PartialCountTable, Token
from .chain import Chain, Link
from .config import BuildConfig
from .errors import ChainBuildError, SourceError

logger = logging.getLogger(__name__)


def accumulate(tokens: Iterable[Token], stream_index: int = 0) -> PartialCountTable:
    """
    Count the transitions of a single token stream.

    The end-of-stream sentinel is the predecessor of the first token, and the last token is
    followed by one extra transition to the sentinel. An empty token mid-stream is counted
    like any other, so it reads as a break inside the stream: ``prev -> ""`` then ``"" -> next``.

    Args:
        tokens (Iterable[Token]): The token stream, consumed to exhaustion.
        stream_index (int): Position of the stream, used in error reports.

    Returns:
        PartialCountTable: Mapping of previous token to a Counter of next tokens.
    """
    table: PartialCountTable = defaultdict(Counter)
    previous = END_OF_STREAM
    try:
        for token in tokens:
            if not isinstance(token, str):
                raise TypeError(f"tokens must be str, got {type(token).__name__}")
            table[previous][token] += 1
            previous = token
    except ChainBuildError as exc:
        exc.attach_stream(stream_index)
        raise
    except Exception as exc:
        raise SourceError(f"{type(exc).__name__}: {exc}", stream_index) from exc

    table[previous][END_OF_STREAM] += 1
    return table


def merge_partial_tables(*tables: PartialCountTable) -> tuple[PartialCountTable, dict[Token, int]]:
    """
    Sum the counts of several partial tables.

    The result does not depend on the order of ``tables``. Totals are summed alongside the
    occurrences so they can be checked against each other when links are created.

    Returns:
        tuple[PartialCountTable, dict[Token, int]]: Merged occurrences and per-token totals.
    """
    merged: PartialCountTable = defaultdict(Counter)
    totals: dict[Token, int] = defaultdict(int)
    for table in tables:
        for token, occurrences in table.items():
            totals[token] += occurrences.total()
            merged[token].update(occurrences)
    return merged, totals


def chain_from_tables(*tables: PartialCountTable) -> Chain:
    merged, totals = merge_partial_tables(*tables)
    return Chain({token: Link(token, occurrences, totals[token]) for token, occurrences in merged.items()})


class ChainBuilder(ABC):
    def __init__(self, config: BuildConfig | None = None) -> None:
        self.config = config or BuildConfig()

    @staticmethod
    def _worker_wrapper(args: tuple[int, Iterable[Token]]) -> PartialCountTable:
        stream_index, source = args
        table = accumulate(source, stream_index)
        logger.debug("stream %d accumulated %d links", stream_index, len(table))
        return table

    def _progress(self, results: Iterable[PartialCountTable], total: int) -> list[PartialCountTable]:
        return list(
            tqdm.tqdm(results, total=total, desc="Accumulating streams", disable=not self.config.show_progress)
        )

    @abstractmethod
    def _accumulate_streams(self, sources: Sequence[Iterable[Token]]) -> list[PartialCountTable]:
        """
        Accumulate every stream and return all partial tables.

        Must only return once every stream has been consumed, and must raise instead of
        returning if any stream failed.
        """

    def build(self, *sources: Iterable[Token]) -> Chain:
        """
        Build a chain from independent token streams.

        Args:
            *sources (Iterable[Token]): One iterable per stream.

        Returns:
            Chain: The merged chain. With no sources the chain has no links.

        Raises:
            ChainBuildError: The first stream failure observed; no chain is produced.
        """
        if not sources:
            return Chain()

        start_time = time.time()
        tables = self._accumulate_streams(sources)
        chain = chain_from_tables(*tables)
        elapsed = time.time() - start_time

        logger.info("built chain with %d links from %d streams in %.2fs", len(chain), len(sources), elapsed)
        if self.config.show_progress:
            tqdm.tqdm.write(f"Chain complete. {len(chain)} links from {len(sources)} streams.")
        return chain

    def __call__(self, *sources: Iterable[Token]) -> Chain:
        return self.build(*sources)


class SerialChainBuilder(ChainBuilder):
    """Accumulates streams one after another in the calling thread."""

    def _accumulate_streams(self, sources: Sequence[Iterable[Token]]) -> list[PartialCountTable]:
        return self._progress(map(self._worker_wrapper, enumerate(sources)), len(sources))


class ThreadedChainBuilder(ChainBuilder):
    """
    One accumulation task per stream on a thread pool.

    Suits any iterable, including generators and sources that block on I/O. Unless
    ``num_workers`` is set, every stream has its own thread, so a blocked source never keeps
    another stream from starting. When a stream fails, leaving the pool waits for siblings
    that are still running; their tables are discarded.
    """

    def _accumulate_streams(self, sources: Sequence[Iterable[Token]]) -> list[PartialCountTable]:
        num_workers = self.config.pool_size(len(sources))
        with ThreadPool(processes=num_workers) as pool:
            chunk_iter = pool.imap_unordered(self._worker_wrapper, enumerate(sources))
            return self._progress(chunk_iter, len(sources))


class MultiProcessChainBuilder(ChainBuilder):
    """
    One accumulation task per stream on a process pool.

    Sources, and any filters wrapped around them, must be picklable. The stock file sources
    and filters are. A source that cannot be pickled fails the build before any worker starts.
    """

    @staticmethod
    def _check_picklable(sources: Sequence[Iterable[Token]]) -> None:
        for stream_index, source in enumerate(sources):
            try:
                pickle.dumps(source)
            except Exception as exc:
                raise SourceError(
                    f"{type(source).__name__} cannot be sent to a worker process: {exc}", stream_index) from exc

    def _accumulate_streams(self, sources: Sequence[Iterable[Token]]) -> list[PartialCountTable]:
        self._check_picklable(sources)
        num_workers = self.config.pool_size(len(sources), os.cpu_count() or 1)
        with Pool(processes=num_workers) as pool:
            chunk_iter = pool.imap_unordered(self._worker_wrapper, enumerate(sources))
            return self._progress(chunk_iter, len(sources))


BUILDERS: dict[str, type[ChainBuilder]] = {
    "serial": SerialChainBuilder,
    "thread": ThreadedChainBuilder,
    "process": MultiProcessChainBuilder,
}


def build_chain(*sources: Iterable[Token], config: BuildConfig | None = None) -> Chain:
    config = config or BuildConfig()
    return BUILDERS[config.backend](config)(*sources)


if __name__ == "__main__":
    import random
    import sys

    from .sources import sources_from_paths

    logging.basicConfig(level=logging.INFO)
    built = build_chain(*sources_from_paths(*sys.argv[1:], words=True), config=BuildConfig(show_progress=True))
    print(" ".join(built.generate(random.Random(0), max_tokens=50)))
