import mmap
import os
from collections.abc import Iterator

import regex as re

from ._types import Token

WORD_PATTERN = r"""\p{L}+(?:'\p{L}+)*|\p{N}+|[^\s\p{L}\p{N}]+"""


def find_chunk_boundaries(
    file_path: str,
    desired_num_chunks: int,
    separator: bytes = b"\n",
) -> list[int]:
    """
    Find byte offsets that split a file into roughly equal chunks.

    Every inner boundary sits just after an occurrence of ``separator`` so no token is cut
    in half. Fewer chunks than requested are returned when the file runs out of separators.
    """
    file_size = os.path.getsize(file_path)
    if file_size == 0 or desired_num_chunks <= 1:
        return [0, file_size]

    chunk_boundaries = [0]
    chunk_size = max(1, file_size // desired_num_chunks)
    with open(file_path, "rb") as f, mmap.mmap(f.fileno(), 0, access=mmap.ACCESS_READ) as mm:
        for i in range(1, desired_num_chunks):
            found_at = mm.find(separator, i * chunk_size)
            if found_at == -1:
                break
            chunk_boundaries.append(found_at + len(separator))
    chunk_boundaries.append(file_size)
    return sorted(set(chunk_boundaries))


class LineTokenSource:
    """One token per non-empty line of a text file, optionally limited to a byte range."""

    def __init__(self, file_path: str | os.PathLike, start: int = 0, end: int | None = None):
        self.file_path = os.fspath(file_path)
        self.start = start
        self.end = end

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.file_path!r}, start={self.start}, end={self.end})"

    def _lines(self) -> Iterator[str]:
        if os.path.getsize(self.file_path) == 0:
            return
        with open(self.file_path, "rb") as f, mmap.mmap(f.fileno(), length=0, access=mmap.ACCESS_READ) as mm:
            end = len(mm) if self.end is None else min(self.end, len(mm))
            mm.seek(self.start)
            while mm.tell() < end:
                raw = mm.readline()
                overshoot = mm.tell() - end
                if overshoot > 0:
                    raw = raw[: len(raw) - overshoot]
                yield raw.decode("utf-8", errors="replace").rstrip("\r\n")

    def __iter__(self) -> Iterator[Token]:
        for line in self._lines():
            if line:
                yield line


class WordTokenSource(LineTokenSource):
    """One token per regex match on each line of a text file."""

    def __init__(
        self,
        file_path: str | os.PathLike,
        pattern: str = WORD_PATTERN,
        start: int = 0,
        end: int | None = None,
    ):
        super().__init__(file_path, start=start, end=end)
        self.pattern = pattern

    def __iter__(self) -> Iterator[Token]:
        compiled = re.compile(self.pattern)
        for line in self._lines():
            for token_match in compiled.finditer(line):
                yield token_match.group()


def sources_from_paths(*paths: str | os.PathLike, words: bool = False) -> list[LineTokenSource]:
    source_cls = WordTokenSource if words else LineTokenSource
    return [source_cls(path) for path in paths]


def split_file_sources(
    file_path: str | os.PathLike, num_chunks: int, separator: bytes = b"\n\n", words: bool = False
) -> list[LineTokenSource]:
    """
    Split one file into independent streams at ``separator`` boundaries.

    Each chunk becomes its own stream, so every chunk contributes its own start and
    end-of-stream transitions. Paragraph-sized chunks are the natural fit.
    """
    file_path = os.fspath(file_path)
    boundaries = find_chunk_boundaries(file_path, num_chunks, separator=separator)
    source_cls = WordTokenSource if words else LineTokenSource
    return [
        source_cls(file_path, start=start, end=end)
        for start, end in zip(boundaries[:-1], boundaries[1:])
        if end > start
    ]
