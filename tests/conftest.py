import pytest


class FailingSource:
    """Yields ``tokens`` and then raises, like a reader hitting an I/O error mid-stream."""

    def __init__(self, tokens, exc=None):
        self.tokens = list(tokens)
        self.exc = exc or OSError("disk went away")

    def __iter__(self):
        yield from self.tokens
        raise self.exc


@pytest.fixture
def failing_source():
    return FailingSource


@pytest.fixture
def corpus_files(tmp_path):
    first = tmp_path / "first.txt"
    first.write_text("the cat\nsat\n\nthe cat\n", encoding="utf-8")
    second = tmp_path / "second.txt"
    second.write_text("the dog ran\n", encoding="utf-8")
    return first, second
