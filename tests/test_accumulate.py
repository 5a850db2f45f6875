import itertools
from collections import Counter, defaultdict

import pytest

from markov_chain.errors import SourceError

from .adapters import run_accumulate, run_filtered_tokens, run_merge


def test_alternating_stream():
    table = run_accumulate(["a", "b", "a", "b"])
    assert {token: dict(counts) for token, counts in table.items()} == {
        "": {"a": 1},
        "a": {"b": 2},
        "b": {"a": 1, "": 1},
    }


def test_totals_count_every_successor():
    tokens = ["x", "y", "x", "x", "z", "y"]
    table = run_accumulate(tokens)
    followers = Counter(tokens)
    for token, counts in table.items():
        if token == "":
            assert sum(counts.values()) == 1
        else:
            # every occurrence is followed by something, the last one by the sentinel
            assert sum(counts.values()) == followers[token]


def test_empty_token_is_a_break_in_the_stream():
    table = run_accumulate(["a", "", "a"])
    assert {token: dict(counts) for token, counts in table.items()} == {
        "": {"a": 2},
        "a": {"": 2},
    }


def test_blank_line_after_trim_separates_paragraphs():
    table = run_accumulate(run_filtered_tokens(["one", "   ", "two"], ["trim"]))
    assert dict(table["one"]) == {"": 1}
    assert dict(table[""]) == {"one": 1, "two": 1}


def test_empty_stream_only_records_sentinel():
    table = run_accumulate([])
    assert {token: dict(counts) for token, counts in table.items()} == {"": {"": 1}}


def test_non_string_token_fails_the_stream():
    with pytest.raises(SourceError, match="tokens must be str"):
        run_accumulate(["a", 3])


def test_merge_is_order_independent():
    tables = [
        run_accumulate(["a", "b", "a"]),
        run_accumulate(["b", "b", "c"]),
        run_accumulate(["c", "a"]),
    ]
    expected = run_merge(*tables)
    for ordering in itertools.permutations(tables):
        assert run_merge(*ordering) == expected
    # grouping does not matter either
    first_two = defaultdict(Counter, {k: Counter(v) for k, v in run_merge(tables[0], tables[1]).items()})
    assert run_merge(first_two, tables[2]) == expected


def test_merge_with_empty_table_is_identity():
    table = run_accumulate(["a", "b", "a", "b"])
    assert run_merge(table, defaultdict(Counter)) == run_merge(table)


def test_merge_of_nothing_is_empty():
    assert run_merge() == {}


def test_merge_sums_counts():
    merged = run_merge(run_accumulate(["a", "b"]), run_accumulate(["a", "b"]))
    assert merged == {"": {"a": 2}, "a": {"b": 2}, "b": {"": 2}}
