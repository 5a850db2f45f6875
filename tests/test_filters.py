import pickle

import pytest

from markov_chain.errors import FilterError
from markov_chain.filters import FunctionFilter, SplitFilter, apply_filters, make_filtered_sources

from .adapters import run_filtered_tokens, run_substitute


def test_trim_then_lowercase():
    assert run_filtered_tokens(["  Foo  ", "BAR"], ["trim", "lower"]) == ["foo", "bar"]


def test_prefix_single_pass_and_iterating():
    assert run_filtered_tokens(["###tag", "plain"], ["strip#"]) == ["##tag", "plain"]
    assert run_filtered_tokens(["###tag", "plain", "###"], ["strip#*"]) == ["tag", "plain", ""]


def test_substitution_only_replaces_exact_matches():
    assert run_substitute(["dont", "dont!", "x"], {"dont": "don't"}) == ["don't", "dont!", "x"]


def test_split_expands_in_order_before_next_candidate():
    assert run_filtered_tokens(["Hello, world", "again"], ["split", "lower"]) == [
        "hello", ",", "world", "again"]


def test_empty_expansion_drops_candidate():
    drop_stopwords = FunctionFilter(lambda token: [] if token in {"a", "the"} else [token])
    assert list(apply_filters(["the", "cat", "a", "hat"], drop_stopwords)) == ["cat", "hat"]


def test_filter_exception_becomes_filter_error():
    def explode(token):
        raise ValueError("bad token")

    with pytest.raises(FilterError, match="bad token") as excinfo:
        list(apply_filters(["x"], FunctionFilter(explode)))
    assert isinstance(excinfo.value.__cause__, ValueError)
    assert excinfo.value.stream_index is None


def test_one_filter_over_many_sources():
    sources = make_filtered_sources(FunctionFilter(lambda t: [t.upper()]), ["a"], ["b", "c"])
    assert [list(source) for source in sources] == [["A"], ["B", "C"]]


def test_split_filter_survives_pickling():
    restored = pickle.loads(pickle.dumps(SplitFilter()))
    assert restored.filter_token("one two") == ["one", "two"]
