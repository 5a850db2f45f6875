"""
Error types for chain construction and querying.
"""


class ChainBuildError(RuntimeError):
    """
    A single input stream failed, so the whole build fails.

    Constructed from positional arguments only, so instances survive the trip back from a
    worker process.

    Args:
        reason (str): Human readable description of the failure.
        stream_index (int | None): Position of the failing stream in the build call, if known yet.
    """

    def __init__(self, reason: str, stream_index: int | None = None) -> None:
        super().__init__(reason, stream_index)
        self.reason = reason
        self.stream_index = stream_index

    def attach_stream(self, stream_index: int) -> None:
        """
        Record which stream failed, keeping an index that was already set.
        """
        if self.stream_index is None:
            self.stream_index = stream_index
            self.args = (self.reason, stream_index)

    def __str__(self) -> str:
        if self.stream_index is None:
            return self.reason
        return f"stream {self.stream_index}: {self.reason}"


class SourceError(ChainBuildError):
    """
    A token source raised while producing tokens.
    """


class FilterError(ChainBuildError):
    """
    A token filter raised while expanding a candidate token.
    """


class ChainInvariantError(AssertionError):
    """
    Internal bookkeeping defect, such as a link total that disagrees with its occurrences.

    This is never raised for bad input and should be treated like a failed assertion.
    """
