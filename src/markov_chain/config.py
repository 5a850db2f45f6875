from dataclasses import dataclass

BACKENDS = ("serial", "thread", "process")


@dataclass
class BuildConfig:
    """Options for building a chain from several token streams."""

    num_workers: int | None = None
    show_progress: bool = False
    # 'serial', 'thread' or 'process'
    backend: str = "thread"

    def __post_init__(self) -> None:
        if self.num_workers is not None and self.num_workers < 1:
            raise ValueError("num_workers must be at least 1")
        if self.backend not in BACKENDS:
            raise ValueError(f"Unknown backend {self.backend!r}, expected one of {BACKENDS}")

    def pool_size(self, num_streams: int, cpu_count: int | None = None) -> int:
        """
        Number of pool workers for ``num_streams`` streams.

        Without an explicit ``num_workers`` every stream gets its own worker, unless
        ``cpu_count`` caps it. Only process pools pass a cap.
        """
        if self.num_workers is not None:
            return self.num_workers
        if cpu_count is None:
            return max(1, num_streams)
        return max(1, min(num_streams, cpu_count))
