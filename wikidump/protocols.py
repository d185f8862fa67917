"""
Core records and protocols shared by the dump extraction components.
"""
import math
import time
from dataclasses import dataclass, field
from typing import Optional, Protocol


@dataclass(frozen=True)
class ArticleRecord:
    """One structurally valid <page> from the dump."""
    title: str
    namespace: int
    is_redirect: bool
    text: bytes              # Raw <text> payload, still XML-escaped UTF-8

    @property
    def is_article(self) -> bool:
        """Main-namespace, non-redirect pages are the only filtering candidates."""
        return self.namespace == 0 and not self.is_redirect


@dataclass(frozen=True)
class ProgressSnapshot:
    """
    A copy of the coordinator's counters at one point in time.

    Every derived figure returns None when its denominator is zero or unknown,
    so reporters can print "unknown" instead of failing.
    """
    total_seen: int
    total_kept: int
    bytes_consumed: int
    bytes_total: Optional[int]
    started_at: float
    current_title: str = ""
    taken_at: float = field(default_factory=time.time)

    @property
    def elapsed(self) -> float:
        return max(0.0, self.taken_at - self.started_at)

    @property
    def kept_ratio(self) -> Optional[float]:
        if self.total_seen <= 0:
            return None
        return self.total_kept / self.total_seen

    @property
    def progress_ratio(self) -> Optional[float]:
        if not self.bytes_total:
            return None
        return min(1.0, self.bytes_consumed / self.bytes_total)

    @property
    def bytes_per_second(self) -> Optional[float]:
        if self.elapsed <= 0:
            return None
        return self.bytes_consumed / self.elapsed

    @property
    def eta_seconds(self) -> Optional[float]:
        """
        Seconds left at the current throughput.

        Throughput drops after the first few minutes of a run, so the estimate
        is inflated by 1 + 1/sqrt(elapsed).
        """
        rate = self.bytes_per_second
        if not rate or not self.bytes_total:
            return None
        remaining = max(0, self.bytes_total - self.bytes_consumed)
        fudge = 1 + 1 / math.sqrt(self.elapsed)
        return remaining / rate * fudge


class ProgressReporter(Protocol):
    """Consumes periodic progress snapshots from the pipeline."""

    def report(self, snapshot: ProgressSnapshot) -> None:
        """Called at most once per status interval while the dump is read."""
        ...

    def finish(self, snapshot: ProgressSnapshot) -> None:
        """Called once with the final counters."""
        ...
