"""
Human-readable progress reporting for dump extraction runs.
"""
import logging
import time
from typing import Optional

from tqdm import tqdm

from wikidump.protocols import ProgressSnapshot

logger = logging.getLogger(__name__)

UNKNOWN = "unknown"


def format_percent(ratio: Optional[float]) -> str:
    return UNKNOWN if ratio is None else f"{100 * ratio:.2f}%"


def format_eta(seconds: Optional[float]) -> str:
    return UNKNOWN if seconds is None else f"{int(seconds // 60)} minutes"


def format_rate(bytes_per_second: Optional[float]) -> str:
    return UNKNOWN if bytes_per_second is None else f"{bytes_per_second / 1024 / 1024:.0f} MB/s"


def kept_line(snapshot: ProgressSnapshot) -> str:
    return (f"Kept {snapshot.total_kept} out of {snapshot.total_seen} articles "
            f"({format_percent(snapshot.kept_ratio)})")


def overall_line(snapshot: ProgressSnapshot) -> str:
    return (f"Overall Progress: {format_percent(snapshot.progress_ratio)} "
            f"(ETA {format_eta(snapshot.eta_seconds)} @ {format_rate(snapshot.bytes_per_second)}); "
            f"Current Article: {snapshot.current_title}")


class LoggingProgressReporter:
    """
    Logs kept/seen counts, overall progress, throughput and ETA, and keeps a
    tqdm bar of bytes read from the dump.

    Figures that cannot be computed yet (nothing seen, no elapsed time,
    unknown dump size) are logged as "unknown".
    """

    def __init__(self, bytes_total: Optional[int] = None, show_progress: bool = True,
                 description: str = "Reading dump"):
        """
        Args:
            bytes_total: Size of the dump, if known
            show_progress: Show a tqdm progress bar on stderr
            description: Label of the progress bar
        """
        self.progress_bar = tqdm(
            total=bytes_total,
            desc=description,
            unit="B",
            unit_scale=True,
            disable=not show_progress,
        )
        self.reports = 0

    def _advance(self, snapshot: ProgressSnapshot) -> None:
        delta = snapshot.bytes_consumed - self.progress_bar.n
        if delta > 0:
            self.progress_bar.update(delta)
        self.progress_bar.set_postfix(kept=snapshot.total_kept, seen=snapshot.total_seen)

    def report(self, snapshot: ProgressSnapshot) -> None:
        self.reports += 1
        self._advance(snapshot)
        stamp = time.strftime("%a %b %d %H:%M:%S %Y")
        logger.info(f"[{stamp}] {kept_line(snapshot)}")
        logger.info(f"    {overall_line(snapshot)}")

    def finish(self, snapshot: ProgressSnapshot) -> None:
        self._advance(snapshot)
        self.close()
        stamp = time.strftime("%a %b %d %H:%M:%S %Y")
        logger.info(f"[{stamp}] {kept_line(snapshot)}")
        rate = snapshot.total_kept / snapshot.elapsed if snapshot.elapsed > 0 else 0
        logger.info(f"Finished in {snapshot.elapsed:.2f}s ({rate:.2f} art/s)")

    def close(self) -> None:
        """Closes the progress bar; safe to call more than once."""
        self.progress_bar.close()
