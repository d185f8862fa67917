"""
Producer / worker-pool pipeline that turns a dump stream into plain text.

The coordinating thread reads pages, filters them and feeds article bodies to
a bounded work queue; N workers normalize the bodies and publish the results
on an unbounded result queue, which the coordinating thread drains to the
sink after every dispatch.

Results come out in completion order, which differs from dump order whenever
one article takes longer than another. Set ``ordered`` in the config to
reassemble them in dump order instead.
"""
import enum
import logging
import multiprocessing as mp
import multiprocessing.dummy as mp_threads
import time
from dataclasses import dataclass
from queue import Empty
from typing import BinaryIO, Callable, Dict, List, Optional, TextIO

from wikidump.config import ExtractorConfig
from wikidump.extract import process_wikitext
from wikidump.filters import ArticleFilter
from wikidump.pages import PageExtractor, dump_size, open_dump, reads_stdin
from wikidump.protocols import ProgressReporter, ProgressSnapshot

logger = logging.getLogger(__name__)

# Sentinel put on the work queue once per worker when the dump is exhausted
END_OF_WORK = None

_JOIN_POLL_SECONDS = 0.1

Sink = Callable[[str], None]


class PipelineState(enum.Enum):
    IDLE = "idle"
    RUNNING = "running"
    DRAINING = "draining"
    DONE = "done"


@dataclass
class PipelineStats:
    """Final counters of a pipeline run."""
    total_seen: int = 0
    total_kept: int = 0
    total_written: int = 0
    total_failed: int = 0
    bytes_consumed: int = 0
    elapsed: float = 0.0


# ===========================================================================
# Worker Function
# ===========================================================================

def normalize_worker(worker_id: int, work_queue, result_queue) -> None:
    """
    A single worker's loop: take (seq, raw_text) items until the end-of-work
    sentinel arrives, publishing (seq, plain_text) for each.

    A failing article is logged and published as (seq, None) so the
    coordinator can still account for it.
    """
    logger.debug(f"Worker {worker_id} started")

    while True:
        item = work_queue.get()
        if item is END_OF_WORK:
            break

        seq, text = item
        try:
            result = process_wikitext(text)
        except Exception as e:
            logger.error(f"Worker {worker_id} failed to process article #{seq}: {e}")
            result = None
        result_queue.put((seq, result))

    logger.debug(f"Worker {worker_id} finished")

# ===========================================================================
# Sinks
# ===========================================================================

class TextSink:
    """Writes each article to a text stream, one record per article."""

    def __init__(self, stream: TextIO, separator: str = "\n"):
        self.stream = stream
        self.separator = separator

    def __call__(self, text: str) -> None:
        self.stream.write(text)
        self.stream.write(self.separator)


class ReorderBuffer:
    """Holds out-of-order results until every earlier sequence number has arrived."""

    def __init__(self):
        self.pending: Dict[int, Optional[str]] = {}
        self.next_seq = 0

    def push(self, seq: int, item: Optional[str]) -> List[Optional[str]]:
        """Stores one result and returns every result that is now in order."""
        self.pending[seq] = item
        ready = []
        while self.next_seq in self.pending:
            ready.append(self.pending.pop(self.next_seq))
            self.next_seq += 1
        return ready

    def __len__(self):
        return len(self.pending)

# ===========================================================================
# Coordinator
# ===========================================================================

class DumpPipeline:
    """
    Run-once coordinator: IDLE -> RUNNING -> DRAINING -> DONE.

    All counters are owned by the thread calling run(); workers only touch
    the two queues. Reporters receive frozen ProgressSnapshot copies.
    """

    def __init__(
        self,
        config: ExtractorConfig,
        sink: Sink,
        reporter: Optional[ProgressReporter] = None,
        article_filter: Optional[ArticleFilter] = None,
    ):
        """
        Args:
            config: Worker count, filter terms, queue size and other settings
            sink: Called with each plain-text article, from the calling thread
            reporter: Receives progress snapshots, at most once per status interval
            article_filter: Defaults to a filter built from the config's terms
        """
        self.config = config
        self.sink = sink
        self.reporter = reporter
        self.article_filter = article_filter or ArticleFilter(config.categories, config.transclusions)

        self.state = PipelineState.IDLE
        self.stats = PipelineStats()
        self.workers = []
        self.work_queue = None
        self.result_queue = None

        self._backend = mp if config.backend == 'process' else mp_threads
        self._reorder = ReorderBuffer() if config.ordered else None
        self._dispatched = 0
        self._received = 0
        self._bytes_total: Optional[int] = None
        self._started_at = 0.0
        self._last_status = 0.0
        self._current_title = ""

    def run(self, source: BinaryIO, bytes_total: Optional[int] = None) -> PipelineStats:
        """
        Processes the whole dump stream and returns the final counters.

        Raises:
            RuntimeError: If the pipeline has already been run, or a worker
                          died without finishing its articles
        """
        if self.state is not PipelineState.IDLE:
            raise RuntimeError(f"Pipeline is {self.state.value}; create a new one for each run")

        self._bytes_total = bytes_total
        self._started_at = time.time()
        self._last_status = time.monotonic()
        extractor = PageExtractor(source, self.config.chunk_size)

        self.article_filter.log_summary()
        self._start_workers()
        try:
            self._dispatch(extractor)
            self._close_and_wait()
            self._final_drain()
        except BaseException:
            self._abort()
            raise

        self.state = PipelineState.DONE
        self.stats.elapsed = time.time() - self._started_at
        if self.reporter is not None:
            self.reporter.finish(self.snapshot())
        return self.stats

    def snapshot(self) -> ProgressSnapshot:
        """Copies the current counters."""
        return ProgressSnapshot(
            total_seen=self.stats.total_seen,
            total_kept=self.stats.total_kept,
            bytes_consumed=self.stats.bytes_consumed,
            bytes_total=self._bytes_total,
            started_at=self._started_at,
            current_title=self._current_title,
        )

    # --- Idle -> Running ---

    def _start_workers(self) -> None:
        self.work_queue = self._backend.Queue(maxsize=self.config.queue_size)
        self.result_queue = self._backend.Queue()

        kind = "processes" if self.config.backend == 'process' else "threads"
        logger.info(f"Spawning {self.config.workers} worker {kind}")
        for worker_id in range(1, self.config.workers + 1):
            worker = self._backend.Process(
                target=normalize_worker,
                args=(worker_id, self.work_queue, self.result_queue),
                name=f"wikidump-worker-{worker_id}",
            )
            worker.daemon = True
            worker.start()
            self.workers.append(worker)

        self.state = PipelineState.RUNNING

    def _dispatch(self, extractor: PageExtractor) -> None:
        for record in extractor:
            self.stats.total_seen = extractor.pages_seen
            self.stats.bytes_consumed = extractor.bytes_consumed
            self._current_title = record.title

            # Skip special articles (lists, categories, help pages) and redirects
            if record.is_article and self.article_filter.keep(record.text):
                self.stats.total_kept += 1

                # Blocks while the work queue is full
                self.work_queue.put((self._dispatched, record.text))
                self._dispatched += 1

                self._drain()

            self._maybe_report()

        self.stats.bytes_consumed = extractor.bytes_consumed

    # --- Running -> Draining ---

    def _close_and_wait(self) -> None:
        self.state = PipelineState.DRAINING
        for _ in self.workers:
            self.work_queue.put(END_OF_WORK)

        # Worker processes cannot exit while results they queued are still
        # unread, so keep draining while waiting for them.
        for worker in self.workers:
            while worker.is_alive():
                self._drain()
                worker.join(timeout=_JOIN_POLL_SECONDS)

        crashed = [w.name for w in self.workers if w.exitcode not in (0, None)]
        if crashed:
            self._drain()
            raise RuntimeError(f"Workers exited abnormally: {', '.join(crashed)}")

    # --- Draining -> Done ---

    def _final_drain(self) -> None:
        while self._received < self._dispatched:
            seq, text = self.result_queue.get()
            self._deliver(seq, text)

        if self.config.backend == 'process':
            for q in (self.work_queue, self.result_queue):
                q.close()
                q.join_thread()

    # --- Result handling ---

    def _drain(self) -> None:
        """Delivers every result that is available right now, without blocking."""
        while True:
            try:
                seq, text = self.result_queue.get_nowait()
            except Empty:
                return
            self._deliver(seq, text)

    def _deliver(self, seq: int, text: Optional[str]) -> None:
        self._received += 1
        ready = self._reorder.push(seq, text) if self._reorder is not None else [text]
        for item in ready:
            if item is None:
                self.stats.total_failed += 1
                continue
            self.sink(item)
            self.stats.total_written += 1

    def _maybe_report(self) -> None:
        if self.reporter is None:
            return
        now = time.monotonic()
        if now - self._last_status >= self.config.status_interval:
            self.reporter.report(self.snapshot())
            self._last_status = now

    def _abort(self) -> None:
        logger.error("Pipeline aborted; stopping workers")
        if self.config.backend == 'process':
            for worker in self.workers:
                if worker.is_alive():
                    worker.terminate()
        self.state = PipelineState.DONE


def run_dump(
    path,
    config: ExtractorConfig,
    sink: Sink,
    reporter: Optional[ProgressReporter] = None,
) -> PipelineStats:
    """
    Opens a dump file and runs a pipeline over it.

    The dump is opened before any worker starts, so an unreadable file fails
    fast with OSError. Standard input is read but left open.
    """
    source = open_dump(path)
    try:
        pipeline = DumpPipeline(config, sink, reporter=reporter)
        stats = pipeline.run(source, bytes_total=dump_size(path))
    finally:
        if not reads_stdin(path):
            source.close()

    logger.info(f"Kept {stats.total_kept} out of {stats.total_seen} articles; "
                f"wrote {stats.total_written}, failed {stats.total_failed}")
    return stats
