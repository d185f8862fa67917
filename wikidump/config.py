"""
Run configuration for dump extraction.
"""
from dataclasses import dataclass, asdict, field
from multiprocessing import cpu_count
from pathlib import Path
from typing import Literal, Tuple
import json

from wikidump.pages import DEFAULT_CHUNK_SIZE

DEFAULT_QUEUE_SIZE = 4 * 1024
DEFAULT_STATUS_INTERVAL = 30.0
BACKENDS = ('process', 'thread')


def default_worker_count() -> int:
    return max(1, cpu_count() - 1)


@dataclass
class ExtractorConfig:
    """
    Everything the pipeline needs to know about a run.

    Attributes:
        workers: Number of normalization workers
        categories: Category terms; an article is kept if a category contains one
        transclusions: Transclusion terms, checked after categories
        queue_size: Maximum number of articles waiting for a worker before the
                    reader blocks
        chunk_size: Bytes read from the dump per read call
        status_interval: Minimum seconds between progress reports
        ordered: Emit articles in dump order instead of completion order
        backend: 'process' for worker processes, 'thread' for worker threads
    """

    workers: int = field(default_factory=default_worker_count)
    categories: Tuple[str, ...] = ()
    transclusions: Tuple[str, ...] = ()
    queue_size: int = DEFAULT_QUEUE_SIZE
    chunk_size: int = DEFAULT_CHUNK_SIZE
    status_interval: float = DEFAULT_STATUS_INTERVAL
    ordered: bool = False
    backend: Literal['process', 'thread'] = 'process'

    def __post_init__(self):
        """Validate configuration after initialization."""
        self.categories = tuple(self.categories)
        self.transclusions = tuple(self.transclusions)

        if self.workers < 1:
            raise ValueError(f"workers must be at least 1, got {self.workers}")
        if self.queue_size < 1:
            raise ValueError(f"queue_size must be at least 1, got {self.queue_size}")
        if self.chunk_size < 1:
            raise ValueError(f"chunk_size must be at least 1, got {self.chunk_size}")
        if self.status_interval < 0:
            raise ValueError(f"status_interval cannot be negative, got {self.status_interval}")
        if self.backend not in BACKENDS:
            raise ValueError(f"backend must be one of {BACKENDS}, got {self.backend!r}")

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        data = asdict(self)
        data['categories'] = list(self.categories)
        data['transclusions'] = list(self.transclusions)
        return data

    @classmethod
    def from_dict(cls, data: dict) -> 'ExtractorConfig':
        """Create from dictionary."""
        return cls(**data)

    def save(self, path: Path) -> None:
        """Save configuration to JSON file."""
        with open(path, 'w') as f:
            json.dump(self.to_dict(), f, indent=2)

    @classmethod
    def load(cls, path: Path) -> 'ExtractorConfig':
        """Load configuration from JSON file."""
        with open(path, 'r') as f:
            data = json.load(f)
        return cls.from_dict(data)
