"""
Streaming MediaWiki dump to plain-text extraction.

Pages are read from the dump with bounded memory, filtered by category and
transclusion terms, and normalized to plain text by a pool of workers.
"""

from .protocols import ArticleRecord, ProgressReporter, ProgressSnapshot
from .links import resolve_link, resolve_external_link
from .extract import process_wikitext
from .filters import ArticleFilter
from .pages import PageExtractor, open_dump, dump_size
from .config import ExtractorConfig
from .pipeline import DumpPipeline, PipelineState, PipelineStats, TextSink, run_dump
from .progress import LoggingProgressReporter

__all__ = [
    # Records and protocols
    "ArticleRecord",
    "ProgressReporter",
    "ProgressSnapshot",
    # Text normalization
    "resolve_link",
    "resolve_external_link",
    "process_wikitext",
    # Reading and filtering
    "ArticleFilter",
    "PageExtractor",
    "open_dump",
    "dump_size",
    # Pipeline
    "ExtractorConfig",
    "DumpPipeline",
    "PipelineState",
    "PipelineStats",
    "TextSink",
    "run_dump",
    "LoggingProgressReporter",
]
