"""Run layout on disk, run summary validation and writing, run ID generation."""

from enumcc.results.run_id import generate_run_id
from enumcc.results.store import RunStore
from enumcc.results.summary import (
    build_summary,
    load_summary,
    validate_summary,
    write_summary,
)

__all__ = [
    "RunStore",
    "build_summary",
    "generate_run_id",
    "load_summary",
    "validate_summary",
    "write_summary",
]
