"""
Run plan and pagination model.

Two independent ranges paginate a run:
- table range: positions in the resolved table list (resume a multi-table job)
- row range: rows within each table, reapplied fresh per table

Batch size only bounds how many rows are requested per gateway round-trip;
it never exceeds what is left of the row range.
"""

from dataclasses import dataclass
from typing import Iterator, Optional, Sequence, TypeVar

from searchreplace.selection import TableSelection
from searchreplace.substitution import ReplaceSpec, SearchSpec

T = TypeVar("T")

DEFAULT_OFFSET = 0
DEFAULT_LIMIT: Optional[int] = None
DEFAULT_BATCH_SIZE = 100


@dataclass(frozen=True)
class Range:
    """Offset/limit window; limit None means unbounded."""
    offset: int = DEFAULT_OFFSET
    limit: Optional[int] = DEFAULT_LIMIT

    def apply(self, items: Sequence[T]) -> list[T]:
        """Slice a sequence by this range."""
        end = None if self.limit is None else self.offset + self.limit
        return list(items[self.offset:end])


@dataclass(frozen=True)
class BatchWindow:
    """A single fetch request: rows [offset, offset + size)."""
    offset: int
    size: int


def iter_batch_windows(row_range: Range, batch_size: int) -> Iterator[BatchWindow]:
    """
    Yield fetch windows for one table.

    The caller stops iterating as soon as a batch comes back shorter than
    requested; with an unbounded row range this generator never ends on its
    own.

    Example:
        Range(5, 10) with batch_size 3 yields (5,3) (8,3) (11,3) (14,1)
    """
    if batch_size < 1:
        raise ValueError(f"batch_size must be positive, got {batch_size}")

    offset = row_range.offset
    remaining = row_range.limit
    while remaining is None or remaining > 0:
        size = batch_size if remaining is None else min(batch_size, remaining)
        yield BatchWindow(offset, size)
        offset += size
        if remaining is not None:
            remaining -= size


@dataclass(frozen=True)
class RunPlan:
    """
    Immutable snapshot of a SearchReplace configuration.

    Taken when execute() starts so a running job never observes later
    setter calls on the orchestrator.
    """
    search: SearchSpec
    replace: ReplaceSpec
    selection: TableSelection
    table_range: Range = Range()
    row_range: Range = Range()
    batch_size: int = DEFAULT_BATCH_SIZE
    dry_run: bool = False

    def worklist(self, all_tables: Sequence[str] = ()) -> list[str]:
        """Resolve the selection, then apply the table range."""
        return self.table_range.apply(self.selection.resolve(all_tables))
