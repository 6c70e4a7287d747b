"""
Batch service - bounded, all-settle execution of import rows.

Rows are split into fixed-size chunks. Rows of one chunk run concurrently
on a thread pool and every row settles (success or RowFailure) before the
next chunk starts, so at most ``chunk_size`` storage operations are in
flight and progress only grows. Cancellation is honoured between chunks.
"""
import enum
import logging
import threading
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Any, Callable, Iterable, List, Optional, Sequence, Tuple, Union

from dealerdesk.exceptions import RowFailure

logger = logging.getLogger(__name__)

DEFAULT_CHUNK_SIZE = 50


class ImportChange(str, enum.Enum):
    """Reporting buckets for one import row."""
    NEW = 'new'
    PRICE_UPDATED = 'priceUpdated'
    STOCK_UPDATED = 'stockUpdated'
    NO_CHANGE = 'noChange'


@dataclass(frozen=True)
class RowOutcome:
    """Successful import row. A new row never also carries price/stock changes."""
    code: str
    changes: frozenset = frozenset()

    @property
    def ok(self) -> bool:
        return True

    @property
    def is_new(self) -> bool:
        return ImportChange.NEW in self.changes

    @property
    def primary(self) -> ImportChange:
        for change in (ImportChange.NEW, ImportChange.PRICE_UPDATED, ImportChange.STOCK_UPDATED):
            if change in self.changes:
                return change
        return ImportChange.NO_CHANGE


RowResult = Union[RowOutcome, RowFailure]


@dataclass(frozen=True)
class ImportProgress:
    processed: int
    total: int

    def to_dict(self):
        return {'processed': self.processed, 'total': self.total}


@dataclass
class ImportSummary:
    new_items: List[str] = field(default_factory=list)
    prices_updated: List[str] = field(default_factory=list)
    stock_updated: List[str] = field(default_factory=list)
    errors: int = 0
    cancelled: bool = False
    results: List[RowResult] = field(default_factory=list, repr=False)

    @classmethod
    def from_results(cls, results: Sequence[RowResult], cancelled: bool = False) -> 'ImportSummary':
        summary = cls(cancelled=cancelled, results=list(results))
        for result in results:
            if not result.ok:
                summary.errors += 1
                continue
            if result.is_new:
                summary.new_items.append(result.code)
                continue
            if ImportChange.PRICE_UPDATED in result.changes:
                summary.prices_updated.append(result.code)
            if ImportChange.STOCK_UPDATED in result.changes:
                summary.stock_updated.append(result.code)
        return summary

    @property
    def processed(self) -> int:
        return len(self.results)

    def to_dict(self):
        return {
            'new_items': list(self.new_items),
            'prices_updated': list(self.prices_updated),
            'stock_updated': list(self.stock_updated),
            'errors': self.errors,
            'cancelled': self.cancelled,
        }


def chunked(rows: Sequence, size: int) -> List[Sequence]:
    """Split ``rows`` into consecutive slices of at most ``size`` items."""
    if size < 1:
        raise ValueError('chunk size must be at least 1')
    return [rows[i:i + size] for i in range(0, len(rows), size)]


def _row_code(row) -> Optional[str]:
    return getattr(row, 'code', None)


class BatchExecutor:
    """
    Drive a per-row ``worker`` over a row set in sequential chunks.

    Args:
        worker: callable(row) -> RowOutcome. Exceptions it raises are
            converted into RowFailure and never cancel sibling rows.
        chunk_size: rows per chunk (also the concurrency cap)
        max_workers: thread pool size, defaults to ``chunk_size``
        key: callable(row) -> hashable. Rows of one chunk sharing a key run
            one after another, in input order, inside a single task.
    """

    def __init__(
        self,
        worker: Callable[[Any], RowOutcome],
        chunk_size: int = DEFAULT_CHUNK_SIZE,
        max_workers: Optional[int] = None,
        key: Optional[Callable[[Any], Any]] = _row_code,
    ):
        if chunk_size < 1:
            raise ValueError('chunk size must be at least 1')
        self.worker = worker
        self.chunk_size = chunk_size
        self.max_workers = max(1, min(max_workers or chunk_size, chunk_size))
        self.key = key

    def run(
        self,
        rows: Iterable,
        on_progress: Optional[Callable[[ImportProgress], None]] = None,
        cancel_event: Optional[threading.Event] = None,
    ) -> ImportSummary:
        rows = list(rows)
        total = len(rows)
        results: List[RowResult] = []
        processed = 0
        cancelled = False

        with ThreadPoolExecutor(max_workers=self.max_workers, thread_name_prefix='import') as pool:
            for chunk in chunked(rows, self.chunk_size):
                if cancel_event is not None and cancel_event.is_set():
                    cancelled = True
                    logger.info(f"Import cancelled after {processed}/{total} rows")
                    break

                results.extend(self._run_chunk(pool, chunk))
                processed += len(chunk)

                if on_progress is not None:
                    on_progress(ImportProgress(processed=processed, total=total))

        return ImportSummary.from_results(results, cancelled=cancelled)

    def _run_chunk(self, pool: ThreadPoolExecutor, chunk: Sequence) -> List[RowResult]:
        groups = {}
        for index, row in enumerate(chunk):
            group_key = self.key(row) if self.key else None
            if group_key is None:
                group_key = ('__row__', index)
            groups.setdefault(group_key, []).append((index, row))

        futures = [pool.submit(self._run_group, group) for group in groups.values()]

        settled: List[Tuple[int, RowResult]] = []
        for future in futures:
            # _run_group never raises; result() only waits
            settled.extend(future.result())

        settled.sort(key=lambda pair: pair[0])
        return [result for _, result in settled]

    def _run_group(self, group) -> List[Tuple[int, RowResult]]:
        return [(index, self._settle(row)) for index, row in group]

    def _settle(self, row) -> RowResult:
        try:
            result = self.worker(row)
        except Exception as e:
            logger.warning(f"Import row {_row_code(row)!r} failed: {e}")
            return RowFailure(code=_row_code(row), error=e)
        return result
