# core/client/import_queue.py
"""Client-held import queue.

The queue lives with the caller, not the server: it accumulates resolved
candidates, validates the batch, submits it in one request and drives the
retry/backoff loop. Nothing about it is persisted until a submission succeeds.
"""
import logging
import threading
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Iterable, List, Optional, Set

import requests

from core.client.backoff import Backoff
from core.errors import (
    ConflictError, NetworkError, PartialFailureError, ShelfError,
    UnknownError, ValidationError,
)
from core.models.book import BookData, CandidateRecord
from core.services.importer import ImportOutcome, validate_batch

logger = logging.getLogger(__name__)

MAX_RETRIES = 3
INITIAL_BACKOFF = 1.0  # seconds

Submitter = Callable[[List[BookData]], ImportOutcome]


class QueueState(str, Enum):
    IDLE = "idle"
    VALIDATING = "validating"
    SUBMITTING = "submitting"
    SUCCESS = "success"
    PARTIAL_FAILURE = "partial_failure"
    RETRYING = "retrying"
    FAILED = "failed"


class FailureKind(str, Enum):
    PARTIAL = "partial"
    COMPLETE = "complete"
    VALIDATION = "validation"  # includes duplicate-only outcomes
    NETWORK = "network"
    UNKNOWN = "unknown"

    @property
    def auto_retry(self) -> bool:
        return self in (FailureKind.PARTIAL, FailureKind.COMPLETE, FailureKind.NETWORK)

    @property
    def label(self) -> str:
        return {
            FailureKind.PARTIAL: "Partial Import Failure",
            FailureKind.COMPLETE: "Import Failed",
            FailureKind.VALIDATION: "Validation Error",
            FailureKind.NETWORK: "Network Error",
        }.get(self, "Error")


@dataclass
class CommitResult:
    state: QueueState
    total: int = 0
    created: int = 0
    duplicates: int = 0
    failed: int = 0
    attempts: int = 0
    failure_kind: Optional[FailureKind] = None
    error: Optional[ShelfError] = None
    created_isbn13s: List[str] = field(default_factory=list)
    requires_manual_retry: bool = False
    cancelled: bool = False

    @property
    def success(self) -> bool:
        return self.state == QueueState.SUCCESS

    def describe(self) -> str:
        """One-line summary naming the failure category and counts"""
        if self.success:
            message = f"Imported {self.created} book(s)"
            if self.duplicates:
                message += f", skipped {self.duplicates} already in the library"
            return message
        if self.cancelled:
            return "Import cancelled"
        kind = self.failure_kind or FailureKind.UNKNOWN
        text = self.error.message if self.error else ""
        if isinstance(self.error, UnknownError):
            text = self.error.public_message
        message = f"{kind.label}: {text}"
        if self.requires_manual_retry:
            message += ". Maximum retry attempts reached."
        if kind not in (FailureKind.VALIDATION,) and self.total:
            message += f" (Successfully imported: {self.created} | Failed: {self.total - self.created - self.duplicates})"
        return message


class ImportQueue:
    """Accumulates candidate records and commits them with retry/backoff.

    States move Idle -> Validating -> Submitting -> (Success | PartialFailure |
    Retrying | Failed). ``cancel()`` may be called from another thread; it
    interrupts a pending backoff wait and makes the result of an in-flight
    submission be discarded.
    """

    def __init__(self, submit: Submitter, backoff: Optional[Backoff] = None,
                 on_state_change: Optional[Callable[[QueueState], None]] = None):
        self.submit = submit
        self.backoff = backoff or Backoff(INITIAL_BACKOFF, 2.0, MAX_RETRIES)
        self.on_state_change = on_state_change
        self.state = QueueState.IDLE
        self.retry_count = 0
        self.last_result: Optional[CommitResult] = None
        self._items: List[CandidateRecord] = []
        self._succeeded: Set[str] = set()
        self._generation = 0
        self._lock = threading.Lock()

    @property
    def items(self) -> List[CandidateRecord]:
        return list(self._items)

    def __len__(self) -> int:
        return len(self._items)

    def add(self, candidate: CandidateRecord) -> int:
        """Queue a candidate and return its index"""
        self._items.append(candidate)
        return len(self._items) - 1

    def remove(self, index: int) -> CandidateRecord:
        if index < 0 or index >= len(self._items):
            raise ValidationError(f"No queued book at position {index}")
        return self._items.pop(index)

    def clear(self) -> None:
        self._items = []
        self._succeeded = set()

    def commit(self, batch: Optional[Iterable[BookData]] = None) -> CommitResult:
        """Validate and submit ``batch`` (the queued items by default).

        Retryable failures are re-submitted automatically, with the same full
        batch, after 1s, 2s and 4s. After that a manual ``retry()`` is needed.
        Counts in the result cover every attempt of this commit.
        """
        rows = list(batch) if batch is not None else self.items
        self._succeeded = set()
        return self._run(rows, from_queue=batch is None)

    def retry(self) -> CommitResult:
        """Manual retry of the whole queue with a fresh retry budget.

        Books imported by earlier attempts of the same commit still count as
        imported when the server reports them as duplicates this time.
        """
        return self._run(self.items, from_queue=True)

    def drop_succeeded(self, isbn13s: Optional[Iterable[str]] = None) -> int:
        """Remove entries believed to be already imported.

        Args:
            isbn13s: ISBN-13s to drop. Defaults to every book imported since
                     the last commit() started, across all attempts.

        Returns:
            Number of entries removed
        """
        if isbn13s is None:
            isbn13s = set(self._succeeded)
        done = set(isbn13s)
        before = len(self._items)
        self._items = [item for item in self._items if item.isbn13 not in done]
        return before - len(self._items)

    def cancel(self) -> None:
        """Stop retrying and ignore any response still in flight"""
        with self._lock:
            self._generation += 1
        self.backoff.cancel()
        if self.state in (QueueState.SUBMITTING, QueueState.RETRYING, QueueState.VALIDATING):
            self._set_state(QueueState.IDLE)

    def _set_state(self, state: QueueState) -> None:
        self.state = state
        if self.on_state_change:
            self.on_state_change(state)

    def _run(self, rows: List[BookData], from_queue: bool) -> CommitResult:
        with self._lock:
            generation = self._generation
        self.backoff.reset()
        self.retry_count = 0

        self._set_state(QueueState.VALIDATING)
        try:
            validate_batch(rows)
        except ValidationError as e:
            return self._finish(CommitResult(
                state=QueueState.FAILED, total=len(rows),
                failure_kind=FailureKind.VALIDATION, error=e,
            ))

        attempt = 0
        while True:
            self._set_state(QueueState.SUBMITTING)
            result = self._submit_once(rows)
            result.attempts = attempt + 1

            if self._generation != generation:
                logger.info("Discarding import response received after cancellation")
                return CommitResult(state=QueueState.IDLE, total=len(rows), cancelled=True)

            if result.success:
                if from_queue:
                    self.clear()
                else:
                    self._succeeded = set()
                self.retry_count = 0
                return self._finish(result)

            kind = result.failure_kind
            if not kind.auto_retry:
                result.state = QueueState.FAILED
                return self._finish(result)

            if not self.backoff.can_retry(attempt):
                result.requires_manual_retry = True
                result.state = QueueState.PARTIAL_FAILURE if kind == FailureKind.PARTIAL else QueueState.FAILED
                self.retry_count = 0
                return self._finish(result)

            delay = self.backoff.delay_for(attempt)
            self.retry_count = attempt + 1
            logger.warning(
                f"{result.describe()}. Retrying in {delay:g}s... "
                f"(Attempt {self.retry_count}/{self.backoff.max_attempts})"
            )
            self._set_state(QueueState.RETRYING)
            if not self.backoff.wait(attempt) or self._generation != generation:
                return CommitResult(state=QueueState.IDLE, total=len(rows), cancelled=True)
            attempt += 1

    def _finish(self, result: CommitResult) -> CommitResult:
        self.last_result = result
        self._set_state(result.state)
        return result

    def _submit_once(self, rows: List[BookData]) -> CommitResult:
        total = len(rows)
        payload = [BookData.model_validate(row.to_book_data()) for row in rows]
        done = self._done(rows)
        try:
            outcome = self.submit(payload)
        except (ValidationError, ConflictError) as e:
            return CommitResult(state=QueueState.FAILED, total=total, failure_kind=FailureKind.VALIDATION, error=e,
                                created=len(done), created_isbn13s=done)
        except ShelfError as e:
            if e.category in ("network", "timeout"):
                kind = FailureKind.NETWORK
            else:
                kind = FailureKind.COMPLETE if e.retryable else FailureKind.UNKNOWN
            return CommitResult(state=QueueState.FAILED, total=total, failure_kind=kind, error=e,
                                created=len(done), created_isbn13s=done)
        except (requests.RequestException, ConnectionError, TimeoutError) as e:
            return CommitResult(
                state=QueueState.FAILED, total=total,
                failure_kind=FailureKind.NETWORK, error=NetworkError(str(e)),
                created=len(done), created_isbn13s=done,
            )
        except Exception as e:
            logger.exception("Import submission failed unexpectedly")
            return CommitResult(state=QueueState.FAILED, total=total, failure_kind=FailureKind.COMPLETE,
                                error=UnknownError(str(e)), created=len(done), created_isbn13s=done)

        return classify_outcome(self._reconcile(outcome, rows))

    def _done(self, rows: List[BookData]) -> List[str]:
        """ISBN-13s of ``rows`` imported so far, in batch order"""
        done, seen = [], set()
        for row in rows:
            if row.isbn13 in self._succeeded and row.isbn13 not in seen:
                seen.add(row.isbn13)
                done.append(row.isbn13)
        return done

    def _reconcile(self, outcome: ImportOutcome, rows: List[BookData]) -> ImportOutcome:
        """Fold one attempt into what the current commit has achieved.

        Every attempt resubmits the full batch, so a book created by an
        earlier attempt comes back as a duplicate. It is counted as imported.
        """
        recovered = []
        for isbn13 in outcome.duplicate_isbn13s:
            if isbn13 in self._succeeded and isbn13 not in recovered:
                recovered.append(isbn13)
        self._succeeded.update(outcome.created_isbn13s)

        duplicates = list(outcome.duplicate_isbn13s)
        for isbn13 in recovered:
            duplicates.remove(isbn13)
        done = self._done(rows)
        return outcome.model_copy(update={
            "created": outcome.created + len(recovered),
            "duplicates": len(duplicates),
            "created_isbn13s": done,
            "duplicate_isbn13s": duplicates,
        })


def classify_outcome(outcome: ImportOutcome) -> CommitResult:
    """Turn a server outcome into a CommitResult.

    Duplicate rows are expected and skipped; they only count as a failure
    when nothing at all was created.
    """
    result = CommitResult(
        state=QueueState.SUCCESS,
        total=outcome.total,
        created=outcome.created,
        duplicates=outcome.duplicates,
        failed=outcome.failed,
        created_isbn13s=list(outcome.created_isbn13s),
    )
    if outcome.failed == 0 and outcome.created > 0:
        return result

    result.state = QueueState.FAILED
    text = (outcome.error or "").lower()
    if outcome.created == 0 and (outcome.failed == 0 or any(w in text for w in ("duplicate", "unique", "constraint"))):
        result.failure_kind = FailureKind.VALIDATION
        result.error = ConflictError(outcome.error or "All books already exist in this library")
    elif any(w in text for w in ("network", "timeout", "timed out", "connection")):
        result.failure_kind = FailureKind.NETWORK
        result.error = NetworkError(outcome.error)
    elif 0 < outcome.created < outcome.total:
        result.state = QueueState.PARTIAL_FAILURE
        result.failure_kind = FailureKind.PARTIAL
        result.error = PartialFailureError(
            f"{outcome.created} of {outcome.total} book(s) imported, {outcome.failed} failed",
            succeeded=outcome.created,
            failed=outcome.failed,
        )
    else:
        result.failure_kind = FailureKind.COMPLETE
        result.error = UnknownError(outcome.error or "Import failed")
    return result
