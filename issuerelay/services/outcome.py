"""Per-event outcome: which remote sub-operations succeeded, failed, or were skipped"""

import enum
import logging
from dataclasses import dataclass, field
from typing import Any, Callable, List, Optional, Tuple

from issuerelay.services.errors import StorageError, TrackerAPIError

logger = logging.getLogger(__name__)


class SyncOutcome(str, enum.Enum):
    """Terminal state of one inbound webhook"""

    SUCCESS = "success"
    PARTIAL = "partial"
    NOOP = "noop"
    CONFLICT = "conflict"
    UNPROCESSABLE = "unprocessable"
    NOT_FOUND = "not_found"
    BAD_REQUEST = "bad_request"


HTTP_STATUS = {
    SyncOutcome.SUCCESS: 202,
    SyncOutcome.PARTIAL: 202,
    SyncOutcome.NOOP: 202,
    SyncOutcome.CONFLICT: 409,
    SyncOutcome.UNPROCESSABLE: 422,
    SyncOutcome.NOT_FOUND: 404,
    SyncOutcome.BAD_REQUEST: 400,
}


def outcome_for_error(exc: Exception) -> SyncOutcome:
    """Outcome of a request that failed with ``exc``."""
    if isinstance(exc, TrackerAPIError) and exc.status_code == 404:
        return SyncOutcome.NOT_FOUND
    return SyncOutcome.BAD_REQUEST


@dataclass
class SyncResult:
    """Typed record of one event's processing.

    Sub-operations run through ``attempt``: a failure is logged and recorded
    and the remaining sub-operations still run. Storage errors are never
    absorbed.
    """

    action: str
    outcome: Optional[SyncOutcome] = None
    succeeded: List[str] = field(default_factory=list)
    failed: List[Tuple[str, str]] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)
    detail: Optional[str] = None
    _last_error: Optional[Exception] = field(default=None, repr=False)

    @classmethod
    def terminal(cls, action: str, outcome: SyncOutcome, detail: str) -> "SyncResult":
        return cls(action=action, outcome=outcome, detail=detail)

    def attempt(self, name: str, operation: Callable[[], Any]) -> Any:
        try:
            value = operation()
        except StorageError:
            raise
        except Exception as e:
            logger.error(f"[{self.action}] {name} failed: {e}")
            self.failed.append((name, str(e)))
            self._last_error = e
            return None
        self.succeeded.append(name)
        return value

    def warn(self, message: str) -> None:
        logger.warning(f"[{self.action}] {message}")
        self.warnings.append(message)

    def finish(self) -> "SyncResult":
        """Settle the outcome; re-raises the last error when every remote call failed."""
        if self.outcome is not None:
            return self
        if self.failed and not self.succeeded:
            raise self._last_error
        if self.failed or self.warnings:
            self.outcome = SyncOutcome.PARTIAL
        elif self.succeeded:
            self.outcome = SyncOutcome.SUCCESS
        else:
            self.outcome = SyncOutcome.NOOP
        return self

    @property
    def status_code(self) -> int:
        return HTTP_STATUS[self.outcome or SyncOutcome.NOOP]

    def as_dict(self) -> dict:
        return {
            "status": (self.outcome or SyncOutcome.NOOP).value,
            "action": self.action,
            "succeeded": list(self.succeeded),
            "failed": [{"operation": name, "error": error} for name, error in self.failed],
            "warnings": list(self.warnings),
            "detail": self.detail,
        }
