"""Common shape of the two webhook routers"""

import logging
from typing import Any, Callable, Dict, Hashable, Optional, Tuple

from issuerelay.services.outcome import SyncOutcome, SyncResult

logger = logging.getLogger(__name__)

Handler = Callable[[Any], SyncResult]


class WebhookDispatcher:
    """Explicit dispatch table from (event kind, action) to handler.

    ``dispatch`` runs the echo screen first, then the handler for the event's
    key under a per-entity lock. Keys missing from the table are a no-op.
    """

    system = ""

    def __init__(self, ctx):
        self.ctx = ctx
        self.handlers: Dict[Tuple[str, str], Handler] = self.build_dispatch_table()

    def build_dispatch_table(self) -> Dict[Tuple[str, str], Handler]:
        raise NotImplementedError

    def event_key(self, event) -> Tuple[str, str]:
        raise NotImplementedError

    def lock_key(self, event) -> Optional[Hashable]:
        return None

    def screen(self, event) -> Optional[SyncResult]:
        """Return a terminal result for events the relay caused itself."""
        return None

    def describe(self, event) -> str:
        kind, action = self.event_key(event)
        return f"{kind}.{action}"

    def call(self, fn: Callable[..., Any], *args, **kwargs) -> Any:
        """Perform one remote call through the retry executor."""
        return self.ctx.retry.execute(lambda: fn(*args, **kwargs))

    def conflict(self, event, reason: str) -> SyncResult:
        logger.info(f"[{self.system}] {self.describe(event)}: {reason}, skipping to prevent loop")
        return SyncResult.terminal(self.describe(event), SyncOutcome.CONFLICT, reason)

    def skip(self, event, outcome: SyncOutcome, reason: str) -> SyncResult:
        logger.warning(f"[{self.system}] {self.describe(event)}: {reason}")
        return SyncResult.terminal(self.describe(event), outcome, reason)

    def dispatch(self, event) -> SyncResult:
        key = self.event_key(event)
        logger.info(f"Received {self.system} webhook: {self.describe(event)}")

        screened = self.screen(event)
        if screened is not None:
            return screened

        handler = self.handlers.get(key)
        if handler is None:
            logger.debug(f"Unhandled {self.system} event: {self.describe(event)}")
            return SyncResult.terminal(self.describe(event), SyncOutcome.NOOP, "unhandled event")

        with self.ctx.locks.hold(self.lock_key(event)):
            return handler(event).finish()
