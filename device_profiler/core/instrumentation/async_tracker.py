"""
Async Correlation Tracker - matches asynchronous calls to their completion.

Every asynchronous call observed while recording gets a token at call time
and a pending entry. The entry is moved to the resolved set when the
underlying awaitable finishes, whichever frame happens to be open by then.
Calls that never finish stay pending; that leak is bounded by the number of
such calls and does not affect later recording.
"""

from __future__ import annotations

import itertools
from dataclasses import dataclass
from typing import Dict, List, Optional

from ..logging_utils import get_module_logger
from .records import AsyncResolutionRecord


@dataclass(frozen=True)
class PendingAsyncCall:
    token: int
    object_id: int
    type_name: str
    method_name: str
    start_time: float
    frame_index: Optional[int] = None


class AsyncCorrelationTracker:

    def __init__(self) -> None:
        self.logger = get_module_logger("AsyncTracker")
        self._tokens = itertools.count(1)
        self._pending: Dict[int, PendingAsyncCall] = {}
        self._resolved: Dict[int, AsyncResolutionRecord] = {}

    def next_token(self) -> int:
        return next(self._tokens)

    def register(self, call: PendingAsyncCall) -> None:
        self._pending[call.token] = call
        self.logger.debug("Pending async #%d %s@%d.%s", call.token, call.type_name, call.object_id, call.method_name)

    def resolve(
        self,
        token: int,
        end_time: float,
        result: str,
        error: Optional[str] = None,
    ) -> Optional[AsyncResolutionRecord]:
        """Close the pending entry for ``token``.

        Returns None when the token was never registered or is already resolved.
        """
        call = self._pending.pop(token, None)
        if call is None:
            self.logger.debug("Resolution for unknown async token #%d ignored", token)
            return None

        resolution = AsyncResolutionRecord(
            async_token=token,
            duration_ms=(end_time - call.start_time) * 1000.0,
            result=result,
            method_name=call.method_name,
            error=error,
        )
        self._resolved[token] = resolution
        self.logger.debug("Resolved async #%d in %.3f ms", token, resolution.duration_ms)
        return resolution

    # ------------------------------------------------------------------
    # Queries

    def pending(self) -> List[PendingAsyncCall]:
        return list(self._pending.values())

    @property
    def pending_count(self) -> int:
        return len(self._pending)

    def is_pending(self, token: int) -> bool:
        return token in self._pending

    def resolution_for(self, token: int) -> Optional[AsyncResolutionRecord]:
        return self._resolved.get(token)

    def resolutions(self) -> List[AsyncResolutionRecord]:
        return list(self._resolved.values())

    def clear_resolved(self) -> None:
        """Forget completed correlations; in-flight calls stay pending."""
        self._resolved.clear()


__all__ = ["AsyncCorrelationTracker", "PendingAsyncCall"]
