"""Exception taxonomy for ledger queries.

Only two conditions are recovered locally (a non-advancing page cursor and an
undecodable NodeId); everything else surfaces as one of these.
"""
from __future__ import annotations

from typing import Any


class LedgerError(Exception):
    """Base exception for ledger query errors."""


class LedgerRpcError(LedgerError):
    """The ledger endpoint rejected a call or could not be reached."""

    def __init__(
        self,
        message: str,
        method: str | None = None,
        status_code: int | None = None,
        payload: Any = None,
    ) -> None:
        super().__init__(message)
        self.method = method
        self.status_code = status_code
        self.payload = payload


class LedgerDecodeError(LedgerError):
    """A raw ledger response did not have the expected shape."""

    def __init__(self, message: str, method: str | None = None, raw: Any = None) -> None:
        super().__init__(message)
        self.method = method
        self.raw = raw


class QueryAborted(LedgerError):
    """Raised by an abort hook to stop a pagination loop between pages."""


class AbortSignal:
    """Cooperative cancellation flag.

    Pass ``signal.check`` wherever a ``check_abort`` hook is accepted.
    """

    def __init__(self) -> None:
        self._aborted = False
        self.reason: str | None = None

    @property
    def aborted(self) -> bool:
        return self._aborted

    def abort(self, reason: str = "aborted") -> None:
        self._aborted = True
        self.reason = reason

    def check(self) -> None:
        if self._aborted:
            raise QueryAborted(self.reason or "aborted")
