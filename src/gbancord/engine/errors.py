"""
Exceptions raised by the gban engine.

Precondition errors are raised before anything is queued and carry a
message fit to show the operator. :class:`StoreCommitError` is raised from
inside a task when the store rejects the commit after the actuation loop
already ran.
"""

from __future__ import annotations


class GbanError(Exception):
    """Base class for all gban engine errors."""


class FounderProtectedError(GbanError):
    def __init__(self, subject: str) -> None:
        super().__init__(f"{subject} is a founder and cannot be gbanned.")
        self.subject = subject


class AlreadyBannedError(GbanError):
    def __init__(self, subject: str) -> None:
        super().__init__(f"User {subject} already has an active gban.")
        self.subject = subject


class PendingBanExistsError(GbanError):
    def __init__(self, subject: str) -> None:
        super().__init__(f"User {subject} already has a pending gban.")
        self.subject = subject


class NoBanFoundError(GbanError):
    def __init__(self, subject: str) -> None:
        super().__init__(f"User {subject} has no active or pending gban.")
        self.subject = subject


class NoPendingBanError(GbanError):
    def __init__(self, subject: str) -> None:
        super().__init__(f"User {subject} has no pending gban.")
        self.subject = subject


class StoreCommitError(GbanError):
    """The actuation loop ran but its outcome could not be saved."""

    def __init__(self, subject: str, succeeded: int, total: int, cause: BaseException) -> None:
        super().__init__(
            f"Applied to {subject} in {succeeded}/{total} guilds but the record was NOT saved: {cause}"
        )
        self.subject = subject
        self.succeeded = succeeded
        self.total = total
        self.__cause__ = cause
