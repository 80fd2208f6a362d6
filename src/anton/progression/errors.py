"""Submission failures, each tagged with a machine-readable reason."""

from __future__ import annotations

from enum import Enum


class Reason(str, Enum):
    INVALID_OPTION = "invalid_option"
    QUESTION_NOT_FOUND = "question_not_found"
    ALREADY_SOLVED = "already_solved"
    NOT_TODAYS_DAILY = "not_todays_daily"
    DAILY_ALREADY_ATTEMPTED = "daily_already_attempted"
    NO_DAILY_QUESTION = "no_daily_question"
    RETRIES_EXHAUSTED = "retries_exhausted"
    STORAGE_UNAVAILABLE = "storage_unavailable"
    TIMEOUT = "timeout"


class ProgressionError(Exception):
    """Base class for every rejection or failure raised by the engine."""

    status_code = 400
    retryable = False

    def __init__(self, reason: Reason, message: str) -> None:
        super().__init__(message)
        self.reason = reason
        self.message = message


class InvalidSubmission(ProgressionError):
    """Malformed option or unknown/inactive question. Rejected before any transaction."""

    def __init__(self, reason: Reason, message: str) -> None:
        super().__init__(reason, message)
        if reason is Reason.QUESTION_NOT_FOUND:
            self.status_code = 404


class DomainConflict(ProgressionError):
    """Ordinary rejection: already solved, wrong daily question, daily already attempted."""

    status_code = 409

    def __init__(self, reason: Reason, message: str) -> None:
        super().__init__(reason, message)
        if reason is Reason.NO_DAILY_QUESTION:
            self.status_code = 404


class ConcurrencyConflict(ProgressionError):
    """Serialization retries exhausted. The caller may resubmit."""

    status_code = 503
    retryable = True


class StorageFault(ProgressionError):
    """Connection loss or timeout. No partial state was persisted."""

    status_code = 503
    retryable = True
