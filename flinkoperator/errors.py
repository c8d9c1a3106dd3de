"""Operator error types and error codes."""

from __future__ import annotations

from enum import Enum


class ErrorCode(str, Enum):
    """Codes classifying operator errors."""

    ILLEGAL_STATE_ERROR = "IllegalStateError"
    CAUSED_BY_ERROR = "CausedByError"
    BAD_JOB_SPECIFICATION_ERROR = "BadJobSpecificationError"
    RECONCILIATION_NEEDED = "ReconciliationNeeded"

    def __str__(self) -> str:
        return self.value


def _format(msg_fmt: str, args: tuple) -> str:
    return msg_fmt % args if args else msg_fmt


class FlinkOperatorError(Exception):
    """An operator error carrying a code and a message."""

    def __init__(self, code: ErrorCode | str, message: str) -> None:
        super().__init__(code, message)
        self.code = code
        self.message = message

    def __str__(self) -> str:
        return f"ErrorCode: [{self.code}] Reason: [{self.message}]"


class FlinkOperatorErrorWithCause(FlinkOperatorError):
    """An operator error that wraps the error which caused it."""

    def __init__(self, code: ErrorCode | str, message: str, cause: BaseException | None) -> None:
        super().__init__(code, message)
        self.cause = cause
        self.__cause__ = cause

    def __str__(self) -> str:
        return f"{super().__str__()}. Caused By [{self.cause}]"


def errorf(code: ErrorCode | str, msg_fmt: str, *args: object) -> FlinkOperatorError:
    """Build an error whose message is ``msg_fmt`` formatted with ``args``."""
    return FlinkOperatorError(code, _format(msg_fmt, args))


def wrap_errorf(
    code: ErrorCode | str, cause: BaseException | None, msg_fmt: str, *args: object
) -> FlinkOperatorErrorWithCause:
    """Build an error that records ``cause`` alongside its own message."""
    return FlinkOperatorErrorWithCause(code, _format(msg_fmt, args), cause)


def is_reconciliation_needed(err: BaseException | None) -> bool:
    """Whether ``err`` is a plain operator error asking for reconciliation."""
    if not isinstance(err, FlinkOperatorError) or isinstance(err, FlinkOperatorErrorWithCause):
        return False
    return err.code == ErrorCode.RECONCILIATION_NEEDED