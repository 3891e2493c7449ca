"""Error types raised by the positions book and the cranker."""

from __future__ import annotations

from enum import IntEnum


class ErrorCode(IntEnum):
    """Program error codes; the value is the custom program error number."""

    OUT_OF_SPACE = 0
    MEMORY_ERROR = 1
    POSITION_NOT_FOUND = 2
    NO_MORE_FUNDS = 3
    AMOUNT_TOO_LOW = 4
    AMOUNT_TOO_LARGE = 5
    MARGIN_TOO_LOW = 6
    NOP = 7
    PENDING_FUNDING = 8
    OVERFLOW = 9
    TOO_MANY_OPEN_POSITIONS = 10
    NEGATIVE_PAYOUT = 11
    IMBALANCED_MARKET = 12
    NETWORK_SLIPPAGE_TOO_LARGE = 13


_MESSAGES = {
    ErrorCode.OUT_OF_SPACE: "Out of space.",
    ErrorCode.MEMORY_ERROR: "Memory error",
    ErrorCode.POSITION_NOT_FOUND: "Position not found",
    ErrorCode.NO_MORE_FUNDS: "No more funds",
    ErrorCode.AMOUNT_TOO_LOW: "Given amount is too low",
    ErrorCode.AMOUNT_TOO_LARGE: "Given amount is too large",
    ErrorCode.MARGIN_TOO_LOW: "Given margin is too low",
    ErrorCode.NOP: "This operation is a no-op",
    ErrorCode.PENDING_FUNDING: "The user account isn't up to date on funding.",
    ErrorCode.OVERFLOW: (
        "A math operation has overflowed. This shouldn't happen in normal usage."
    ),
    ErrorCode.TOO_MANY_OPEN_POSITIONS: (
        "This user account has exceed its maximum number of open positions."
    ),
    ErrorCode.NEGATIVE_PAYOUT: (
        "This open position cannot be closed as it should be liquidated."
    ),
    ErrorCode.IMBALANCED_MARKET: "The market is imbalanced.",
    ErrorCode.NETWORK_SLIPPAGE_TOO_LARGE: (
        "The price slippage due to execution latency exceeds the provided margin"
    ),
}

_LOG_MESSAGES = {
    ErrorCode.OUT_OF_SPACE: "Error: Out of space!",
    ErrorCode.MEMORY_ERROR: "Error: Memory Error!",
    ErrorCode.POSITION_NOT_FOUND: "Error: Position not found!",
    ErrorCode.NO_MORE_FUNDS: "Error: The account is out of funds!",
    ErrorCode.AMOUNT_TOO_LOW: "Error: The given amount is too low!",
    ErrorCode.AMOUNT_TOO_LARGE: "Error: The given amount is too large!",
    ErrorCode.MARGIN_TOO_LOW: "Error: The given margin is too small!",
    ErrorCode.NOP: "Error: The operation is a no-op.",
    ErrorCode.PENDING_FUNDING: "Error: The user account isn't up to date on funding.",
    ErrorCode.OVERFLOW: (
        "Error: A math operation has overflowed. "
        "This shouldn't happen in normal usage."
    ),
    ErrorCode.TOO_MANY_OPEN_POSITIONS: (
        "Error: This open positions account has exceed its maximum number "
        "of open positions."
    ),
    ErrorCode.NEGATIVE_PAYOUT: (
        "Error: This open position cannot be closed as it should be liquidated."
    ),
    ErrorCode.IMBALANCED_MARKET: "Error: The market is imbalanced.",
    ErrorCode.NETWORK_SLIPPAGE_TOO_LARGE: (
        "Error: The price slippage due to execution latency exceeds "
        "the specified margin"
    ),
}


class PerpError(Exception):
    """An error of the perpetuals program, identified by an ErrorCode."""

    def __init__(self, code: ErrorCode | int) -> None:
        self.code = ErrorCode(code)
        super().__init__(_MESSAGES[self.code])

    def __repr__(self) -> str:
        return f"PerpError({self.code.name})"


def log_message(code: ErrorCode | int) -> str:
    """Return the diagnostic line the program logs for an error code."""
    return _LOG_MESSAGES[ErrorCode(code)]


class CrankError(Exception):
    """Base class of errors raised by the cranker."""

    default_message = "Crank error"

    def __init__(self, message: str | None = None) -> None:
        super().__init__(message if message is not None else self.default_message)


class CrankConnectionError(CrankError):
    """The RPC endpoint could not be reached or answered with an error."""

    default_message = "Encountered a connection error"


class InvalidMarketState(CrankError):
    """Market data fetched from the chain could not be parsed."""

    default_message = "The parsed market state is invalid"