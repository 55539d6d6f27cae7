"""
Failure taxonomy and response envelope.

Every operation either fully applies its effect and returns success, or
applies nothing and raises a KnownError subclass. The dispatcher converts
the outcome into an ApiResponse so the caller sees the failure kind and
message verbatim.

Failure kinds:
- PERMISSION_DENIED: role, ownership or state guard failed
- NOT_FOUND: entity absent from the store
- ALREADY_EXISTS: duplicate template, shop, user or card key
- INVALID_ARGUMENT: malformed identifier, number, boolean or payload
- INSUFFICIENT_FUNDS: debit exceeds the card balance
- CORRUPT_RECORD: stored bytes do not parse into the expected record
- STORAGE_FAILURE: the underlying get/put/delete failed
"""

from enum import Enum
from typing import Any, Generic, TypeVar

from pydantic import BaseModel, Field


class FailureKind(str, Enum):
    """Classification of failure types."""

    PERMISSION_DENIED = "permission_denied"
    NOT_FOUND = "not_found"
    ALREADY_EXISTS = "already_exists"
    INVALID_ARGUMENT = "invalid_argument"
    INSUFFICIENT_FUNDS = "insufficient_funds"
    CORRUPT_RECORD = "corrupt_record"
    STORAGE_FAILURE = "storage_failure"

    # Unknown
    UNKNOWN = "unknown"


class OutcomeType(str, Enum):
    """High-level outcome classification."""

    SUCCESS = "success"
    KNOWN_FAILURE = "known_failure"
    UNKNOWN_FAILURE = "unknown_failure"


T = TypeVar("T")


class FailureDetail(BaseModel):
    """Detailed information about a failure."""

    kind: FailureKind = Field(
        ...,
        description="Classification of the failure",
    )
    message: str = Field(
        ...,
        description="Explanation of what went wrong",
    )
    detail: str | None = Field(
        default=None,
        description="Which key or guard was involved (optional)",
    )


class ApiResponse(BaseModel, Generic[T]):
    """
    Response envelope for every invocation.

    Every response is classified into one of three outcome types.
    """

    outcome: OutcomeType = Field(
        ...,
        description="High-level classification of the result",
    )
    data: T | None = Field(
        default=None,
        description="Response data (present on success)",
    )
    failure: FailureDetail | None = Field(
        default=None,
        description="Failure details (present on non-success)",
    )

    @classmethod
    def known_failure(
        cls,
        kind: FailureKind,
        message: str,
        detail: str | None = None,
    ) -> "ApiResponse[Any]":
        """
        Create a known failure response.

        Use when the operation knows exactly why it failed.
        Example: card not found, guard not satisfied.
        """
        return cls(
            outcome=OutcomeType.KNOWN_FAILURE,
            failure=FailureDetail(kind=kind, message=message, detail=detail),
        )

    @classmethod
    def unknown_failure(
        cls,
        detail: str | None = None,
    ) -> "ApiResponse[Any]":
        """
        Create an unknown failure response.

        This is the catch-all for unexpected exceptions.
        """
        return cls(
            outcome=OutcomeType.UNKNOWN_FAILURE,
            failure=FailureDetail(
                kind=FailureKind.UNKNOWN,
                message="The operation failed for an unknown reason. Nothing was applied.",
                detail=detail,
            ),
        )


# Standard exception types that map to known failures


class KnownError(Exception):
    """
    Base class for exceptions that represent known, explainable failures.

    Subclass this for errors where the system knows exactly what went wrong.
    """

    def __init__(
        self,
        kind: FailureKind,
        message: str,
        detail: str | None = None,
    ):
        self.kind = kind
        self.message = message
        self.detail = detail
        super().__init__(message)

    def to_response(self) -> ApiResponse[Any]:
        """Convert to an ApiResponse."""
        return ApiResponse.known_failure(
            kind=self.kind,
            message=self.message,
            detail=self.detail,
        )


class PermissionDeniedError(KnownError):
    """Role, ownership or state guard rejected the operation."""

    def __init__(self, message: str = "Permission denied", detail: str | None = None):
        super().__init__(FailureKind.PERMISSION_DENIED, message, detail)


class NotFoundError(KnownError):
    """Raised when a keyed entity is absent from the store."""

    def __init__(self, entity: str, key: str):
        self.entity = entity
        self.key = key
        super().__init__(
            FailureKind.NOT_FOUND,
            f"{entity} '{key}' not found",
            detail=f"key={key}",
        )


class AlreadyExistsError(KnownError):
    """Raised when creating an entity whose key is already taken."""

    def __init__(self, entity: str, key: str):
        self.entity = entity
        self.key = key
        super().__init__(
            FailureKind.ALREADY_EXISTS,
            f"{entity} '{key}' already exists",
            detail=f"key={key}",
        )


class InvalidArgumentError(KnownError):
    """Raised for malformed identifiers, numbers, booleans or payloads."""

    def __init__(self, message: str, detail: str | None = None):
        super().__init__(FailureKind.INVALID_ARGUMENT, message, detail)


class InsufficientFundsError(KnownError):
    """
    Raised when a debit exceeds the card's current balance.

    Raised before anything is staged, so card and ledger stay unchanged.
    """

    def __init__(
        self,
        card_key: str,
        money: int,
        point: int,
        balance_money: int,
        balance_point: int,
    ):
        self.card_key = card_key
        self.requested = (money, point)
        self.balance = (balance_money, balance_point)
        super().__init__(
            FailureKind.INSUFFICIENT_FUNDS,
            f"Card '{card_key}' balance is not enough",
            detail=(
                f"requested money={money} point={point}, "
                f"balance money={balance_money} point={balance_point}"
            ),
        )


class CorruptRecordError(KnownError):
    """Raised when stored bytes do not parse into the expected record."""

    def __init__(self, key: str, detail: str | None = None):
        self.key = key
        super().__init__(
            FailureKind.CORRUPT_RECORD,
            f"Corrupt record at key '{key}'",
            detail=detail,
        )


class StorageFailureError(KnownError):
    """Raised when the underlying store fails a get, put or delete."""

    def __init__(self, operation: str, key: str, detail: str | None = None):
        self.operation = operation
        self.key = key
        super().__init__(
            FailureKind.STORAGE_FAILURE,
            f"Storage {operation} failed for key '{key}'",
            detail=detail,
        )


# =============================================================================
# RESPONSE CONSTRUCTION
# =============================================================================


def create_success(data: T) -> ApiResponse[T]:
    """Create a success response."""
    return ApiResponse[T](outcome=OutcomeType.SUCCESS, data=data)


def create_known_failure(error: KnownError) -> ApiResponse[Any]:
    """Create a known failure response from a raised KnownError."""
    return error.to_response()


def create_unknown_failure(
    exception: Exception,
    include_type: bool = True,
) -> ApiResponse[Any]:
    """
    Create an unknown failure response from an exception.

    The message is fixed; only the exception type is exposed as detail.
    """
    detail = None
    if include_type:
        detail = f"{type(exception).__name__}"
    return ApiResponse.unknown_failure(detail=detail)
