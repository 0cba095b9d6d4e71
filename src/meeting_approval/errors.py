"""Failure taxonomy shared by the submission, approval, and listing paths."""

from __future__ import annotations

from enum import StrEnum

from pydantic import BaseModel, Field

GENERIC_NETWORK_MESSAGE = "Network error"


class GatewayError(Exception):
    """Base class for errors raised by a meeting gateway."""

    def __init__(self, message: str | None = None, *, status_code: int | None = None):
        super().__init__(message or GENERIC_NETWORK_MESSAGE)
        self.message = message
        self.status_code = status_code


class AuthorizationError(GatewayError):
    """Credential missing, expired, or rejected by the server."""


class ConflictError(GatewayError):
    """The record no longer matches the expected pre-transition state."""


class TransportError(GatewayError):
    """Network or server unavailable."""


class NotFoundError(TransportError):
    """The requested record does not exist."""


class FailureKind(StrEnum):
    """Categories of workflow failures surfaced to callers."""

    VALIDATION = "validation"
    AUTHORIZATION = "authorization"
    CONFLICT = "conflict"
    TRANSPORT = "transport"
    IN_FLIGHT = "in_flight"


class Failure(BaseModel):
    """Structured failure returned instead of raising."""

    kind: FailureKind = Field(..., description="Failure category")
    message: str = Field(..., description="Human-readable explanation")
    field: str | None = Field(
        default=None, description="Offending field for validation failures"
    )

    model_config = {"frozen": True}

    @property
    def is_retryable(self) -> bool:
        """True when the same action may be retried with a fresh request id."""

        return self.kind in (FailureKind.TRANSPORT, FailureKind.IN_FLIGHT)


def classify_gateway_error(exc: GatewayError | TimeoutError) -> Failure:
    """Map a gateway exception onto the failure taxonomy."""

    if isinstance(exc, AuthorizationError):
        return Failure(
            kind=FailureKind.AUTHORIZATION,
            message=exc.message or "Your session has expired; please sign in again",
        )
    if isinstance(exc, ConflictError):
        return Failure(
            kind=FailureKind.CONFLICT,
            message=exc.message or "Meeting request was changed by someone else",
        )
    if isinstance(exc, GatewayError):
        return Failure(
            kind=FailureKind.TRANSPORT, message=exc.message or GENERIC_NETWORK_MESSAGE
        )
    return Failure(kind=FailureKind.TRANSPORT, message=GENERIC_NETWORK_MESSAGE)
