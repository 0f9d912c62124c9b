"""Error taxonomy surfaced by the gateway."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from tandoor_gateway.domain.operations import OperationLog


class GatewayError(Exception):
    """Base class for errors returned to tool callers."""

    code = "error"

    def __init__(self, message: str, *, details: dict[str, object] | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> dict[str, object]:
        """Return a JSON-safe description of the error."""
        payload: dict[str, object] = {"code": self.code, "message": self.message}
        if self.details:
            payload["details"] = self.details
        return payload


class AuthError(GatewayError):
    """Authentication failed or no usable credential remains.

    ``reason`` separates remediation paths: ``invalid_credentials``,
    ``account_disabled``, ``rate_limited``, ``missing_credentials``,
    ``token_rejected`` and ``preset_token_rejected``.
    """

    code = "auth_error"

    def __init__(
        self, message: str, *, reason: str, details: dict[str, object] | None = None
    ):
        super().__init__(message, details=details)
        self.reason = reason

    def to_dict(self) -> dict[str, object]:
        payload = super().to_dict()
        payload["reason"] = self.reason
        return payload


class TokenRejectedError(AuthError):
    """The backend answered 401 for an otherwise well-formed request."""

    def __init__(self, message: str = "Backend rejected the access token"):
        super().__init__(message, reason="token_rejected")


class ScopeError(GatewayError):
    """The credential is valid but lacks permission for the resource."""

    code = "scope_error"

    def __init__(
        self, message: str, *, reason: str, details: dict[str, object] | None = None
    ):
        super().__init__(message, details=details)
        self.reason = reason

    def to_dict(self) -> dict[str, object]:
        payload = super().to_dict()
        payload["reason"] = self.reason
        return payload


class NotFoundError(GatewayError):
    """A referenced entity does not exist."""

    code = "not_found"


class AmbiguousMatchError(GatewayError):
    """Fuzzy resolution found several equally good candidates."""

    code = "ambiguous_match"

    def __init__(self, query: str, candidates: list[dict[str, object]]):
        names = ", ".join(str(candidate["name"]) for candidate in candidates)
        super().__init__(f"'{query}' matches several entries: {names}")
        self.query = query
        self.candidates = candidates

    def to_dict(self) -> dict[str, object]:
        payload = super().to_dict()
        payload["query"] = self.query
        payload["candidates"] = self.candidates
        return payload


class ValidationError(GatewayError):
    """Malformed input, rejected before any backend call."""

    code = "validation_error"


class UpstreamError(GatewayError):
    """Network failure, timeout or unexpected response from the backend."""

    code = "upstream_error"

    def __init__(
        self,
        message: str,
        *,
        transient: bool = False,
        status_code: int | None = None,
        details: dict[str, object] | None = None,
    ):
        super().__init__(message, details=details)
        self.transient = transient
        self.status_code = status_code

    def to_dict(self) -> dict[str, object]:
        payload = super().to_dict()
        if self.status_code is not None:
            payload["status_code"] = self.status_code
        return payload


class PartialFailure(GatewayError):
    """A multi-step mutation applied some but not all of its steps."""

    code = "partial_failure"

    def __init__(self, message: str, *, log: OperationLog, result: object):
        super().__init__(message)
        self.log = log
        self.result = result

    @property
    def completed(self) -> list[str]:
        """Return descriptions of the steps that were applied."""
        return [step.describe() for step in self.log.completed]

    @property
    def failed(self) -> list[str]:
        """Return descriptions of the steps that failed."""
        return [step.describe() for step in self.log.failed]

    def to_dict(self) -> dict[str, object]:
        payload = super().to_dict()
        payload["steps"] = self.log.to_list()
        return payload
