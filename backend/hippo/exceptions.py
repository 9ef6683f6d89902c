"""Domain errors.

Every failure the lending core can report is one of four kinds. Each carries
the HTTP status it maps to, so route handlers never translate errors
themselves; the handlers registered in `hippo.main` render them as
`{"error": kind, "detail": message}`.
"""
from typing import Any, Dict, Optional


class HippoError(Exception):
    """Base class for errors surfaced to API callers."""

    kind = "error"
    status_code = 500

    def __init__(self, detail: str, extra: Optional[Dict[str, Any]] = None):
        super().__init__(detail)
        self.detail = detail
        self.extra = extra or {}

    def to_dict(self) -> Dict[str, Any]:
        return {"error": self.kind, "detail": self.detail, **self.extra}


class NotFoundError(HippoError):
    """Referenced conversation, loan or message parent does not exist."""

    kind = "not_found"
    status_code = 404

    def __init__(self, resource: str, identifier: Any):
        super().__init__(
            f"{resource} not found",
            extra={"resource": resource.lower(), "id": str(identifier)}
        )
        self.resource = resource
        self.identifier = identifier


class ValidationFailure(HippoError):
    """A request is well-formed but semantically invalid."""

    kind = "validation_failure"
    status_code = 422


class ConflictError(HippoError):
    """A write collides with existing state (unique key, illegal transition)."""

    kind = "conflict"
    status_code = 409


class TransientStoreError(HippoError):
    """The persistence layer is unreachable or failed mid-operation."""

    kind = "store_unavailable"
    status_code = 500
