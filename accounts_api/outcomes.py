from __future__ import annotations
import enum
from dataclasses import dataclass, field
from typing import Any, Dict, List

from fastapi.responses import JSONResponse


class OutcomeKind(enum.Enum):
    OK = "ok"
    VALIDATION_FAILED = "validation_failed"
    NOT_FOUND = "not_found"
    UNAUTHORIZED = "unauthorized"
    CONFLICT = "conflict"
    BAD_REQUEST = "bad_request"
    INTERNAL_ERROR = "internal_error"


# Conflicts answer 422 like any other uniqueness failure so existing clients keep working.
STATUS_CODES = {
    OutcomeKind.OK: 200,
    OutcomeKind.VALIDATION_FAILED: 422,
    OutcomeKind.NOT_FOUND: 404,
    OutcomeKind.UNAUTHORIZED: 401,
    OutcomeKind.CONFLICT: 422,
    OutcomeKind.BAD_REQUEST: 400,
    OutcomeKind.INTERNAL_ERROR: 500,
}


@dataclass
class Outcome:
    kind: OutcomeKind
    body: Dict[str, Any] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return self.kind is OutcomeKind.OK

    @property
    def status_code(self) -> int:
        return STATUS_CODES[self.kind]

    def to_response(self) -> JSONResponse:
        return JSONResponse(status_code=self.status_code, content=self.body)

    @classmethod
    def success(cls, message: str) -> "Outcome":
        return cls(OutcomeKind.OK, {"message": message})

    @classmethod
    def payload(cls, **body) -> "Outcome":
        return cls(OutcomeKind.OK, body)

    @classmethod
    def validation_failed(cls, errors: List[str]) -> "Outcome":
        return cls(OutcomeKind.VALIDATION_FAILED, {"errors": list(errors)})

    @classmethod
    def conflict(cls, errors: List[str]) -> "Outcome":
        return cls(OutcomeKind.CONFLICT, {"errors": list(errors)})

    @classmethod
    def not_found(cls, error: str) -> "Outcome":
        return cls(OutcomeKind.NOT_FOUND, {"error": error})

    @classmethod
    def unauthorized(cls, error: str) -> "Outcome":
        return cls(OutcomeKind.UNAUTHORIZED, {"error": error})

    @classmethod
    def bad_request(cls, error: str) -> "Outcome":
        return cls(OutcomeKind.BAD_REQUEST, {"error": error})

    @classmethod
    def internal_error(cls, error: str) -> "Outcome":
        return cls(OutcomeKind.INTERNAL_ERROR, {"error": error})
