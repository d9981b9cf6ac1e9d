"""
core/errors.py -- Application error taxonomy.

Services raise these; api/main.py registers one exception handler that turns
any AppError into the {success: false, error, code} envelope with the matching
status code. Route handlers never build error responses by hand.

  ValidationError  400  malformed or missing input
  AuthError        401  missing, invalid, or expired credentials
  ForbiddenError   403  authenticated but wrong role or wrong tenant
  NotFoundError    404  referenced entity absent
  ConflictError    400  uniqueness violation or illegal state transition
  InternalError    500  everything else (message suppressed in production)

Layer rule: core/ is the kernel and imports nothing from the other packages.
"""

from __future__ import annotations


class AppError(Exception):
    status_code: int = 500
    code: str = "internal_error"

    def __init__(self, message: str, *, details: list[dict] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details


class ValidationError(AppError):
    status_code = 400
    code = "validation_error"


class AuthError(AppError):
    status_code = 401
    code = "unauthorized"


class ForbiddenError(AppError):
    status_code = 403
    code = "forbidden"


class NotFoundError(AppError):
    status_code = 404
    code = "not_found"


class ConflictError(AppError):
    # 400 rather than 409: existing clients branch on 400 for duplicate input.
    status_code = 400
    code = "conflict"


class InternalError(AppError):
    status_code = 500
    code = "internal_error"
