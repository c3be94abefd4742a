"""Domain errors raised by the claim services.

Every error carries a stable ``code`` and the HTTP status the API layer
answers with. ``main.py`` installs one handler for ``SanadError`` so none of
these ever surface as an unhandled 500.
"""

from typing import Any, Dict, Optional


class SanadError(Exception):
    code = "sanad_error"
    status_code = 500

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def to_dict(self) -> Dict[str, Any]:
        return {"message": self.message, "code": self.code, "details": self.details}


class ValidationError(SanadError):
    """Malformed or missing input. Raised before anything is persisted."""
    code = "validation_error"
    status_code = 400


class NotFound(SanadError):
    code = "not_found"
    status_code = 404


class InvalidCategory(SanadError):
    """A flight-only operation was invoked on a claim of another category."""
    code = "invalid_category"
    status_code = 400


class MissingPrerequisite(SanadError):
    code = "missing_prerequisite"
    status_code = 409


class Conflict(SanadError):
    code = "conflict"
    status_code = 409


class InvalidTransition(SanadError):
    code = "invalid_transition"
    status_code = 409


class Unauthorized(SanadError):
    code = "unauthorized"
    status_code = 401


class AccessDenied(Unauthorized):
    """The caller identified themselves, but the details do not grant access."""
    status_code = 403


class ExternalCapabilityError(SanadError):
    """
    An OCR, flight-status, AI or blob-store collaborator failed or timed out.
    Only adapters raise this; orchestrators catch it and record the attempt.
    """
    code = "external_capability_error"
    status_code = 502

    def __init__(self, capability: str, message: str, details: Optional[Dict[str, Any]] = None):
        self.capability = capability
        super().__init__(message, {"capability": capability, **(details or {})})


class VerificationStepFailed(SanadError):
    """A verification or AI orchestration step failed after its attempt was recorded."""
    code = "verification_step_failed"
    status_code = 502

    def __init__(self, step: str, message: str, details: Optional[Dict[str, Any]] = None):
        self.step = step
        super().__init__(message, {"step": step, **(details or {})})
