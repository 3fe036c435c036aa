"""
Classification of GA4 backend failures into user-facing diagnostics.

The classifier only depends on BackendError (an optional numeric status code and a
message), never on the SDK's exception hierarchy; BackendError.from_exception is the
single place that looks at SDK exceptions.
"""

from dataclasses import dataclass
from typing import Any, Dict, Optional, Tuple, Union

from google.api_core import exceptions as core_exceptions

PERMISSION_DENIED_CODE = 7  # gRPC PERMISSION_DENIED
PERMISSION_MARKERS = ("permission",)


@dataclass(frozen=True)
class BackendError:
    message: str
    code: Optional[int] = None

    @classmethod
    def from_exception(cls, exc: BaseException) -> "BackendError":
        if isinstance(exc, core_exceptions.PermissionDenied):
            return cls(message=exc.message or str(exc), code=PERMISSION_DENIED_CODE)
        if isinstance(exc, core_exceptions.GoogleAPICallError):
            status = exc.grpc_status_code
            code = status.value[0] if status is not None else None
            return cls(message=exc.message or str(exc), code=code)
        code = getattr(exc, "code", None)
        if not isinstance(code, int) or isinstance(code, bool):
            code = None
        return cls(message=str(exc), code=code)


def remediation_steps(principal: str) -> Tuple[str, ...]:
    return (
        "Go to Google Analytics (analytics.google.com)",
        "Navigate to Admin > Property Access Management",
        f"Add {principal} with Viewer access",
        "Try the query again",
    )


@dataclass(frozen=True)
class PermissionDenied:
    property_ref: str
    remediation_principal: str
    steps: Tuple[str, ...]
    original_message: str


@dataclass(frozen=True)
class GenericFailure:
    property_ref: str
    message: str


ClassifiedError = Union[PermissionDenied, GenericFailure]


def is_permission_error(error: BackendError) -> bool:
    if error.code == PERMISSION_DENIED_CODE:
        return True
    message = (error.message or "").lower()
    return any(marker in message for marker in PERMISSION_MARKERS)


def classify_error(
    error: Union[BackendError, BaseException],
    property_ref: str,
    service_principal: str,
) -> ClassifiedError:
    """Classify a failed backend call; purely advisory, nothing is retried"""
    if not isinstance(error, BackendError):
        error = BackendError.from_exception(error)
    if is_permission_error(error):
        return PermissionDenied(
            property_ref=property_ref,
            remediation_principal=service_principal,
            steps=remediation_steps(service_principal),
            original_message=error.message,
        )
    return GenericFailure(property_ref=property_ref, message=error.message)


def error_payload(classified: ClassifiedError) -> Dict[str, Any]:
    """Render a classified error as a tool result payload"""
    if isinstance(classified, PermissionDenied):
        return {
            "status": "error",
            "error": "permission_denied",
            "message": f"Permission denied for property {classified.property_ref}",
            "property": classified.property_ref,
            "service_account": classified.remediation_principal,
            "steps": list(classified.steps),
            "original_error": classified.original_message,
        }
    return {
        "status": "error",
        "error": "backend_error",
        "message": classified.message,
        "property": classified.property_ref,
    }
