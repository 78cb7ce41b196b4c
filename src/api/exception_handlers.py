"""Exception handlers for the API."""

import typing as t
from copy import deepcopy

import orjson
import structlog
from django.conf import settings
from django.core.exceptions import ValidationError
from django.http import HttpRequest
from ninja.responses import Response

from events.exceptions import AdmissionError, TransientFailure
from events.schema import AdmissionErrorSchema

logger = structlog.get_logger(__name__)


def handle_general_exception(request: HttpRequest, exc: Exception | t.Type[Exception]) -> Response:
    """Handle a general exception.

    Args:
        request: The incoming HTTP request.
        exc: The exception.

    Returns:
        The response.
    """
    json_payload = None
    if request.method in ("POST", "PUT", "PATCH") and request.headers.get("Content-Type") == "application/json":
        try:
            json_payload = obfuscate(orjson.loads(request.body))
        except orjson.JSONDecodeError:  # pragma: no cover
            json_payload = None
    logger.exception(
        "INTERNAL_SERVER_ERROR",
        method=request.method,
        path=request.path,
        query=obfuscate(request.GET.dict()),
        json_payload=json_payload,
    )
    data = {"detail": "Internal Server Error."}
    is_staff = getattr(request, "user", None) and request.user.is_staff
    if settings.DEBUG or is_staff:  # pragma: no cover
        data["exception"] = repr(exc)
    return Response(status=500, data=data)


def handle_django_validation_error(request: HttpRequest, exc: ValidationError | t.Type[ValidationError]) -> Response:
    """Handle a validation error.

    Args:
        request: The incoming HTTP request.
        exc: The exception.
    """
    logger.warning("VALIDATION_ERROR", path=request.path, errors=getattr(exc, "messages", None))
    if hasattr(exc, "error_dict"):
        error_dict = {k: [ee for e in v for ee in e] for k, v in exc.error_dict.items()}
    else:
        error_dict = {"__all__": list(exc.messages)}
    return Response(status=400, data={"errors": error_dict})


def handle_admission_error(request: HttpRequest, exc: AdmissionError | t.Type[AdmissionError]) -> Response:
    """Render a domain error with its stable code."""
    exc = t.cast(AdmissionError, exc)
    logger.info(
        "admission_rejected",
        code=exc.code,
        path=request.path,
        event_id=str(exc.event_id) if exc.event_id else None,
    )
    payload = AdmissionErrorSchema(code=exc.code, detail=exc.detail, event_id=exc.event_id)
    return Response(status=exc.status_code, data=payload.model_dump(mode="json"))


def handle_transient_failure(request: HttpRequest, exc: TransientFailure | t.Type[TransientFailure]) -> Response:
    """Tell the client to retry later."""
    exc = t.cast(TransientFailure, exc)
    logger.warning("admission_unavailable", code=exc.code, path=request.path)
    payload = AdmissionErrorSchema(code=exc.code, detail=exc.detail, event_id=exc.event_id)
    response = Response(status=503, data=payload.model_dump(mode="json"))
    response["Retry-After"] = str(settings.ADMISSION_RETRY_AFTER_SECONDS)
    return response


SENSITIVE_KEYS = {"password", "token", "x-api-key", "authorization", "authentication"}


def obfuscate(data: dict[str, t.Any]) -> dict[str, t.Any]:
    """Obfuscate sensitive data in payloads and headers."""
    new_data = deepcopy(data)
    for key in data.keys():
        if key.lower() in SENSITIVE_KEYS:
            new_data[key] = "********"
    return new_data
