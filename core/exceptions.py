from rest_framework.views import exception_handler as drf_exception_handler
from rest_framework.response import Response
from rest_framework import status
import logging

logger = logging.getLogger("etiket.core")


class DomainError(Exception):
    """
    Base class for errors raised by domain services.

    Carries the HTTP status the API should answer with and optional
    context that is merged into the error payload.
    """
    status_code = status.HTTP_400_BAD_REQUEST

    def __init__(self, message, status_code=None, **context):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code
        self.context = context

    def as_payload(self):
        return {"error": self.message, **self.context}


class NotFoundError(DomainError):
    status_code = status.HTTP_404_NOT_FOUND


def _first_message(data):
    """Pull a human readable message out of DRF's error structures."""
    if isinstance(data, dict):
        if "detail" in data:
            return str(data["detail"])
        for key, value in data.items():
            return f"{key}: {_first_message(value)}"
    if isinstance(data, (list, tuple)) and data:
        return _first_message(data[0])
    return str(data)


def custom_exception_handler(exc, context):
    """
    Wrap DRF + Django + domain exceptions into the {"error": ...} envelope.

    Success responses (2xx) are not touched.
    Only errors come through here.
    """
    if isinstance(exc, DomainError):
        return Response(exc.as_payload(), status=exc.status_code)

    response = drf_exception_handler(exc, context)

    # If DRF handled it, wrap it
    if response is not None:
        payload = {"error": _first_message(response.data)}
        if isinstance(response.data, dict) and set(response.data) != {"detail"}:
            payload["errors"] = response.data
        headers = {
            name: response[name]
            for name in ("WWW-Authenticate", "Retry-After")
            if response.has_header(name)
        }
        return Response(payload, status=response.status_code, headers=headers)

    # Unhandled exceptions -> 500
    logger.exception("Unhandled API exception", exc_info=exc)

    return Response(
        {"error": "Internal server error."},
        status=status.HTTP_500_INTERNAL_SERVER_ERROR,
    )
