# etiket-backend/payments/gateway.py
"""Midtrans Snap client."""
import base64
import logging

import requests
from django.conf import settings
from rest_framework import status

from core.exceptions import DomainError

logger = logging.getLogger("etiket.payments")


class PaymentGatewayError(DomainError):
    pass


def snap_url(is_production: bool) -> str:
    if is_production:
        return settings.MIDTRANS_PRODUCTION_SNAP_URL
    return settings.MIDTRANS_SANDBOX_SNAP_URL


def _auth_header(server_key: str) -> str:
    token = base64.b64encode(f"{server_key}:".encode("utf-8")).decode("ascii")
    return f"Basic {token}"


def create_snap_transaction(server_key, payload, is_production=False):
    """
    POST the transaction to Snap; returns the decoded body
    ({"token": ..., "redirect_url": ...}).
    """
    try:
        response = requests.post(
            snap_url(is_production),
            json=payload,
            headers={
                "Content-Type": "application/json",
                "Accept": "application/json",
                "Authorization": _auth_header(server_key),
            },
            timeout=settings.MIDTRANS_REQUEST_TIMEOUT,
        )
    except requests.RequestException as exc:
        logger.exception("Midtrans Snap request failed")
        raise PaymentGatewayError(
            "Payment service unavailable",
            status_code=status.HTTP_502_BAD_GATEWAY,
        ) from exc

    try:
        data = response.json()
    except ValueError:
        data = {}

    if not response.ok:
        logger.error("Midtrans Snap error %s: %s", response.status_code, data)
        raise PaymentGatewayError(
            "Failed to create payment",
            details=data.get("error_messages") if isinstance(data, dict) else None,
        )
    return data
