# etiket-backend/payments/models.py
import uuid

from django.db import models

from events.models import Participant


def generate_payment_id():
    return f"pay_{uuid.uuid4().hex[:12]}"


def generate_donation_id():
    return f"don_{uuid.uuid4().hex[:12]}"


class Payment(models.Model):
    """
    One gateway transaction for an order. Linked to the lead (first)
    participant; the order id groups the rest of the batch.
    """
    STATUS_PENDING = Participant.PAYMENT_PENDING
    STATUS_PAID = Participant.PAYMENT_PAID
    STATUS_FAILED = Participant.PAYMENT_FAILED
    STATUS_REFUNDED = Participant.PAYMENT_REFUNDED

    STATUS_CHOICES = Participant.PAYMENT_CHOICES

    id = models.CharField(primary_key=True, max_length=32, default=generate_payment_id, editable=False)
    participant = models.ForeignKey(
        Participant,
        on_delete=models.SET_NULL,
        related_name="payments",
        null=True,
        blank=True,
    )
    order_id = models.CharField(max_length=64, db_index=True)
    amount = models.DecimalField(max_digits=12, decimal_places=2)
    status = models.CharField(max_length=16, choices=STATUS_CHOICES, default=STATUS_PENDING)
    payment_type = models.CharField(max_length=64, blank=True, null=True)
    gateway_response = models.JSONField(default=dict, blank=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-created_at"]

    def __str__(self):
        return f"{self.order_id} ({self.status})"


class Donation(models.Model):
    id = models.CharField(primary_key=True, max_length=32, default=generate_donation_id, editable=False)
    participant = models.ForeignKey(
        Participant,
        on_delete=models.SET_NULL,
        related_name="donations",
        null=True,
        blank=True,
    )
    order_id = models.CharField(max_length=64, db_index=True)
    amount = models.DecimalField(max_digits=12, decimal_places=2)
    status = models.CharField(max_length=16, choices=Payment.STATUS_CHOICES, default=Payment.STATUS_PENDING)
    payment_type = models.CharField(max_length=64, blank=True, null=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["-created_at"]

    def __str__(self):
        return f"Donation {self.amount} for {self.order_id}"
