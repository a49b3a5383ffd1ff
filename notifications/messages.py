# etiket-backend/notifications/messages.py
"""
WhatsApp message templates. Participant-facing copy is in Indonesian.
"""
from decimal import Decimal

from django.conf import settings

TRANSFER_RULE = "━" * 20


def format_rupiah(amount) -> str:
    """150000 -> "Rp 150.000" (id-ID grouping)."""
    value = Decimal(str(amount or 0))
    if value == value.to_integral_value():
        text = f"{int(value):,}".replace(",", ".")
    else:
        text = f"{value:,.2f}".replace(",", "_").replace(".", ",").replace("_", ".")
    return f"Rp {text}"


def build_ticket_link(registration_id: str) -> str:
    return f"{settings.FRONTEND_URL}/ticket/{registration_id}"


def generate_registration_message(
    event_title,
    full_name,
    registration_id,
    ticket_link,
    ticket_name=None,
    ticket_price=None,
    custom_field_responses=(),
):
    lines = [
        "🎉 *PENDAFTARAN BERHASIL!*",
        "",
        "Terima kasih telah mendaftar untuk:",
        f"📌 *Event:* {event_title}",
        "",
        f"👤 *Nama:* {full_name}",
        f"🔖 *ID Registrasi:* {registration_id}",
    ]

    if ticket_name:
        lines.append(f"🎫 *Tiket:* {ticket_name}")

    if ticket_price and Decimal(str(ticket_price)) > 0:
        lines.append(f"💰 *Harga:* {format_rupiah(ticket_price)}")

    for label, response in custom_field_responses:
        if response:
            lines.append(f"📝 *{label}:* {response}")

    lines += [
        "",
        "🎫 *E-Ticket & QR Code:*",
        ticket_link,
        "",
        "Tunjukkan QR Code saat check-in.",
        "",
        "Sampai jumpa di acara! 🙏",
    ]
    return "\n".join(lines)


def generate_payment_pending_message(
    event_title,
    full_name,
    ticket_price,
    bank_name=None,
    account_holder=None,
    account_number=None,
):
    lines = [
        "✅ *REGISTRASI DITERIMA*",
        "",
        "Terima kasih telah mendaftar!",
        f"📌 *Event:* {event_title}",
        f"👤 *Nama:* {full_name}",
        f"💰 *Total:* {format_rupiah(ticket_price)}",
        "",
    ]

    if bank_name and account_holder and account_number:
        lines += [
            TRANSFER_RULE,
            "💳 *INFORMASI TRANSFER*",
            TRANSFER_RULE,
            "",
            f"Bank: *{bank_name}*",
            f"Atas Nama: *{account_holder}*",
            f"No. Rekening: *{account_number}*",
            "",
            "_Mohon transfer sesuai nominal dan kirim bukti transfer ke nomor ini_",
        ]
    else:
        lines.append("Silakan selesaikan pembayaran untuk mendapatkan E-Ticket Anda.")

    return "\n".join(lines)


def _custom_field_pairs(participant):
    return [
        (item.field.label, item.response)
        for item in participant.field_responses.select_related("field").order_by(
            "field__display_order", "field__id"
        )
    ]


def registration_message_for(participant) -> str:
    """Registration message with this participant's own ticket and answers."""
    ticket = participant.ticket_type
    return generate_registration_message(
        event_title=participant.event.title,
        full_name=participant.full_name,
        registration_id=participant.registration_id,
        ticket_link=build_ticket_link(participant.registration_id),
        ticket_name=ticket.name if ticket else None,
        ticket_price=ticket.price if ticket else None,
        custom_field_responses=_custom_field_pairs(participant),
    )


def payment_pending_message_for(participant) -> str:
    event = participant.event
    ticket = participant.ticket_type
    return generate_payment_pending_message(
        event_title=event.title,
        full_name=participant.full_name,
        ticket_price=ticket.price if ticket else 0,
        bank_name=event.bank_name,
        account_holder=event.account_holder_name,
        account_number=event.account_number,
    )
