"""Subject/body templates for report notifications."""

from __future__ import annotations

from typing import NamedTuple

from .models import RecipientKind

_SUBJECTS: dict[RecipientKind, str] = {
    RecipientKind.ADMIN: "Unassigned Sales Report - {period}",
    RecipientKind.REPRESENTATIVE: "Your Sales Report - {period}",
}

_BODIES: dict[RecipientKind, str] = {
    RecipientKind.ADMIN: (
        "Dear {recipient},\n"
        "\n"
        "Please find attached the sales report for {period} containing customers "
        "without an assigned sales representative.\n"
        "\n"
        "Kindly review and assign sales representatives to these customers.\n"
        "\n"
        "Best regards,\n"
        "{sender}"
    ),
    RecipientKind.REPRESENTATIVE: (
        "Dear {recipient},\n"
        "\n"
        "Please find attached your monthly sales report for {period}.\n"
        "\n"
        "Best regards,\n"
        "{sender}"
    ),
}


class ComposedMessage(NamedTuple):
    subject: str
    body: str


def compose_message(
    kind: RecipientKind,
    *,
    recipient_name: str,
    sender_name: str,
    period_label: str,
) -> ComposedMessage:
    params = {"recipient": recipient_name, "sender": sender_name, "period": period_label}
    return ComposedMessage(
        subject=_SUBJECTS[kind].format(**params),
        body=_BODIES[kind].format(**params),
    )


__all__ = ["ComposedMessage", "compose_message"]
