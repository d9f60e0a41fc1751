"""Per-group report dispatch: recipient resolution, storage, delivery.

``ReportDispatcher.dispatch`` never raises. Every group ends in exactly one
terminal :class:`~sales_reports.models.DispatchStatus`:

- ``delivered``: the mail service accepted the message;
- ``skipped``: the recipient has no contact address, or the mail service
  raised :class:`~sales_reports.errors.DeliveryError`;
- ``failed``: anything else went wrong (storage, unexpected errors).

Identity lookups are best-effort: a failed or empty lookup falls back to a
generic display name and no contact address.
"""

from __future__ import annotations

from functools import cached_property

from .collaborators import ArtifactStore, IdentityLookup, MailService
from .errors import DeliveryError
from .logging_setup import get_logger
from .messages import compose_message
from .models import (
    ArtifactHandle,
    DispatchOutcome,
    DispatchStatus,
    Identity,
    OutboundEmail,
    RecipientKind,
    Report,
)

ADMIN_FALLBACK_NAME = "Administrator"
REP_FALLBACK_NAME = "Sales Representative"
SENDER_FALLBACK_NAME = "Sales Reporting"

_logger = get_logger("sales_reports.dispatch")


class ReportDispatcher:
    """Send each rendered report to its representative or the administrator."""

    def __init__(
        self,
        *,
        identities: IdentityLookup,
        store: ArtifactStore,
        mail: MailService,
        admin_id: str,
        sender_id: str | None = None,
    ) -> None:
        if not admin_id or not str(admin_id).strip():
            raise ValueError("admin_id is required")
        self._identities = identities
        self._store = store
        self._mail = mail
        self.admin_id = str(admin_id).strip()
        self.sender_id = (sender_id or "").strip() or self.admin_id

    # ---- Identity resolution ------------------------------------------------

    def resolve_identity(self, identity_id: str, *, fallback_name: str) -> Identity:
        try:
            found = self._identities.lookup(identity_id)
        except Exception as exc:  # noqa: BLE001 - lookups are best-effort
            _logger.warning("Identity lookup failed for %s: %s", identity_id, exc)
            found = None
        if found is None:
            _logger.info("No identity found for %s; using %r", identity_id, fallback_name)
            return Identity(id=identity_id, display_name=fallback_name, email=None)
        name = (found.display_name or "").strip() or fallback_name
        email = (found.email or "").strip() or None
        return Identity(id=found.id or identity_id, display_name=name, email=email)

    def resolve_recipient(self, report: Report) -> Identity:
        if report.recipient_kind is RecipientKind.ADMIN:
            return self.resolve_identity(self.admin_id, fallback_name=ADMIN_FALLBACK_NAME)
        return self.resolve_identity(report.group_key, fallback_name=REP_FALLBACK_NAME)

    @cached_property
    def sender(self) -> Identity:
        return self.resolve_identity(self.sender_id, fallback_name=SENDER_FALLBACK_NAME)

    # ---- Dispatch -------------------------------------------------------------

    def dispatch(self, report: Report) -> DispatchOutcome:
        kind = report.recipient_kind
        recipient = self.resolve_recipient(report)
        handle: ArtifactHandle | None = None

        def _outcome(status: DispatchStatus, reason: str) -> DispatchOutcome:
            return DispatchOutcome(
                group_key=report.group_key,
                status=status,
                reason=reason,
                recipient_kind=kind,
                recipient_id=recipient.id,
                recipient_name=recipient.display_name,
                artifact_id=handle.id if handle is not None else None,
                line_count=report.line_count,
            )

        try:
            composed = compose_message(
                kind,
                recipient_name=recipient.display_name,
                sender_name=self.sender.display_name,
                period_label=report.period.label,
            )
            handle = self._store.save(report.filename, report.csv_text)
            if not recipient.email:
                reason = f"no contact address for {kind.value} {recipient.id}"
                _logger.warning("Email skipped for group %s: %s", report.group_key, reason)
                return _outcome(DispatchStatus.SKIPPED, reason)
            attachment = self._store.read(handle)
            self._mail.send(
                OutboundEmail(
                    sender=self.sender,
                    recipient=recipient,
                    subject=composed.subject,
                    body=composed.body,
                    attachment=handle,
                ),
                attachment,
            )
        except DeliveryError as exc:
            _logger.warning("Email skipped for group %s: %s", report.group_key, exc)
            return _outcome(DispatchStatus.SKIPPED, str(exc) or "delivery refused")
        except Exception as exc:  # noqa: BLE001 - contained per group
            _logger.error("Dispatch failed for group %s", report.group_key, exc_info=True)
            return _outcome(DispatchStatus.FAILED, f"{type(exc).__name__}: {exc}")

        _logger.info(
            "Email sent for group %s to %s %s (%d lines)",
            report.group_key,
            kind.value,
            recipient.id,
            report.line_count,
        )
        return _outcome(DispatchStatus.DELIVERED, f"sent to {recipient.email}")


__all__ = [
    "ADMIN_FALLBACK_NAME",
    "REP_FALLBACK_NAME",
    "SENDER_FALLBACK_NAME",
    "ReportDispatcher",
]
