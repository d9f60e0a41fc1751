from __future__ import annotations

import pytest

from sales_reports.dispatch import ADMIN_FALLBACK_NAME, REP_FALLBACK_NAME, ReportDispatcher
from sales_reports.models import UNASSIGNED, DispatchStatus, LineItem, RecipientKind
from sales_reports.periods import month_period
from sales_reports.render import build_report
from tests.helpers.fakes import (
    FakeDirectory,
    MemoryArtifactStore,
    RecordingMailService,
    identity,
)

SEPT = month_period(2026, 9)


def _report(key: str, n: int = 1):
    items = [
        LineItem(
            customer_name=f"Customer {i}",
            customer_email="c@x.com",
            document_number=f"SO{i}",
            amount="1.00",
            group_key=key,
        )
        for i in range(n)
    ]
    return build_report(key, items, period=SEPT)


def _directory(**extra) -> FakeDirectory:
    people = {
        "-5": identity("-5", "Ada Admin", "admin@x.com"),
        "12": identity("12", "Jo Smith", "jo@x.com"),
        "13": identity("13", "No Mail"),
    }
    people.update(extra)
    return FakeDirectory(people)


def _dispatcher(directory=None, mail=None, store=None, **kw) -> ReportDispatcher:
    return ReportDispatcher(
        identities=directory or _directory(),
        store=store or MemoryArtifactStore(),
        mail=mail or RecordingMailService(),
        admin_id=kw.pop("admin_id", "-5"),
        **kw,
    )


def test_rep_report_goes_to_rep_with_rep_template() -> None:
    mail = RecordingMailService()
    store = MemoryArtifactStore()
    outcome = _dispatcher(mail=mail, store=store).dispatch(_report("12", n=2))

    assert outcome.status is DispatchStatus.DELIVERED
    assert outcome.reason == "sent to jo@x.com"
    assert outcome.recipient_kind is RecipientKind.REPRESENTATIVE
    assert outcome.recipient_id == "12"
    assert outcome.line_count == 2
    assert outcome.artifact_id == "mem-Sales_Report_12_September_2026.csv"

    (message, attachment), = mail.sent
    assert message.subject == "Your Sales Report - September 2026"
    assert message.body.startswith("Dear Jo Smith,")
    assert message.body.endswith("Best regards,\nAda Admin")
    assert message.sender.id == "-5"
    assert attachment.decode("utf-8") == store.files["Sales_Report_12_September_2026.csv"]


def test_unassigned_report_goes_to_admin_with_admin_template() -> None:
    mail = RecordingMailService()
    outcome = _dispatcher(mail=mail).dispatch(_report(UNASSIGNED))

    assert outcome.status is DispatchStatus.DELIVERED
    assert outcome.recipient_kind is RecipientKind.ADMIN
    assert outcome.recipient_id == "-5"
    (message, _), = mail.sent
    assert message.recipient.email == "admin@x.com"
    assert message.subject == "Unassigned Sales Report - September 2026"
    assert "without an assigned sales representative" in message.body


def test_rep_without_email_is_skipped_but_artifact_is_stored() -> None:
    mail = RecordingMailService()
    store = MemoryArtifactStore()
    outcome = _dispatcher(mail=mail, store=store).dispatch(_report("13"))

    assert outcome.status is DispatchStatus.SKIPPED
    assert outcome.reason == "no contact address for representative 13"
    assert mail.sent == []
    assert "Sales_Report_13_September_2026.csv" in store.files


def test_unknown_rep_uses_fallback_name_and_is_skipped() -> None:
    outcome = _dispatcher().dispatch(_report("99"))
    assert outcome.status is DispatchStatus.SKIPPED
    assert outcome.recipient_name == REP_FALLBACK_NAME


def test_identity_lookup_failure_is_not_fatal() -> None:
    directory = _directory()
    directory.failing.add("-5")
    mail = RecordingMailService()
    outcome = _dispatcher(directory=directory, mail=mail).dispatch(_report("12"))

    # Sender falls back to a generic name; the rep still gets the report.
    assert outcome.status is DispatchStatus.DELIVERED
    (message, _), = mail.sent
    assert message.body.endswith("Best regards,\nSales Reporting")

    admin_outcome = _dispatcher(directory=directory).dispatch(_report(UNASSIGNED))
    assert admin_outcome.status is DispatchStatus.SKIPPED
    assert admin_outcome.recipient_name == ADMIN_FALLBACK_NAME


def test_delivery_error_is_skipped() -> None:
    mail = RecordingMailService(refuse={"12"})
    outcome = _dispatcher(mail=mail).dispatch(_report("12"))
    assert outcome.status is DispatchStatus.SKIPPED
    assert "mailbox unavailable" in outcome.reason


def test_unexpected_mail_error_is_failed() -> None:
    mail = RecordingMailService(explode={"12"})
    outcome = _dispatcher(mail=mail).dispatch(_report("12"))
    assert outcome.status is DispatchStatus.FAILED
    assert outcome.reason == "RuntimeError: mail service crashed"


def test_storage_error_is_failed() -> None:
    class _BrokenStore(MemoryArtifactStore):
        def save(self, name, content):
            raise OSError("disk full")

    outcome = _dispatcher(store=_BrokenStore()).dispatch(_report("12"))
    assert outcome.status is DispatchStatus.FAILED
    assert outcome.artifact_id is None
    assert "disk full" in outcome.reason


def test_explicit_sender_is_used() -> None:
    directory = _directory(**{"7": identity("7", "Reporting Bot", "bot@x.com")})
    mail = RecordingMailService()
    _dispatcher(directory=directory, mail=mail, sender_id="7").dispatch(_report("12"))
    (message, _), = mail.sent
    assert message.sender.display_name == "Reporting Bot"


def test_admin_id_is_required() -> None:
    with pytest.raises(ValueError):
        _dispatcher(admin_id=" ")
