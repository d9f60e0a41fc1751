from __future__ import annotations

import smtplib
from pathlib import Path

import pytest

import sales_reports.mail as mail_mod
from sales_reports.errors import DeliveryError
from sales_reports.mail import LoggingMailService, SmtpMailService, build_email_message
from sales_reports.models import ArtifactHandle, Identity, OutboundEmail
from sales_reports.storage import LocalArtifactStore, sanitize_name

# ---- Artifact store ------------------------------------------------------------


def test_save_and_read_round_trip(tmp_path: Path) -> None:
    store = LocalArtifactStore(tmp_path / "reports")
    handle = store.save("Sales_Report_12_September_2026.csv", "a,b\n1,2\n")

    assert handle.id == "Sales_Report_12_September_2026.csv"
    assert Path(handle.path).is_file()
    assert store.read(handle) == b"a,b\n1,2\n"
    assert not list((tmp_path / "reports").glob("*.tmp"))


def test_save_overwrites_same_name(tmp_path: Path) -> None:
    store = LocalArtifactStore(tmp_path)
    store.save("r.csv", "old\n")
    handle = store.save("r.csv", "new\n")
    assert store.read(handle) == b"new\n"


def test_failed_write_leaves_no_temp_file(tmp_path: Path) -> None:
    store = LocalArtifactStore(tmp_path / "out", encoding="ascii")
    with pytest.raises(UnicodeEncodeError):
        store.save("r.csv", "Zoë,1\n")
    assert list((tmp_path / "out").iterdir()) == []


def test_names_cannot_escape_the_root(tmp_path: Path) -> None:
    store = LocalArtifactStore(tmp_path / "reports")
    handle = store.save("../evil.csv", "x")
    assert Path(handle.path).parent == (tmp_path / "reports").resolve()
    assert sanitize_name("a/b\\c.csv") == "a_b_c.csv"
    with pytest.raises(ValueError):
        sanitize_name("..")


def test_read_rejects_foreign_handles(tmp_path: Path) -> None:
    store = LocalArtifactStore(tmp_path / "a")
    foreign = tmp_path / "b.csv"
    foreign.write_text("x")
    with pytest.raises(ValueError):
        store.read(ArtifactHandle(id="b", name="b.csv", path=str(foreign)))


# ---- Mail --------------------------------------------------------------------


def _message(email: str | None = "jo@x.com") -> OutboundEmail:
    return OutboundEmail(
        sender=Identity(id="-5", display_name="Ada Admin", email="ada@x.com"),
        recipient=Identity(id="12", display_name="Jo Smith", email=email),
        subject="Your Sales Report - September 2026",
        body="Dear Jo Smith,\n\nBest regards,\nAda Admin",
        attachment=ArtifactHandle(id="r", name="Sales_Report_12_September_2026.csv", path="/r"),
    )


def test_email_message_has_headers_and_csv_attachment() -> None:
    msg = build_email_message(_message(), b"h\n1\n", from_address="reports@x.com")

    assert msg["To"] == "Jo Smith <jo@x.com>"
    assert msg["From"] == "Ada Admin <reports@x.com>"
    assert msg["Reply-To"] == "ada@x.com"
    (attachment,) = list(msg.iter_attachments())
    assert attachment.get_filename() == "Sales_Report_12_September_2026.csv"
    assert attachment.get_content_type() == "text/csv"


def test_email_message_requires_recipient_address() -> None:
    with pytest.raises(DeliveryError):
        build_email_message(_message(email=None), b"", from_address="reports@x.com")


class _FakeSMTP:
    instances: list[_FakeSMTP] = []

    def __init__(self, host, port, timeout=None):
        self.host, self.port = host, port
        self.started_tls = False
        self.logged_in: tuple[str, str] | None = None
        self.sent = []
        self.refused: dict = {}
        self.raise_on_send: Exception | None = None
        _FakeSMTP.instances.append(self)

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        return False

    def starttls(self):
        self.started_tls = True

    def login(self, user, password):
        self.logged_in = (user, password)

    def send_message(self, msg):
        if self.raise_on_send is not None:
            raise self.raise_on_send
        self.sent.append(msg)
        return self.refused


@pytest.fixture
def fake_smtp(monkeypatch: pytest.MonkeyPatch):
    _FakeSMTP.instances = []
    monkeypatch.setattr(mail_mod.smtplib, "SMTP", _FakeSMTP)
    return _FakeSMTP


def test_smtp_service_sends_with_starttls_and_login(fake_smtp) -> None:
    service = SmtpMailService(
        host="smtp.x.com", from_address="reports@x.com", username="u", password="p"
    )
    service.send(_message(), b"h\n")

    (conn,) = fake_smtp.instances
    assert (conn.host, conn.port) == ("smtp.x.com", 587)
    assert conn.started_tls
    assert conn.logged_in == ("u", "p")
    assert conn.sent[0]["Subject"] == "Your Sales Report - September 2026"


def test_smtp_refusal_becomes_delivery_error(fake_smtp, monkeypatch) -> None:
    original_init = _FakeSMTP.__init__

    def refusing_init(self, *a, **kw):
        original_init(self, *a, **kw)
        self.raise_on_send = smtplib.SMTPRecipientsRefused({"jo@x.com": (550, b"no")})

    monkeypatch.setattr(_FakeSMTP, "__init__", refusing_init)
    service = SmtpMailService(host="smtp.x.com", from_address="reports@x.com", starttls=False)
    with pytest.raises(DeliveryError, match="recipient refused"):
        service.send(_message(), b"h\n")


def test_smtp_connection_error_becomes_delivery_error(monkeypatch) -> None:
    def _refuse(*a, **kw):
        raise ConnectionRefusedError("connection refused")

    monkeypatch.setattr(mail_mod.smtplib, "SMTP", _refuse)
    service = SmtpMailService(host="smtp.x.com", from_address="reports@x.com")
    with pytest.raises(DeliveryError, match="SMTP delivery failed"):
        service.send(_message(), b"h\n")


def test_logging_mail_service_records_without_sending() -> None:
    service = LoggingMailService()
    service.send(_message(), b"h\n")
    assert [m.recipient.id for m in service.sent] == ["12"]
    with pytest.raises(DeliveryError):
        service.send(_message(email=None), b"h\n")
