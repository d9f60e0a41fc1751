from __future__ import annotations

from decimal import Decimal

import pytest

from sales_reports.errors import MalformedRowError
from sales_reports.models import UNASSIGNED, EntityRef, RawTransactionRow
from sales_reports.normalizer import (
    NormalizationStats,
    RepFallbackPolicy,
    format_amount,
    normalize_row,
    normalize_rows,
)
from tests.helpers.fakes import FakeDirectory, row


def test_full_row_maps_every_field() -> None:
    item = normalize_row(
        row("1", customer="Acme", email="a@x.com", doc="SO1", amount="100", rep="12")
    )
    assert item.customer_name == "Acme"
    assert item.customer_email == "a@x.com"
    assert item.document_number == "SO1"
    assert item.amount == "100.00"
    assert item.group_key == "12"
    assert not item.is_unassigned


def test_missing_values_get_defaults() -> None:
    item = normalize_row(RawTransactionRow(internal_id="9"))
    assert item.customer_name == "Unknown"
    assert item.customer_email == "No Email"
    assert item.document_number == ""
    assert item.amount == "0.00"
    assert item.group_key == UNASSIGNED
    assert item.is_unassigned


def test_blank_strings_count_as_missing() -> None:
    item = normalize_row(row("1", customer="  ", email="", doc=" ", amount=" "))
    assert (item.customer_name, item.customer_email, item.document_number, item.amount) == (
        "Unknown",
        "No Email",
        "",
        "0.00",
    )


def test_values_are_stored_unescaped() -> None:
    item = normalize_row(row("1", customer='Acme, Inc. "West"'))
    assert item.customer_name == 'Acme, Inc. "West"'


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        ("1234.5", "1234.50"),
        ("1,234.567", "1234.57"),
        ("$99", "99.00"),
        ("(12.50)", "-12.50"),
        ("-0.005", "-0.01"),
        ("0.005", "0.01"),
        (Decimal("7.1"), "7.10"),
        (None, "0.00"),
    ],
)
def test_format_amount(raw, expected) -> None:
    assert format_amount(raw) == expected


@pytest.mark.parametrize("raw", ["abc", "12..5", "NaN", "Infinity"])
def test_unparseable_amount_is_malformed(raw: str) -> None:
    with pytest.raises(MalformedRowError) as ei:
        normalize_row(row("42", amount=raw))
    assert ei.value.row_id == "42"


def test_not_a_row_is_malformed() -> None:
    with pytest.raises(MalformedRowError):
        normalize_row({"id": "1"})  # type: ignore[arg-type]


def test_search_result_mapping_is_accepted() -> None:
    result = {
        "id": "77",
        "values": {
            "tranid": "SO77",
            "entity": [{"value": "c1", "text": "Globex"}],
            "email.customer": "g@x.com",
            "amount": "5",
            "salesrep": {"value": "12", "text": "Jo Smith"},
        },
    }
    (item,) = list(normalize_rows([result]))
    assert item.customer_name == "Globex"
    assert item.document_number == "SO77"
    assert item.group_key == "12"


def test_normalize_rows_skips_malformed_and_counts() -> None:
    stats = NormalizationStats()
    rows = [
        row("1", amount="10", rep="12"),
        row("2", amount="ten"),
        {"id": "3", "values": "not-a-mapping"},
        row("4", amount="5"),
    ]
    items = list(normalize_rows(rows, stats=stats))
    assert [i.amount for i in items] == ["10.00", "5.00"]
    assert stats.seen == 4
    assert stats.skipped == 2
    assert stats.normalized == 2


def test_customer_default_policy_assigns_rep() -> None:
    directory = FakeDirectory(default_reps={"c1": "15"})
    item = normalize_row(
        row("1", customer_id="c1"),
        policy=RepFallbackPolicy.CUSTOMER_DEFAULT,
        rep_lookup=directory,
    )
    assert item.group_key == "15"


def test_customer_default_policy_lookup_failure_leaves_row_unassigned() -> None:
    directory = FakeDirectory(failing={"c1"})
    item = normalize_row(
        row("1", customer_id="c1"),
        policy=RepFallbackPolicy.CUSTOMER_DEFAULT,
        rep_lookup=directory,
    )
    assert item.group_key == UNASSIGNED


def test_none_policy_ignores_customer_default() -> None:
    directory = FakeDirectory(default_reps={"c1": "15"})
    item = normalize_row(row("1", customer_id="c1"), rep_lookup=directory)
    assert item.group_key == UNASSIGNED


def test_explicit_rep_wins_over_customer_default() -> None:
    directory = FakeDirectory(default_reps={"c1": "15"})
    item = normalize_row(
        RawTransactionRow(
            internal_id="1",
            customer=EntityRef(id="c1", name="Acme"),
            sales_rep=EntityRef(id="12", name="Jo"),
        ),
        policy=RepFallbackPolicy.CUSTOMER_DEFAULT,
        rep_lookup=directory,
    )
    assert item.group_key == "12"


@pytest.mark.parametrize("raw", ["customer-default", "CUSTOMER_DEFAULT", " customer_default "])
def test_policy_parse(raw: str) -> None:
    assert RepFallbackPolicy.parse(raw) is RepFallbackPolicy.CUSTOMER_DEFAULT


def test_policy_parse_rejects_unknown() -> None:
    with pytest.raises(ValueError):
        RepFallbackPolicy.parse("round-robin")


@pytest.mark.parametrize("raw", ["1e30", "1" * 29])
def test_amount_beyond_decimal_precision_is_malformed(raw: str) -> None:
    with pytest.raises(MalformedRowError, match="out of range") as ei:
        normalize_row(row("42", amount=raw))
    assert ei.value.row_id == "42"


def test_non_string_text_fields_are_stringified() -> None:
    raw = RawTransactionRow(internal_id="1", document_number=12345)  # type: ignore[arg-type]
    item = normalize_row(raw)
    assert item.document_number == "12345"


def test_wrong_field_shape_is_malformed() -> None:
    with pytest.raises(MalformedRowError, match="unexpected row shape"):
        normalize_row(RawTransactionRow(internal_id="1", customer="Acme"))  # type: ignore[arg-type]


def test_normalize_rows_skips_rows_that_raise_anything(monkeypatch: pytest.MonkeyPatch) -> None:
    import sales_reports.normalizer as normalizer_mod

    real_normalize = normalizer_mod.normalize_row

    def flaky(raw, **kw):
        if raw.internal_id == "2":
            raise KeyError("lost column")
        return real_normalize(raw, **kw)

    monkeypatch.setattr(normalizer_mod, "normalize_row", flaky)
    stats = NormalizationStats()
    rows = [row("1", amount="1"), row("2"), row("3", amount="1e30"), row("4", amount="4")]

    items = list(normalize_rows(rows, stats=stats))

    assert [i.amount for i in items] == ["1.00", "4.00"]
    assert (stats.seen, stats.skipped) == (4, 2)


def test_errors_from_the_row_iterable_propagate() -> None:
    def rows():
        yield row("1")
        raise ConnectionError("search aborted")

    with pytest.raises(ConnectionError):
        list(normalize_rows(rows()))
