import io
from decimal import Decimal

import pytest

from exceptions import ExceedsBalance, InvalidFile, NoCompany, UpstreamError, ValidationError
from models import Company, PayoutRequest, PayoutStatus
from services.payout_service import (
    InvoiceUpload,
    create_payout_from_balance,
    get_balance,
    list_payout_requests,
    map_payout_error,
    parse_amount,
    read_invoice_upload,
    submit_payout_from_balance,
    validate_invoice_file,
)
from tests.conftest import seed_company


def _balance(db, company_id):
    db.expire_all()
    return Decimal(str(db.get(Company, company_id).available_balance))


@pytest.mark.parametrize(
    "balance,amount",
    [("500.00", "0.01"), ("500.00", "123.45"), ("500.00", "500.00"), ("10.50", "10.50")],
)
def test_payout_debits_exactly_the_amount(db, balance, amount):
    company_id = seed_company(owner_id="user-1", balance=balance)

    payout_id = create_payout_from_balance(db, "user-1", Decimal(amount), description="June")

    assert _balance(db, company_id) == Decimal(balance) - Decimal(amount)
    payouts = db.query(PayoutRequest).all()
    assert len(payouts) == 1
    assert payouts[0].id == payout_id
    assert payouts[0].status is PayoutStatus.PENDING
    assert Decimal(str(payouts[0].amount)) == Decimal(amount)
    assert payouts[0].company_id == company_id


def test_exceeding_the_balance_changes_nothing(db):
    company_id = seed_company(owner_id="user-1", balance="100.00")

    with pytest.raises(ExceedsBalance):
        create_payout_from_balance(db, "user-1", Decimal("100.01"))

    assert _balance(db, company_id) == Decimal("100.00")
    assert db.query(PayoutRequest).count() == 0


def test_full_withdrawal_then_one_cent_more(db):
    company_id = seed_company(owner_id="user-1", balance="500.00")

    create_payout_from_balance(db, "user-1", Decimal("500.00"))
    assert _balance(db, company_id) == Decimal("0")

    with pytest.raises(ExceedsBalance):
        create_payout_from_balance(db, "user-1", Decimal("0.01"))
    assert _balance(db, company_id) == Decimal("0")
    assert db.query(PayoutRequest).count() == 1


def test_payouts_are_not_idempotent(db):
    company_id = seed_company(owner_id="user-1", balance="300.00")

    first = create_payout_from_balance(db, "user-1", Decimal("100.00"), "inv.pdf", "same")
    second = create_payout_from_balance(db, "user-1", Decimal("100.00"), "inv.pdf", "same")

    assert first != second
    assert db.query(PayoutRequest).count() == 2
    assert _balance(db, company_id) == Decimal("100.00")


def test_no_company(db):
    with pytest.raises(NoCompany):
        create_payout_from_balance(db, "nobody", Decimal("1.00"))


@pytest.mark.parametrize("amount", [Decimal("0"), Decimal("-5"), 5, "5.00"])
def test_amount_must_be_positive_decimal(db, amount):
    seed_company(owner_id="user-1", balance="10.00")
    with pytest.raises(ValidationError):
        create_payout_from_balance(db, "user-1", amount)


def test_failed_insert_rolls_back_the_debit(db, monkeypatch):
    company_id = seed_company(owner_id="user-1", balance="50.00")

    def broken_flush(*args, **kwargs):
        raise RuntimeError("insert failed")

    monkeypatch.setattr(db, "flush", broken_flush)
    with pytest.raises(RuntimeError):
        create_payout_from_balance(db, "user-1", Decimal("20.00"))
    monkeypatch.undo()

    assert _balance(db, company_id) == Decimal("50.00")
    assert db.query(PayoutRequest).count() == 0


@pytest.mark.parametrize("raw", ["", "abc", "0", "-1", "1.001", "NaN", "Infinity"])
def test_parse_amount_rejects(raw):
    with pytest.raises(ValidationError):
        parse_amount(raw)


def test_parse_amount_accepts_two_decimals():
    assert parse_amount(" 12.50 ") == Decimal("12.50")


def test_invoice_file_rules():
    validate_invoice_file("a.pdf", "application/pdf", 1024)
    validate_invoice_file("a.jpg", "image/jpg", 10 * 1024 * 1024)
    with pytest.raises(InvalidFile):
        validate_invoice_file("a.gif", "image/gif", 10)
    with pytest.raises(InvalidFile):
        validate_invoice_file("a.pdf", "application/pdf", 10 * 1024 * 1024 + 1)


def test_submit_uploads_under_the_callers_prefix(db, storage):
    seed_company(owner_id="user-1", balance="80.00")
    upload = InvoiceUpload("invoice.PDF", "application/pdf", b"%PDF-1.4")

    payout_id = submit_payout_from_balance(db, storage, "user-1", "30", "  May  ", upload)

    payout = db.get(PayoutRequest, payout_id)
    assert payout.invoice_url.startswith("user-1/")
    assert payout.invoice_url.endswith(".pdf")
    assert payout.description == "May"
    assert storage.blobs[payout.invoice_url][0] == b"%PDF-1.4"


def test_submit_rejects_bad_file_before_upload(db, storage):
    seed_company(owner_id="user-1", balance="80.00")
    upload = InvoiceUpload("x.exe", "application/octet-stream", b"MZ")

    with pytest.raises(InvalidFile):
        submit_payout_from_balance(db, storage, "user-1", "30", None, upload)
    assert storage.blobs == {}


def test_failed_payout_leaves_upload_in_place(db, storage):
    seed_company(owner_id="user-1", balance="10.00")
    upload = InvoiceUpload("inv.png", "image/png", b"png")

    with pytest.raises(ExceedsBalance):
        submit_payout_from_balance(db, storage, "user-1", "99", None, upload)
    assert len(storage.blobs) == 1


def test_map_payout_error_allowlist():
    assert isinstance(map_payout_error("ERROR: Payout exceeds available balance"), ExceedsBalance)
    assert isinstance(map_payout_error("No company found for user"), NoCompany)
    generic = map_payout_error('relation "companies" does not exist')
    assert isinstance(generic, UpstreamError)
    assert "relation" not in generic.message


def test_balance_and_listing(db):
    seed_company(owner_id="user-1", balance="40.00")
    assert get_balance(db, "user-2") == (Decimal("0"), Decimal("0"))

    create_payout_from_balance(db, "user-1", Decimal("15.00"))
    create_payout_from_balance(db, "user-1", Decimal("5.00"))

    available, pending = get_balance(db, "user-1")
    assert available == Decimal("20")
    assert pending == Decimal("0")
    assert len(list_payout_requests(db, "user-1")) == 2
    assert list_payout_requests(db, "user-2") == []


class _CountingReader(io.BytesIO):
    def __init__(self, data):
        super().__init__(data)
        self.requested = []

    def read(self, size=-1):
        self.requested.append(size)
        return super().read(size)


def test_upload_read_is_bounded(monkeypatch):
    monkeypatch.setattr("services.payout_service.MAX_INVOICE_SIZE", 8)
    oversized = _CountingReader(b"x" * 1000)

    with pytest.raises(InvalidFile):
        read_invoice_upload(oversized, "big.pdf", "application/pdf")
    assert oversized.requested == [9]
    assert oversized.tell() == 9


def test_upload_within_limit_is_read_whole(monkeypatch):
    monkeypatch.setattr("services.payout_service.MAX_INVOICE_SIZE", 8)
    upload = read_invoice_upload(io.BytesIO(b"%PDF-1.4"), "a.pdf", "application/pdf")
    assert upload.data == b"%PDF-1.4"
    assert upload.size == 8
