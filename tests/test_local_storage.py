"""Tests for the guest on-disk receipt store."""

import json
from datetime import datetime, timezone

import pytest

from app.core.exceptions import ReceiptConflictError, ReceiptSourceError
from app.schemas.receipt import ReceiptCreate
from app.services.local_storage_service import LocalStorageService


@pytest.fixture
def storage(tmp_path):
    return LocalStorageService(base_dir=tmp_path)


@pytest.fixture
def new_receipt():
    return ReceiptCreate(
        store_name="Trader Joe's",
        purchase_date=datetime(2026, 3, 14, 18, 5, tzinfo=timezone.utc),
        total_amount=21.40,
        total_tax=1.40,
        savings=2.00,
        items=[
            {"name": "Coffee", "category": "Groceries", "price": 22.00},
            {"name": "Coupon", "category": "Groceries", "price": -2.00, "is_discount": True},
        ],
    )


def test_missing_file_means_no_receipts(storage):
    assert storage.get_receipts("guest-1") == []


def test_add_then_read_back(storage, new_receipt, tmp_path):
    saved = storage.add_receipt("guest-1", new_receipt)

    assert saved.id
    receipts = storage.get_receipts("guest-1")
    assert receipts == [saved]
    assert receipts[0].items[1].is_discount is True

    raw = json.loads((tmp_path / "guest-1.json").read_text())
    assert raw[0]["purchase_date"] == "2026-03-14T18:05:00"
    assert raw[0]["store_name"] == "Trader Joe's"


def test_client_supplied_id_is_kept(storage, new_receipt):
    saved = storage.add_receipt("guest-1", new_receipt.model_copy(update={"id": "r-42"}))
    assert saved.id == "r-42"


def test_duplicate_id_is_rejected(storage, new_receipt):
    receipt = new_receipt.model_copy(update={"id": "same"})
    storage.add_receipt("guest-1", receipt)

    with pytest.raises(ReceiptConflictError):
        storage.add_receipt("guest-1", receipt)

    assert [r.id for r in storage.get_receipts("guest-1")] == ["same"]


def test_same_id_allowed_for_different_guests(storage, new_receipt):
    receipt = new_receipt.model_copy(update={"id": "same"})
    storage.add_receipt("guest-1", receipt)
    storage.add_receipt("guest-2", receipt)

    assert [r.id for r in storage.get_receipts("guest-2")] == ["same"]


def test_guests_are_isolated(storage, new_receipt):
    storage.add_receipt("guest-1", new_receipt)

    assert storage.get_receipts("guest-2") == []


def test_corrupted_file_raises_source_error(storage, tmp_path):
    (tmp_path / "guest-1.json").write_text("{not json")

    with pytest.raises(ReceiptSourceError) as exc_info:
        storage.get_receipts("guest-1")

    assert exc_info.value.details["error_type"] == "decoding"


def test_invalid_records_raise_source_error(storage, tmp_path):
    (tmp_path / "guest-1.json").write_text(json.dumps([{"store_name": "x"}]))

    with pytest.raises(ReceiptSourceError):
        storage.get_receipts("guest-1")


@pytest.mark.parametrize("guest_id", ["../etc/passwd", "", "a b", "x" * 65])
def test_rejects_unsafe_guest_ids(storage, guest_id):
    with pytest.raises(ReceiptSourceError):
        storage.get_receipts(guest_id)
