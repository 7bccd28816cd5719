"""Tests for product records, price parsing and the catalog store."""

import json

import pytest

from catalog_scan.catalog import (
    CatalogStore,
    ProductRecord,
    deserialize_catalog,
    lookup,
    parse_price,
    serialize_catalog,
)
from catalog_scan.errors import PersistError
from catalog_scan.storage import MemoryBlobStore

KEY = "barcodeScannerProductData"


@pytest.fixture
def blob_store():
    return MemoryBlobStore()


@pytest.fixture
def store(blob_store):
    return CatalogStore(blob_store, storage_key=KEY)


@pytest.fixture
def sample_catalog():
    return {
        "123": ProductRecord(name="Soap", uom="pcs", price=2.5),
        "0042": ProductRecord(name="Rice", uom="kg", price=12.0),
    }


class TestParsePrice:
    @pytest.mark.parametrize(
        "raw, expected",
        [
            ("2.5", 2.5),
            ("  7 ", 7.0),
            ("2.50 EUR", 2.5),
            (".5", 0.5),
            ("1e3", 1000.0),
            ("-5", -5.0),
        ],
    )
    def test_parses_leading_number(self, raw, expected):
        assert parse_price(raw) == expected

    @pytest.mark.parametrize("raw", ["abc", "", None, "$3.00", "Infinity", "0"])
    def test_unparsable_defaults_to_zero(self, raw):
        assert parse_price(raw) == 0


def test_lookup_exact_match_only(sample_catalog):
    assert lookup(sample_catalog, "123").name == "Soap"
    assert lookup(sample_catalog, "999") is None
    # no leading-zero normalisation
    assert lookup(sample_catalog, "42") is None
    assert lookup(sample_catalog, " 123") is None


def test_serialized_form_uses_name_uom_price(sample_catalog):
    payload = json.loads(serialize_catalog(sample_catalog))
    assert payload["123"] == {"name": "Soap", "uom": "pcs", "price": 2.5}


@pytest.mark.parametrize(
    "blob",
    [
        b"not json",
        b"[1, 2, 3]",
        b'{"123": "Soap"}',
        b'{"123": {"name": "Soap", "uom": "pcs"}}',
        b'{"123": {"name": "Soap", "uom": "pcs", "price": "2.5"}}',
        b"\xff\xfe",
        pytest.param(
            b'{"123": {"name": "Soap", "uom": "pcs", "price": 1' + b"0" * 400 + b"}}",
            id="price-overflows-float",
        ),
        pytest.param(b"[" * 100000 + b"]" * 100000, id="deeply-nested"),
    ],
)
def test_deserialize_rejects_malformed(blob):
    with pytest.raises(ValueError):
        deserialize_catalog(blob)


class TestCatalogStore:
    def test_save_then_restore_round_trip(self, blob_store, store, sample_catalog):
        store.replace(sample_catalog)
        store.save()

        fresh = CatalogStore(blob_store, storage_key=KEY)
        restored = fresh.restore()

        assert restored == sample_catalog
        assert fresh.snapshot() == sample_catalog
        assert fresh.get("123") == ProductRecord("Soap", "pcs", 2.5)

    def test_restore_missing_key_returns_none(self, store):
        assert store.restore() is None
        assert store.is_empty()

    def test_restore_corrupted_deletes_key(self, blob_store, store):
        blob_store.set(KEY, b"{broken")

        assert store.restore() is None
        assert store.is_empty()
        assert blob_store.get(KEY) is None

    def test_restore_empty_catalog_is_absent_but_kept(self, blob_store, store):
        blob_store.set(KEY, b"{}")

        assert store.restore() is None
        assert store.is_empty()
        assert blob_store.get(KEY) == b"{}"

    def test_save_empty_catalog_is_noop(self, blob_store, store, sample_catalog):
        store.replace(sample_catalog)
        store.save()
        persisted = blob_store.get(KEY)

        store.replace({})
        store.save()

        assert blob_store.get(KEY) == persisted

    def test_clear_removes_memory_and_persisted(self, blob_store, store, sample_catalog):
        store.replace(sample_catalog)
        store.save()

        store.clear()

        assert store.is_empty()
        assert len(store) == 0
        assert blob_store.get(KEY) is None

    def test_replace_is_wholesale(self, store, sample_catalog):
        store.replace(sample_catalog)
        store.replace({"9": ProductRecord("Tea", "box", 3.0)})

        assert "123" not in store
        assert "9" in store
        assert len(store) == 1

    def test_product_record_is_immutable(self):
        record = ProductRecord("Soap", "pcs", 2.5)
        with pytest.raises(AttributeError):
            record.price = 3.0


class FailingDeleteStore(MemoryBlobStore):
    def delete(self, key):
        raise PersistError(f"Could not delete {key!r}: database is locked")


def test_restore_out_of_range_price_deletes_key(blob_store, store):
    blob_store.set(KEY, b'{"1": {"name": "a", "uom": "b", "price": 1' + b"0" * 400 + b"}}")

    assert store.restore() is None
    assert store.is_empty()
    assert blob_store.get(KEY) is None


def test_clear_survives_failed_delete(sample_catalog):
    blob_store = FailingDeleteStore()
    store = CatalogStore(blob_store, storage_key=KEY)
    store.replace(sample_catalog)
    store.save()

    store.clear()

    assert store.is_empty()
    assert store.discard_persisted() is False
