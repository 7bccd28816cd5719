import pytest

from catalog_scan.catalog import CatalogStore, ProductRecord
from catalog_scan.manual import ManualAddResult, ManualEntry
from catalog_scan.results import ResultList
from catalog_scan.status import StatusBoard, StatusLevel
from catalog_scan.storage import MemoryBlobStore


@pytest.fixture
def catalog():
    store = CatalogStore(MemoryBlobStore())
    store.replace({"123": ProductRecord("Soap", "pcs", 2.5)})
    return store


@pytest.fixture
def status(clock):
    return StatusBoard("", clock=clock)


@pytest.fixture
def results():
    return ResultList()


@pytest.fixture
def highlights():
    return []


@pytest.fixture
def manual(catalog, results, status, highlights):
    return ManualEntry(catalog, results, status, status_seconds=3, on_highlight=highlights.append)


def test_add_then_duplicate(manual, results, status, highlights, clock):
    first = manual.add("  123 ")
    assert first.result is ManualAddResult.added
    assert first.barcode == "123"
    assert first.clear_input
    assert status.current().text == "Added!"

    second = manual.add("123")
    assert second.result is ManualAddResult.already_in_list
    assert not second.clear_input
    assert status.current().text == "Already in list!"
    assert highlights == ["123"]
    assert len(results) == 1

    clock.advance(3)
    assert status.current().text == ""


@pytest.mark.parametrize("raw", ["", "   ", None])
def test_empty_input(manual, results, raw):
    outcome = manual.add(raw)

    assert outcome.result is ManualAddResult.empty_input
    assert outcome.message == "Please enter a barcode."
    assert outcome.level is StatusLevel.warning
    assert len(results) == 0


def test_unknown_barcode(manual, results):
    outcome = manual.add("999")

    assert outcome.result is ManualAddResult.not_found
    assert outcome.message == "Barcode not found!"
    assert outcome.level is StatusLevel.error
    assert len(results) == 0


def test_catalog_not_loaded(results, status):
    manual = ManualEntry(CatalogStore(MemoryBlobStore()), results, status)

    outcome = manual.add("123")

    assert outcome.result is ManualAddResult.catalog_not_loaded
    assert status.current().text == "Product data not loaded."


def test_to_dict(manual):
    assert manual.add("123").to_dict() == {
        "result": "added",
        "barcode": "123",
        "message": "Added!",
        "level": "success",
        "clear_input": True,
    }
