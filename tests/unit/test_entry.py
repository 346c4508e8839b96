"""
Unit tests for the entry model and JSON document conversion.
"""
import json
import uuid
from dataclasses import dataclass
from datetime import date

import pytest

from docstore.storage.entry import (
    ID_KEY,
    NIL_ID,
    BaseEntry,
    Entry,
    UntypedEntry,
    from_document,
    to_document,
)

from conftest import AUTHOR_ID, SELMA_BIRTH_DATE, Author, Book, Publisher


@dataclass
class Shelf(BaseEntry):
    label: str = ""
    books: list[uuid.UUID] | None = None
    opened: date | None = None
    weight: float = 0.0


@dataclass
class Required(BaseEntry):
    code: str = ""
    size: int = 0


@pytest.mark.unit
class TestIdentity:
    """Tests for the get_id/set_id contract."""

    def test_base_entry_defaults_to_nil(self):
        """Test that a fresh record entry has the zero identifier."""
        assert Author().get_id() == NIL_ID

    def test_base_entry_set_id(self):
        """Test that set_id replaces the identifier of a record entry."""
        author = Author(name="Selma")
        new = uuid.uuid4()
        author.set_id(new)

        assert author.get_id() == new
        assert author.id == new

    def test_untyped_entry_without_id_is_nil(self):
        """Test that an untyped entry without an ID key has the zero identifier."""
        data = UntypedEntry(json.loads('{"Title":"Pippi Långstrump","ISBN":"9789129703771"}'))

        assert data.get_id() == NIL_ID

    def test_untyped_entry_set_id_writes_canonical_string(self):
        """Test that set_id stores the canonical string and keeps other keys."""
        data = UntypedEntry({"Title": "Pippi Långstrump", "ISBN": "9789129703771"})
        new = uuid.uuid4()
        data.set_id(new)

        assert data[ID_KEY] == str(new)
        assert data.get_id() == new
        assert data["Title"] == "Pippi Långstrump"
        assert data["ISBN"] == "9789129703771"

    def test_untyped_entry_null_or_empty_id_is_nil(self):
        """Test that a null or empty ID counts as the zero identifier."""
        assert UntypedEntry({"ID": None}).get_id() == NIL_ID
        assert UntypedEntry({"ID": ""}).get_id() == NIL_ID

    def test_untyped_entry_rejects_malformed_id(self):
        """Test that a malformed or non-string ID raises ValueError."""
        with pytest.raises(ValueError):
            UntypedEntry({"ID": "not-a-uuid"}).get_id()
        with pytest.raises(ValueError):
            UntypedEntry({"ID": 12}).get_id()

    def test_both_representations_satisfy_the_protocol(self):
        """Test that record and untyped entries satisfy the Entry protocol."""
        assert isinstance(Book(), Entry)
        assert isinstance(UntypedEntry(), Entry)
        assert not isinstance({"ID": ""}, Entry)


@pytest.mark.unit
class TestDocuments:
    """Tests for to_document/from_document."""

    def test_typed_entry_document_keys(self):
        """Test that a record entry serializes its identity under the ID key."""
        book = Book(title="B", author=AUTHOR_ID, rating=2)
        book.set_id(AUTHOR_ID)

        doc = to_document(book)

        assert doc["ID"] == str(AUTHOR_ID)
        assert "id" not in doc
        assert doc["author"] == str(AUTHOR_ID)
        assert doc["rating"] == 2
        assert doc["publisher"] == {"ID": str(NIL_ID), "name": "", "city": ""}
        json.dumps(doc)

    def test_datetime_round_trip(self):
        """Test that timestamps survive a JSON round trip."""
        author = Author(name="Selma Lagerlöf", birth_date=SELMA_BIRTH_DATE)

        restored = from_document(json.loads(json.dumps(to_document(author))), Author)

        assert restored == author

    def test_nested_and_container_fields(self):
        """Test that lists of UUIDs, dates and floats decode into their field types."""
        ids = [uuid.uuid4(), uuid.uuid4()]
        shelf = Shelf(label="Nordic", books=ids, opened=date(2020, 5, 1), weight=3)

        restored = from_document(to_document(shelf), Shelf)

        assert restored.books == ids
        assert restored.opened == date(2020, 5, 1)
        assert restored.weight == 3.0

    def test_nested_record_decodes(self):
        """Test that a nested record field decodes into its dataclass."""
        doc = to_document(Book(title="B", publisher=Publisher(name="Bonniers", city="Stockholm")))

        restored = from_document(doc, Book)

        assert restored.publisher == Publisher(name="Bonniers", city="Stockholm")

    def test_unknown_keys_are_ignored_for_typed_entries(self):
        """Test that keys without a matching field are ignored for record entries."""
        restored = from_document({"title": "B", "pages": 123}, Book)

        assert restored.title == "B"
        assert restored.get_id() == NIL_ID

    def test_unknown_keys_pass_through_untyped_entries(self):
        """Test that untyped entries keep arbitrary nested keys."""
        doc = {"ID": str(AUTHOR_ID), "nested": {"deep": [1, 2, {"x": None}]}}

        restored = from_document(doc, UntypedEntry)

        assert isinstance(restored, UntypedEntry)
        assert restored == doc
        assert to_document(restored) == doc

    def test_type_mismatch_is_rejected(self):
        """Test that values of the wrong JSON type raise TypeError."""
        with pytest.raises(TypeError):
            from_document({"code": 5}, Required)
        with pytest.raises(TypeError):
            from_document({"size": True}, Required)
        with pytest.raises(TypeError):
            from_document({"size": "5"}, Required)

    def test_malformed_identifier_is_rejected(self):
        """Test that a malformed ID in a document raises ValueError."""
        with pytest.raises(ValueError):
            from_document({"ID": "nope"}, Required)

    def test_non_object_document_is_rejected(self):
        """Test that a document that is not a JSON object raises TypeError."""
        with pytest.raises(TypeError):
            from_document(["a", "b"], UntypedEntry)
