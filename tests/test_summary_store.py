"""Tests for persisted summaries and the book registry."""

import pytest

from epub_digest.errors import EpubParseError
from epub_digest.storage.books import BookRepository
from epub_digest.storage.summary_store import SummaryStore


def test_save_and_get(database):
    store = SummaryStore(database)
    saved = store.save("book", 0, "Intro", "text", "m")

    loaded = store.get("book", 0)
    assert loaded.id == saved.id
    assert loaded.chapter_title == "Intro"
    assert loaded.summary == "text"


def test_save_overwrites_same_chapter(database):
    store = SummaryStore(database)
    first = store.save("book", 0, None, "old", "m1")
    second = store.save("book", 0, None, "new", "m2")

    assert first.id != second.id
    assert store.get("book", 0).summary == "new"
    assert store.get("book", 0).model == "m2"
    assert len(store.list_for_book("book")) == 1


def test_list_ordered_by_chapter(database):
    store = SummaryStore(database)
    store.save("book", 2, None, "c", "m")
    store.save("book", 0, None, "a", "m")
    store.save("other", 1, None, "x", "m")

    assert [s.chapter_index for s in store.list_for_book("book")] == [0, 2]


def test_delete(database):
    store = SummaryStore(database)
    store.save("book", 0, None, "a", "m")

    assert store.delete("book", 0) is True
    assert store.get("book", 0) is None
    assert store.delete("book", 0) is False


def test_book_registry(database, epub_file):
    books = BookRepository(database)
    record = books.add(epub_file)

    assert record.title == "Test Book"
    assert record.author == "Jane Doe"
    assert books.get(record.id).file_path == str(epub_file.resolve())
    assert books.add(epub_file).id == record.id
    assert [b.id for b in books.list_books()] == [record.id]

    assert books.remove(record.id) is True
    assert books.get(record.id) is None


def test_removing_book_drops_its_summaries(database, epub_file):
    books = BookRepository(database)
    store = SummaryStore(database)
    record = books.add(epub_file)
    store.save(record.id, 0, None, "a", "m")
    store.save(record.id, 1, None, "b", "m")
    store.save("other", 0, None, "c", "m")

    assert books.remove(record.id) is True
    assert store.list_for_book(record.id) == []
    assert len(store.list_for_book("other")) == 1
    assert books.remove(record.id) is False


def test_book_registry_rejects_invalid_epub(database, tmp_path):
    path = tmp_path / "bad.epub"
    path.write_bytes(b"nope")
    with pytest.raises(EpubParseError):
        BookRepository(database).add(path)
