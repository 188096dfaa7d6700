"""Tests for snapshot creation on save.

Covers: creating and updating records, the editing window, future-dated
edits, and editing stored versions through a resolved copy.

Run with: pytest tests/test_versioning.py -v
"""

from __future__ import annotations

from datetime import datetime, timezone

import pytest

from tests.records import Article, Book


def utc(value: str) -> datetime:
    return datetime.fromisoformat(value).replace(tzinfo=timezone.utc)


# ---------------------------------------------------------------------------
# Creating
# ---------------------------------------------------------------------------


class TestCreating:
    def test_creating_does_not_snapshot(self, book: Book) -> None:
        assert book.snapshots.count() == 0

    def test_creating_sets_version_number_1(self, book: Book) -> None:
        assert book.version_number == 1
        assert book.reload().version_number == 1


# ---------------------------------------------------------------------------
# Updating
# ---------------------------------------------------------------------------


class TestUpdating:
    def test_no_snapshot_if_update_fails(self, book: Book) -> None:
        assert book.update(title=None) is False
        assert book.snapshots.count() == 0

    def test_no_snapshot_unless_versioned_attributes_changed(self, book: Book) -> None:
        assert book.update(title="title 1") is True
        assert book.snapshots.count() == 0
        assert book.version_number == 1

    def test_previous_update_time_becomes_snapshot_creation_time(
        self, frozen_clock
    ) -> None:
        past = frozen_clock.set("2011-01-01 01:00")
        book = Book.create(title="title 1", text="text 1")
        frozen_clock.set("2011-01-01 02:00")
        book.update(title="title 2")

        assert book.snapshots.count() == 1
        assert book.snapshots.all()[0].created_at == past

    def test_given_update_time_becomes_snapshot_creation_time(self, book: Book) -> None:
        future = utc("2012-01-01 00:00")
        version = book.version("next")
        version.update(title="THE FUTURE!", updated_at=future)
        book.reload()

        assert book.snapshots.count() == 1
        assert book.snapshots.all()[0].created_at == future
        assert book.title == "title 1"

    def test_first_update_stores_previous_attributes(self, book: Book) -> None:
        book.update(title="title 2")

        assert book.snapshots.count() == 1
        snapshot = book.snapshots.latest()
        assert snapshot.versioned_attributes == {"title": "title 1", "text": "text 1"}
        assert snapshot.number == 1
        assert book.version_number == 2

    def test_three_versions(self, book_with_three_versions: Book) -> None:
        book = book_with_three_versions.reload()

        assert book.version_number == 3
        assert book.snapshots.numbers() == [1, 2]
        first, second = book.snapshots.all()
        assert first.versioned_attributes == {"title": "title 1", "text": "text 1"}
        assert second.versioned_attributes == {"title": "title 2", "text": "text 2"}

    @pytest.mark.parametrize("updates", [1, 2, 5])
    def test_n_updates_leave_n_minus_one_snapshots(self, updates: int) -> None:
        book = Book.create(title="title 1")
        for index in range(2, updates + 1):
            book.update(title=f"title {index}")

        assert book.version_number == updates
        assert book.snapshots.numbers() == list(range(1, updates))

    def test_nil_attributes_are_versioned_too(self) -> None:
        book = Book.create(title="Moby Dick")
        book.update(text="Call me Ishmael.")

        snapshot = book.reload().snapshots.all()[0]
        assert snapshot.versioned_attributes == {"title": "Moby Dick", "text": None}
        previous = book.version("previous")
        assert previous.title == "Moby Dick"
        assert previous.text is None


# ---------------------------------------------------------------------------
# Editing window (Article: editing_time = 300)
# ---------------------------------------------------------------------------


class TestEditingWindow:
    def test_options_are_set(self) -> None:
        assert Article.versioning_options.editing_time == 300
        assert Article.versioning_options == {"editing_time": 300}
        assert Book.versioning_options == {}

    def test_update_within_window_creates_no_snapshot(self, frozen_clock) -> None:
        frozen_clock.set("2011-06-25 13:10")
        article = Article.create(title="title 1", text="text 1")
        frozen_clock.set("2011-06-25 13:11")
        article.update(text="text 3")
        article.reload()

        assert article.text == "text 3"
        assert article.snapshots.count() == 0

    def test_updates_60_and_400_seconds_apart(self, frozen_clock) -> None:
        frozen_clock.set("2011-06-25 13:00:00")
        quick = Article.create(title="title 1", text="text 1")
        frozen_clock.set("2011-06-25 13:01:00")
        quick.update(text="text 2")
        assert quick.snapshots.count() == 0

        frozen_clock.set("2011-06-25 14:00:00")
        slow = Article.create(title="title 1", text="text 1")
        frozen_clock.set("2011-06-25 14:06:40")
        slow.update(text="text 2")
        assert slow.snapshots.count() == 1

    @pytest.fixture()
    def article(self, frozen_clock) -> Article:
        """An Article with two past versions, last edited 2011-06-25 13:10."""
        frozen_clock.set("2011-01-01 00:00")
        article = Article.create(title="title 1", text="text 1")
        frozen_clock.set("2011-01-01 01:00")
        article.update(title="old title", text="old text")
        frozen_clock.set("2011-06-25 13:10")
        article.update(title="title 2", text="text 2")
        return article

    def test_update_before_window_passed(self, article: Article, frozen_clock) -> None:
        frozen_clock.set("2011-06-25 13:11")
        article.update(text="text 3")
        article.reload()

        assert article.text == "text 3"
        assert article.snapshots.count() == 2

    def test_update_after_window_passed(self, article: Article, frozen_clock) -> None:
        frozen_clock.set("2011-06-25 13:16")
        article.update(text="text 3")
        article.reload()

        assert article.text == "text 3"
        assert article.snapshots.count() == 3
        assert article.snapshots.all()[-1].versioned_attributes["title"] == "title 2"
        assert article.snapshots.all()[-1].number == 3
        assert article.version_number == 4

    def test_unversioned_change_does_not_reset_window(
        self, article: Article, frozen_clock
    ) -> None:
        frozen_clock.set("2011-06-25 13:16")
        article.update(published=True)
        article.reload()
        assert article.snapshots.count() == 2

        article.update(text="text 3")
        assert article.reload().snapshots.count() == 3

    def test_update_of_rolled_back_version(self, article: Article, frozen_clock) -> None:
        article.migrate("previous")
        article.reload()
        assert article.snapshots.count() == 3

        frozen_clock.set("2011-06-25 13:11")
        article.update(text="text 3")
        assert article.reload().snapshots.count() == 4

    def test_naive_future_date_inside_window(self, frozen_clock) -> None:
        frozen_clock.set("2011-06-25 13:10")
        article = Article.create(title="title 1", text="text 1")
        frozen_clock.set("2011-06-25 13:11")

        assert article.update(title="THE FUTURE!", updated_at=datetime(2012, 1, 1)) is True
        assert article.updated_at == utc("2012-01-01 00:00")
        assert article.reload().snapshots.count() == 1

    @pytest.mark.parametrize("later", ["2011-06-25 13:11", "2011-06-25 13:16"])
    def test_future_dated_record_always_snapshots(self, frozen_clock, later: str) -> None:
        frozen_clock.set("2011-06-25 13:10")
        article = Article.create(title="title 1", text="text 1")
        article.update(title="THIS IS THE FUTURE!", updated_at=utc("2012-01-01 00:00"))
        article.reload()
        assert article.snapshots.count() == 1

        frozen_clock.set(later)
        article.update(text="text 3")
        article.reload()
        assert article.text == "text 3"
        assert article.snapshots.count() == 2


# ---------------------------------------------------------------------------
# Unversioned attributes
# ---------------------------------------------------------------------------


class TestUnversionedAttributes:
    def test_unversioned_change_creates_no_snapshot(self, frozen_clock) -> None:
        created = frozen_clock.set("2011-07-14 13:00")
        article = Article.create(title="title 1", text="text 1")
        frozen_clock.set("2011-07-14 14:00")
        article.update(published=True)

        assert article.snapshots.count() == 0
        assert article.reload().version_updated_at == created

    def test_version_updated_at_defaults_to_update_time(self, frozen_clock) -> None:
        frozen_clock.set("2011-07-14 13:00")
        article = Article.create(title="title 1", text="text 1")
        assert article.version_updated_at == article.updated_at

    def test_version_updated_at_follows_versioned_changes_only(self, frozen_clock) -> None:
        frozen_clock.set("2011-07-14 13:00")
        article = Article.create(title="title 1", text="text 1")
        changed = frozen_clock.set("2011-07-14 14:00")
        article.update(title="Something new")
        assert article.reload().version_updated_at == changed

        frozen_clock.set("2011-07-14 15:00")
        article.update(published=True)
        assert article.reload().version_updated_at == changed

    def test_previous_version_keeps_unversioned_values(self, frozen_clock) -> None:
        frozen_clock.set("2011-07-14 16:00")
        article = Article.create(title="Moby Dick", published=False)
        frozen_clock.set("2011-07-14 17:00")
        article.update(text="Call me Ishmael.", published=True)

        previous = article.version("previous")
        assert previous.published is True
        assert previous.text is None


# ---------------------------------------------------------------------------
# Editing stored versions through a resolved copy
# ---------------------------------------------------------------------------


class TestUpdatingAVersion:
    def test_previous_version_gets_the_changes(self, book: Book) -> None:
        book.update(title="title 2")
        assert book.version(1).update(title="new title") is True

        assert book.reload().version(1).title == "new title"

    def test_previous_version_leaves_record_alone(self, book: Book) -> None:
        book.update(title="title 2")
        before = Book.find(book.id)
        book.version(1).update(title="new title")

        assert book.reload() == before

    def test_invalid_change_is_not_applied(self, book: Book) -> None:
        book.update(title="title 2")
        assert book.version(1).update(title=None) is False
        assert book.reload().version(1).title == "title 1"

    def test_current_version_changes_the_record(self, book: Book) -> None:
        book.version(1).update(title="new title")

        assert book.reload().title == "new title"
        assert book.version(1).title == "new title"
        assert book.snapshots.count() == 0

    def test_reverted_version_changes_record_and_snapshot(self, book: Book) -> None:
        book.update(text="text 2")
        book.undo()
        book.redo()

        book.version(2).update(text="new text")
        assert book.reload().text == "new text"
        assert book.snapshots.all()[-1].versioned_attributes["text"] == "new text"

    def test_saving_without_changes_succeeds(self, book_with_two_versions: Book) -> None:
        version = book_with_two_versions.version(1)
        assert version.save() is True

    def test_unchanged_new_version_gives_back_its_number(self, book: Book) -> None:
        version = book.version("new")
        assert version.version_number == 2

        assert version.save() is True
        assert version.version_number == 1
        assert book.snapshots.count() == 0
