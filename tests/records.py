"""Record types shared by the test suite."""

from __future__ import annotations

from versionic import Record


class Book(Record):
    title: str
    text: str | None = None


class Article(Record):
    title: str
    text: str | None = None
    published: bool = False

    versioned_attribute_names = ["title", "text"]
    versioning_options = {"editing_time": 300}
