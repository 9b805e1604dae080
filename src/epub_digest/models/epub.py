"""Data models for EPUB structure."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


class EpubMetadata(BaseModel):
    """Book-level metadata from the OPF package."""

    model_config = ConfigDict(frozen=True)

    title: str = "Unknown"
    author: str = "Unknown"
    publisher: str | None = None
    publish_date: datetime | None = None
    isbn: str | None = None
    language: str | None = None
    description: str | None = None


class ManifestItem(BaseModel):
    """Single file declared in the OPF manifest."""

    id: str
    href: str
    media_type: str = ""
    properties: str = ""


class SpineItem(BaseModel):
    """Entry in the linear reading order. Its position is the chapter index."""

    id: str
    href: str = ""
    media_type: str = ""


class TOCItem(BaseModel):
    """Node of the hierarchical table of contents."""

    id: str
    label: str
    href: str
    parent: str | None = None
    children: list["TOCItem"] = Field(default_factory=list)


class EpubParseResult(BaseModel):
    """Complete parsed EPUB structure."""

    metadata: EpubMetadata
    toc: list[TOCItem] = Field(default_factory=list)
    spine: list[SpineItem] = Field(default_factory=list)
    cover_path: str | None = None


class ChapterContent(BaseModel):
    """Cleaned text of one spine entry."""

    index: int
    href: str
    title: str | None = None
    content: str
