"""Exception hierarchy for parsing, content resolution and AI configuration."""


class EpubDigestError(Exception):
    """Base class for all epub-digest errors."""


class EpubParseError(EpubDigestError):
    """The archive is not a usable EPUB (missing container, OPF or package node)."""

    def __init__(self, message: str, source: str | None = None):
        self.message = message
        self.source = source
        super().__init__(message)


class ChapterIndexError(EpubDigestError):
    """Requested chapter index is outside the spine."""

    def __init__(self, index: int, spine_length: int):
        self.index = index
        self.spine_length = spine_length
        super().__init__(
            f"Chapter index {index} out of range (spine has {spine_length} item(s))"
        )


class ChapterNotFoundError(EpubDigestError):
    """Spine entry could not be located inside the archive."""

    def __init__(self, href: str):
        self.href = href
        super().__init__(f"Chapter file not found in archive: {href}")


class EmptyChapterError(EpubDigestError):
    """Chapter resolved but contains no text to summarize."""

    def __init__(self, index: int):
        self.index = index
        super().__init__(f"Chapter {index} has no text content")


class BookNotFoundError(EpubDigestError):
    """Book id is not registered in the library."""

    def __init__(self, book_id: str):
        self.book_id = book_id
        super().__init__(f"Book not found: {book_id}")


class AIConfigError(EpubDigestError):
    """AI is disabled or misconfigured (provider, API key, base URL)."""


class ProviderError(EpubDigestError):
    """Error returned by a language-model provider."""

    def __init__(self, error_type: str, message: str, code: int | None = None):
        self.error_type = error_type
        self.message = message
        self.code = code
        super().__init__(f"{error_type}: {message}")
