"""Text sources: labelled things that can be opened as a stream of lines.

A Source is opened with ``with source.open() as lines:`` and yields an
iterable of text lines. The stream belongs to whoever opened it and is
closed when the ``with`` block exits, on success or failure. Every failure
to open or read surfaces as SourceIOError, with the underlying error chained.

Example:
    >>> source = FileSource("Alice in Wonderland", "data/alice30.txt")
    >>> with source.open() as lines:
    ...     first = next(iter(lines))
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Iterable, Iterator
from contextlib import AbstractContextManager, contextmanager
from pathlib import Path
from urllib.parse import urlparse

import httpx

from concur.foundation.config import get_settings
from concur.foundation.errors import SourceIOError


class Source(ABC):
    """A labelled, openable text stream."""

    __slots__ = ("label",)

    def __init__(self, label: str) -> None:
        self.label = label

    def describe(self) -> str:
        """Human-readable label for reporting."""
        return self.label

    @abstractmethod
    def open(self) -> AbstractContextManager[Iterable[str]]:
        """Context manager yielding the source's lines.

        Raises:
            SourceIOError: The stream cannot be opened or a read fails
        """

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.label!r})"


class FileSource(Source):
    """Lines of a local text file (undecodable bytes are replaced, not fatal)."""

    __slots__ = ("path", "encoding")

    def __init__(self, label: str, path: str | Path, *, encoding: str = "utf-8") -> None:
        super().__init__(label)
        self.path = Path(path)
        self.encoding = encoding

    @contextmanager
    def open(self) -> Iterator[Iterable[str]]:
        try:
            stream = self.path.open(encoding=self.encoding, errors="replace")
        except OSError as e:
            raise SourceIOError(self.label, f"cannot open {self.path}: {e.strerror or e}") from e
        with stream:
            try:
                yield stream
            except OSError as e:
                raise SourceIOError(self.label, f"read from {self.path} failed: {e.strerror or e}") from e


class UrlSource(Source):
    """Lines of an HTTP(S) resource fetched with a single GET (no retries).

    A non-2xx status is a failure. Timeouts and redirect handling default to
    the ``CONCUR_HTTP_*`` settings; ``transport`` lets callers substitute an
    ``httpx`` transport (e.g. ``httpx.MockTransport``).
    """

    __slots__ = ("url", "timeout", "follow_redirects", "user_agent", "transport")

    def __init__(
        self,
        label: str,
        url: str,
        *,
        timeout: float | None = None,
        follow_redirects: bool | None = None,
        user_agent: str | None = None,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        super().__init__(label)
        self.url = url
        self.timeout = timeout
        self.follow_redirects = follow_redirects
        self.user_agent = user_agent
        self.transport = transport

    def _client(self) -> httpx.Client:
        http = get_settings().http
        return httpx.Client(
            timeout=self.timeout if self.timeout is not None else http.timeout,
            follow_redirects=self.follow_redirects if self.follow_redirects is not None else http.follow_redirects,
            headers={"User-Agent": self.user_agent or http.user_agent},
            transport=self.transport,
        )

    @contextmanager
    def open(self) -> Iterator[Iterable[str]]:
        try:
            with self._client() as client, client.stream("GET", self.url) as response:
                response.raise_for_status()
                yield response.iter_lines()
        except httpx.HTTPStatusError as e:
            raise SourceIOError(self.label, f"HTTP {e.response.status_code} from {self.url}") from e
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            raise SourceIOError(self.label, f"GET {self.url} failed: {e}") from e


def parse_source(spec: str) -> Source:
    """Build a source from ``LABEL=LOCATION``; http(s) locations become UrlSource, anything else FileSource.

    Without a label (no ``=``, or a bare URL) the location doubles as the label.
    """
    label, sep, location = spec.partition("=")
    if not sep or "://" in label:
        label = location = spec
    label, location = label.strip(), location.strip()
    if not location:
        raise ValueError(f"Source spec {spec!r} has no location")
    if urlparse(location).scheme in ("http", "https"):
        return UrlSource(label or location, location)
    return FileSource(label or location, location)


def default_sources() -> list[Source]:
    """The classic long-word-count corpus: three local books, three fetched from Project Gutenberg."""
    return [
        FileSource("Alice in Wonderland", "data/alice30.txt"),
        FileSource("Count of Monte Cristo", "data/crsto10.txt"),
        FileSource("War and Peace", "data/war-and-peace.txt"),
        UrlSource("Frankenstein", "https://www.gutenberg.org/files/84/84-0.txt"),
        UrlSource("Pride and Prejudice", "https://www.gutenberg.org/files/1342/1342-0.txt"),
        UrlSource("Great Gatsby", "https://www.gutenberg.org/files/64317/64317-0.txt"),
    ]
