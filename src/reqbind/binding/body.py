from __future__ import annotations

import io
import logging
from typing import Optional

from reqbind.binding.media import MediaType
from reqbind.domain.errors import BodyDeserializationError, PayloadTooLarge
from reqbind.domain.models import RequestDescriptor

logger = logging.getLogger(__name__)


class BufferedBody:
    """
    Single-consumer view of a request body.

    The underlying stream is read at most once, bounded by ``max_bytes``,
    and closed when the context exits whether or not binding succeeded.
    Every later access is served from the buffer.
    """

    def __init__(
        self,
        request: RequestDescriptor,
        max_bytes: int = 1_048_576,
        default_charset: str = "utf-8",
    ) -> None:
        self._request = request
        self._max_bytes = max_bytes
        self._default_charset = default_charset
        self._data: Optional[bytes] = None
        self._closed = False

    def __enter__(self) -> "BufferedBody":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    @property
    def charset(self) -> str:
        ct = self._request.content_type
        if ct:
            try:
                cs = MediaType.parse(ct).charset
            except ValueError:
                cs = None
            if cs:
                return cs
        return self._default_charset

    def read_bytes(self) -> bytes:
        if self._data is not None:
            return self._data

        if self._request.body is not None:
            data = self._request.body
        elif self._request.stream is not None:
            if self._closed:
                raise BodyDeserializationError("Request body stream already closed")
            data = self._request.stream.read(self._max_bytes + 1) or b""
            self.close()
        else:
            data = b""

        if len(data) > self._max_bytes:
            raise PayloadTooLarge(f"Request body exceeds {self._max_bytes} bytes")

        logger.debug("buffered request body: %d bytes", len(data))
        self._data = data
        return data

    def text(self) -> str:
        try:
            return self.read_bytes().decode(self.charset)
        except (LookupError, UnicodeDecodeError) as e:
            raise BodyDeserializationError(f"Request body is not valid {self.charset} text") from e

    def open_stream(self) -> io.BytesIO:
        """A fresh in-memory stream over the buffered bytes."""
        return io.BytesIO(self.read_bytes())

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        stream = self._request.stream
        if stream is not None and hasattr(stream, "close"):
            stream.close()
