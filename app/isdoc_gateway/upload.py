"""
Upload handling for the extraction endpoint.

Streams the multipart body through python-multipart and keeps only the
``pdf`` file part, in memory. Checks run as the body arrives: the content
type when the part headers are complete, the size ceiling on every chunk.
Nothing is spooled to disk and a rejected upload is not read any further.
"""

import logging
from dataclasses import dataclass

from fastapi import Request
from python_multipart.exceptions import MultipartParseError
from python_multipart.multipart import MultipartParser, parse_options_header

from .exceptions import (
    FileTooLargeError,
    MalformedUploadError,
    MissingFileError,
    TooManyFilesError,
    UnsupportedFileTypeError,
)

logger = logging.getLogger(__name__)

PDF_FIELD_NAME = "pdf"
PDF_CONTENT_TYPE = "application/pdf"


@dataclass(frozen=True)
class UploadedPdf:
    """A validated upload held fully in memory for the lifetime of a request."""

    filename: str | None
    content_type: str
    content: bytes

    @property
    def size(self) -> int:
        return len(self.content)


def _size_limit_message(max_bytes: int) -> str:
    return f"File too large. Maximum size is {max_bytes // (1024 * 1024)}MB."


class PdfPartCollector:
    """
    Callbacks for MultipartParser that collect the ``pdf`` file part.

    Only one file part is accepted. Data of other parts is discarded but
    still counted against the size ceiling.
    """

    def __init__(self, max_bytes: int):
        self.max_bytes = max_bytes
        self.filename: str | None = None
        self.content_type: str | None = None
        self.content = bytearray()
        self.found = False
        self._file_count = 0
        self._discarded = 0
        self._headers: dict[bytes, bytes] = {}
        self._header_field = b""
        self._header_value = b""
        self._collecting = False

    def callbacks(self) -> dict:
        return {
            "on_part_begin": self.on_part_begin,
            "on_header_field": self.on_header_field,
            "on_header_value": self.on_header_value,
            "on_header_end": self.on_header_end,
            "on_headers_finished": self.on_headers_finished,
            "on_part_data": self.on_part_data,
            "on_part_end": self.on_part_end,
        }

    def on_part_begin(self) -> None:
        self._headers = {}
        self._collecting = False

    def on_header_field(self, data: bytes, start: int, end: int) -> None:
        self._header_field += data[start:end]

    def on_header_value(self, data: bytes, start: int, end: int) -> None:
        self._header_value += data[start:end]

    def on_header_end(self) -> None:
        self._headers[self._header_field.lower()] = self._header_value
        self._header_field = b""
        self._header_value = b""

    def on_headers_finished(self) -> None:
        _, options = parse_options_header(self._headers.get(b"content-disposition", b""))
        if b"filename" not in options:
            return

        self._file_count += 1
        if self._file_count > 1:
            raise TooManyFilesError()
        if options.get(b"name") != PDF_FIELD_NAME.encode():
            return

        # Type gate: reject before any of the part's data is taken
        content_type = self._headers.get(b"content-type", b"").decode("latin-1")
        if content_type != PDF_CONTENT_TYPE:
            raise UnsupportedFileTypeError()

        self.found = True
        self._collecting = True
        self.filename = options[b"filename"].decode("utf-8", errors="replace")
        self.content_type = content_type

    def on_part_data(self, data: bytes, start: int, end: int) -> None:
        if self._collecting:
            self.content += data[start:end]
            size = len(self.content)
        else:
            self._discarded += end - start
            size = self._discarded
        if size > self.max_bytes:
            raise FileTooLargeError(_size_limit_message(self.max_bytes))

    def on_part_end(self) -> None:
        self._collecting = False

    def build(self) -> UploadedPdf:
        """
        Raises:
            MissingFileError: No ``pdf`` file part was received.
        """
        if not self.found:
            raise MissingFileError()
        return UploadedPdf(
            filename=self.filename,
            content_type=self.content_type or PDF_CONTENT_TYPE,
            content=bytes(self.content),
        )


async def receive_pdf_upload(request: Request) -> UploadedPdf:
    """
    FastAPI dependency that extracts the ``pdf`` file from a multipart form.

    Raises:
        MissingFileError: No ``pdf`` file field in the request.
        UnsupportedFileTypeError: Declared content type is not application/pdf.
        FileTooLargeError: The file exceeds the configured maximum size.
        TooManyFilesError: More than one file part was sent.
        MalformedUploadError: The multipart body cannot be parsed.
    """
    settings = request.app.state.settings

    content_type, params = parse_options_header(request.headers.get("content-type", ""))
    boundary = params.get(b"boundary")
    if content_type != b"multipart/form-data" or not boundary:
        raise MissingFileError()

    collector = PdfPartCollector(settings.max_upload_bytes)
    parser = MultipartParser(boundary, collector.callbacks())
    try:
        async for chunk in request.stream():
            parser.write(chunk)
        parser.finalize()
    except MultipartParseError as e:
        logger.warning("Could not parse multipart upload: %s", e)
        raise MalformedUploadError() from e

    upload = collector.build()
    logger.info("Received PDF upload: %s (%d bytes)", upload.filename, upload.size)
    return upload
