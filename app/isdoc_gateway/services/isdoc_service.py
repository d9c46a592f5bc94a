"""
ISDOC extraction from PDF documents using pypdf.

ISDOC invoices are embedded in PDFs as file attachments with an ``.isdoc``
extension. This module finds the attachment and converts its XML content
into a JSON-friendly document.
"""

import io
import json
import logging
import xml.etree.ElementTree as ET
from typing import Any, Protocol

from pydantic import BaseModel, Field
from pypdf import PdfReader
from pypdf.errors import PyPdfError

logger = logging.getLogger(__name__)

ISDOC_EXTENSION = ".isdoc"
ISDOC_ROOT_ELEMENT = "Invoice"


class IsdocExtractionError(Exception):
    """Raised when a PDF or its ISDOC attachment cannot be read."""

    pass


class IsdocDocument(BaseModel):
    """An ISDOC invoice extracted from a PDF attachment."""

    version: str | None = Field(default=None, description="ISDOC schema version")
    namespace: str | None = Field(default=None, description="XML namespace of the invoice")
    content: dict[str, Any] = Field(
        default_factory=dict,
        description="Invoice elements keyed by their local names",
    )

    def to_json(self) -> str:
        """Serialize the invoice to JSON text."""
        payload = {"version": self.version, **self.content}
        return json.dumps(payload, ensure_ascii=False)


class IsdocProvider(Protocol):
    """Contract for anything able to pull ISDOC data out of PDF bytes."""

    def has_isdoc(self, pdf_bytes: bytes) -> bool: ...

    def extract_isdoc(self, pdf_bytes: bytes) -> IsdocDocument | None: ...


def _local_name(tag: str) -> str:
    """Strip the ``{namespace}`` prefix from an ElementTree tag."""
    return tag.rsplit("}", 1)[-1]


def element_to_value(element: ET.Element) -> Any:
    """
    Convert an XML element into a JSON-friendly value.

    Leaf elements become their text (None when empty). Elements with
    attributes or children become dicts; repeated children become lists and
    mixed text is stored under ``value``.
    """
    text = (element.text or "").strip()
    children = list(element)

    if not children and not element.attrib:
        return text or None

    result: dict[str, Any] = {
        _local_name(name): value for name, value in element.attrib.items()
    }
    for child in children:
        name = _local_name(child.tag)
        value = element_to_value(child)
        if name in result:
            existing = result[name]
            if not isinstance(existing, list):
                result[name] = [existing]
            result[name].append(value)
        else:
            result[name] = value

    if text:
        result["value"] = text
    return result


class IsdocService:
    """
    Service for locating and decoding ISDOC attachments in PDFs.
    """

    def _open(self, pdf_bytes: bytes) -> PdfReader:
        if not pdf_bytes:
            raise IsdocExtractionError("Empty PDF file provided")
        try:
            return PdfReader(io.BytesIO(pdf_bytes))
        except (PyPdfError, ValueError) as e:
            raise IsdocExtractionError(f"Invalid or corrupted PDF file: {e}") from e

    def _find_isdoc_attachment(self, reader: PdfReader) -> tuple[str, bytes] | None:
        try:
            attachments = reader.attachments
            for name in attachments:
                if name.lower().endswith(ISDOC_EXTENSION):
                    contents = attachments[name]
                    if contents:
                        return name, contents[0]
        except (PyPdfError, KeyError, ValueError) as e:
            raise IsdocExtractionError(f"Could not read PDF attachments: {e}") from e
        return None

    def has_isdoc(self, pdf_bytes: bytes) -> bool:
        """
        Check whether a PDF carries an embedded ISDOC attachment.

        Raises:
            IsdocExtractionError: If the PDF cannot be parsed.
        """
        reader = self._open(pdf_bytes)
        return self._find_isdoc_attachment(reader) is not None

    def extract_isdoc(self, pdf_bytes: bytes) -> IsdocDocument | None:
        """
        Extract the embedded ISDOC invoice.

        Returns:
            The decoded invoice, or None if the PDF has no ISDOC attachment.

        Raises:
            IsdocExtractionError: If the PDF or the ISDOC XML is invalid.
        """
        reader = self._open(pdf_bytes)
        attachment = self._find_isdoc_attachment(reader)
        if attachment is None:
            return None

        name, xml_bytes = attachment
        logger.info("Decoding ISDOC attachment %s (%d bytes)", name, len(xml_bytes))

        try:
            root = ET.fromstring(xml_bytes)
        except ET.ParseError as e:
            raise IsdocExtractionError(f"Invalid ISDOC XML in {name}: {e}") from e

        if _local_name(root.tag) != ISDOC_ROOT_ELEMENT:
            raise IsdocExtractionError(
                f"Unexpected ISDOC root element: {_local_name(root.tag)}"
            )

        namespace = root.tag[1:].split("}", 1)[0] if root.tag.startswith("{") else None
        content = element_to_value(root)
        if not isinstance(content, dict):
            content = {}
        version = content.pop("version", None)

        return IsdocDocument(version=version, namespace=namespace, content=content)


# Singleton instance for convenience
_isdoc_service: IsdocService | None = None


def get_isdoc_service() -> IsdocService:
    """Get or create the ISDOC service singleton."""
    global _isdoc_service
    if _isdoc_service is None:
        _isdoc_service = IsdocService()
    return _isdoc_service
