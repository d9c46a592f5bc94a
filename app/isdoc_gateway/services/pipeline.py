"""
Request pipeline for ISDOC extraction.

Persists the validated upload to a temporary file, runs the extraction
provider against it and translates provider results into an
ExtractionOutcome. Extraction-domain failures are returned as values;
only unexpected faults propagate.
"""

import json
import logging
import os
import tempfile
import threading
from collections.abc import AsyncIterator, Callable
from contextlib import asynccontextmanager
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any, TypeVar

import anyio
import anyio.to_thread
from starlette.concurrency import run_in_threadpool

from ..upload import UploadedPdf
from .isdoc_service import IsdocProvider

logger = logging.getLogger(__name__)

T = TypeVar("T")

ARTIFACT_PREFIX = "isdoc_"
ARTIFACT_SUFFIX = ".pdf"


class FailureReason(str, Enum):
    """Reasons a PDF did not yield usable ISDOC data."""

    NO_STRUCTURED_DATA = "no-structured-data"
    EXTRACTION_FAILED = "extraction-failed"
    PARSE_FAILED = "parse-failed"

    @property
    def message(self) -> str:
        return FAILURE_MESSAGES[self]


FAILURE_MESSAGES = {
    FailureReason.NO_STRUCTURED_DATA: "No ISDOC data found in PDF",
    FailureReason.EXTRACTION_FAILED: "ISDOC data extraction failed",
    FailureReason.PARSE_FAILED: "Failed to parse ISDOC data",
}


@dataclass(frozen=True)
class ExtractionSuccess:
    """Extracted invoice data, already parsed into plain JSON types."""

    document: dict[str, Any]


@dataclass(frozen=True)
class ExtractionFailure:
    """A handled extraction failure."""

    reason: FailureReason

    @property
    def message(self) -> str:
        return self.reason.message


ExtractionOutcome = ExtractionSuccess | ExtractionFailure


def _write_artifact(data: bytes, directory: Path) -> Path:
    # mkstemp creates the file exclusively, so concurrent requests never share a path
    fd, name = tempfile.mkstemp(prefix=ARTIFACT_PREFIX, suffix=ARTIFACT_SUFFIX, dir=directory)
    with os.fdopen(fd, "wb") as f:
        f.write(data)
    return Path(name)


def _remove_artifact(path: Path) -> None:
    path.unlink(missing_ok=True)


@asynccontextmanager
async def temporary_artifact(data: bytes, directory: Path) -> AsyncIterator[Path]:
    """
    Write ``data`` to a uniquely named file in ``directory`` for the
    duration of the block. The file is deleted on every exit path.
    """
    path = await run_in_threadpool(_write_artifact, data, directory)
    try:
        yield path
    finally:
        await run_in_threadpool(_remove_artifact, path)
        logger.debug("Removed temporary artifact %s", path)


class ExtractionPipeline:
    """
    Orchestrates a validated upload through ISDOC extraction.

    Args:
        provider: Object implementing has_isdoc/extract_isdoc.
        temp_dir: Directory for temporary artifacts.
        timeout_seconds: Upper bound for each provider call.
        max_threads: Provider calls allowed to run at once.
    """

    def __init__(
        self,
        provider: IsdocProvider,
        temp_dir: Path,
        timeout_seconds: float = 30.0,
        max_threads: int = 8,
    ):
        self.provider = provider
        self.temp_dir = Path(temp_dir)
        self.timeout_seconds = timeout_seconds
        self.max_threads = max_threads
        self._limiter: anyio.CapacityLimiter | None = None
        self._running = 0
        self._running_lock = threading.Lock()

    @property
    def limiter(self) -> anyio.CapacityLimiter:
        # Created lazily: anyio limiters must be built inside the event loop
        if self._limiter is None:
            self._limiter = anyio.CapacityLimiter(self.max_threads)
        return self._limiter

    @property
    def running_threads(self) -> int:
        """Provider calls still executing, including ones abandoned after a timeout."""
        with self._running_lock:
            return self._running

    def _run_tracked(self, func: Callable[[bytes], T], pdf_bytes: bytes) -> T:
        with self._running_lock:
            self._running += 1
        try:
            return func(pdf_bytes)
        finally:
            with self._running_lock:
                self._running -= 1

    async def _call_provider(self, func: Callable[[bytes], T], pdf_bytes: bytes) -> T:
        try:
            with anyio.fail_after(self.timeout_seconds):
                return await anyio.to_thread.run_sync(
                    self._run_tracked,
                    func,
                    pdf_bytes,
                    abandon_on_cancel=True,
                    limiter=self.limiter,
                )
        except TimeoutError:
            # The worker thread is abandoned and keeps running until the provider returns
            logger.warning(
                "Provider call %s timed out after %.1fs; %d provider thread(s) still running",
                getattr(func, "__name__", func),
                self.timeout_seconds,
                self.running_threads,
            )
            raise

    async def run(self, upload: UploadedPdf) -> ExtractionOutcome:
        """
        Extract ISDOC data from an upload.

        Returns:
            ExtractionSuccess with the parsed invoice, or ExtractionFailure.

        Raises:
            Exception: Unexpected faults, e.g. filesystem errors or a provider
                failing to read the PDF at all.
        """
        async with temporary_artifact(upload.content, self.temp_dir) as artifact:
            pdf_bytes = await run_in_threadpool(artifact.read_bytes)
            return await self.process(pdf_bytes)

    async def process(self, pdf_bytes: bytes) -> ExtractionOutcome:
        """Run the provider against PDF bytes and classify the result."""
        has_isdoc = await self._call_provider(self.provider.has_isdoc, pdf_bytes)
        if not has_isdoc:
            return ExtractionFailure(FailureReason.NO_STRUCTURED_DATA)

        try:
            document = await self._call_provider(self.provider.extract_isdoc, pdf_bytes)
        except Exception:
            logger.exception("ISDOC extraction error")
            return ExtractionFailure(FailureReason.EXTRACTION_FAILED)

        if not document:
            logger.warning("ISDOC extraction returned no document")
            return ExtractionFailure(FailureReason.EXTRACTION_FAILED)

        try:
            data = json.loads(document.to_json())
        except Exception:
            logger.exception("ISDOC JSON parsing error")
            return ExtractionFailure(FailureReason.PARSE_FAILED)

        if not isinstance(data, dict):
            logger.error("ISDOC document serialized to %s, expected object", type(data).__name__)
            return ExtractionFailure(FailureReason.PARSE_FAILED)

        return ExtractionSuccess(document=data)
