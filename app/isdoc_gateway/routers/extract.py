"""
Router for ISDOC extraction.

Handles:
- Authenticated PDF upload and ISDOC extraction
"""

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, Request, status

from ..auth import require_bearer_token
from ..exceptions import ExtractionRejectedError, ProcessingError
from ..models import ErrorResponse, ExtractionResponse
from ..services.pipeline import ExtractionFailure, ExtractionPipeline
from ..upload import UploadedPdf, receive_pdf_upload

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["extraction"])


def get_extraction_pipeline(request: Request) -> ExtractionPipeline:
    """Dependency returning the pipeline configured on the application."""
    return request.app.state.pipeline


@router.post(
    "/extract-isdoc",
    response_model=ExtractionResponse,
    dependencies=[Depends(require_bearer_token)],
    responses={
        status.HTTP_400_BAD_REQUEST: {"model": ErrorResponse},
        status.HTTP_401_UNAUTHORIZED: {"model": ErrorResponse},
        status.HTTP_403_FORBIDDEN: {"model": ErrorResponse},
        422: {"model": ErrorResponse},
        status.HTTP_500_INTERNAL_SERVER_ERROR: {"model": ErrorResponse},
    },
)
async def extract_isdoc(
    upload: Annotated[UploadedPdf, Depends(receive_pdf_upload)],
    pipeline: Annotated[ExtractionPipeline, Depends(get_extraction_pipeline)],
) -> ExtractionResponse:
    """
    Extract embedded ISDOC invoice data from an uploaded PDF.

    Expects a multipart form with the PDF in the ``pdf`` field and a
    ``Authorization: Bearer <token>`` header.
    """
    try:
        outcome = await pipeline.run(upload)
    except Exception as e:
        logger.exception("Error in PDF processing endpoint")
        raise ProcessingError(
            detail="An error occurred while processing the PDF"
        ) from e

    if isinstance(outcome, ExtractionFailure):
        logger.info("Extraction rejected for %s: %s", upload.filename, outcome.reason.value)
        raise ExtractionRejectedError(outcome.message)

    return ExtractionResponse(data=outcome.document)
