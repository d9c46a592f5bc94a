"""
Services package for the ISDOC gateway.

Contains:
- isdoc_service: pypdf-backed ISDOC attachment extraction
- pipeline: temporary-file lifecycle and extraction outcome handling
"""

from .isdoc_service import IsdocDocument, IsdocService
from .pipeline import ExtractionPipeline

__all__ = ["ExtractionPipeline", "IsdocDocument", "IsdocService"]
