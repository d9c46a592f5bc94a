"""
ISDOC PDF Gateway.

A FastAPI service that extracts embedded ISDOC invoice data from
uploaded PDF documents and returns it as JSON.
"""

__version__ = "1.0.0"
