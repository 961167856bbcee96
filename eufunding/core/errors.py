"""
Exception types raised by the collaborator layers.

The normalizer and ranker never raise; these cover the I/O edges
(upstream search API, database, text generation).
"""

from typing import Optional


class EuFundingError(Exception):
    """Base class for all errors raised by this package."""


class UpstreamFailure(EuFundingError):
    """The funding search API (or topic API) failed or returned garbage."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class StoreError(EuFundingError):
    """A database operation failed."""


class GenerationError(EuFundingError):
    """The text-generation model is unavailable or returned unusable output."""
