"""
AffiMark Services Layer

Business logic services that orchestrate repository operations,
page scraping and the deterministic verifier pipeline.
"""

from .errors import (
    AlternativeNotFoundError,
    InvalidUrlError,
    NothingToRerankError,
    ProductFetchError,
    SessionNotFoundError,
    SessionNotReadyError,
    VerifierError,
)
from .verifier import VerifierService, reputation_from_row, session_to_response

__all__ = [
    "VerifierService",
    "reputation_from_row",
    "session_to_response",
    "VerifierError",
    "InvalidUrlError",
    "SessionNotFoundError",
    "SessionNotReadyError",
    "NothingToRerankError",
    "AlternativeNotFoundError",
    "ProductFetchError",
]
