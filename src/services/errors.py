"""
Service Errors

Raised by VerifierService and mapped to HTTP status codes by the API layer.
"""

from typing import Optional


class VerifierError(Exception):
    """Base error for verifier operations"""

    def __init__(self, message: str, session_id: Optional[str] = None):
        self.message = message
        self.session_id = session_id
        super().__init__(message)


class InvalidUrlError(VerifierError):
    """The submitted URL cannot be analysed"""


class SessionNotFoundError(VerifierError):
    """No session with that id for this user"""


class NothingToRerankError(VerifierError):
    """The session has no alternatives to re-rank"""


class SessionNotReadyError(VerifierError):
    """The session has no analysis results yet"""


class AlternativeNotFoundError(VerifierError):
    """The selected alternative is not part of the session"""


class ProductFetchError(VerifierError):
    """The product page could not be fetched or parsed"""
