"""Exception taxonomy for the threshold encryption protocol.

Every failure in the core is raised as a subclass of ``TPKEError``. Errors
caused by malformed caller input also subclass ``ValueError`` so existing
``except ValueError`` handlers keep catching them.
"""

from __future__ import annotations


class TPKEError(Exception):
    """Base class for all protocol errors."""


class InvalidParameters(TPKEError, ValueError):
    """Bad node count, threshold, or index set at context creation."""


class ParameterMismatch(TPKEError, ValueError):
    """Inputs are individually valid but inconsistent with each other or the context."""


class NoInverse(TPKEError, ZeroDivisionError):
    """The zero field element has no multiplicative inverse."""


class InsufficientShares(TPKEError):
    """Fewer than threshold contributions were supplied."""

    def __init__(self, required: int, received: int) -> None:
        self.required = required
        self.received = received
        super().__init__(f"Need at least {required} shares, got {received}")


class DuplicateIndex(TPKEError, ValueError):
    """The same node index appears more than once in an index set."""

    def __init__(self, index: int) -> None:
        self.index = index
        super().__init__(f"Duplicate node index {index}")


class UnknownIndex(TPKEError, ValueError):
    """An index is not part of the context (or has no matching share)."""

    def __init__(self, index: int) -> None:
        self.index = index
        super().__init__(f"Unknown node index {index}")


class InvalidSecretKey(TPKEError):
    """A secret key does not match the public key the ciphertext was made for."""


class AuthenticationFailure(TPKEError):
    """AEAD tag verification failed; no plaintext is released."""


class DecodeFailure(TPKEError, ValueError):
    """A decrypted group element is outside the decodable plaintext range."""


class EncodingError(TPKEError, ValueError):
    """Bytes do not form a canonical encoding of the expected value."""


class DecryptionFailure(TPKEError):
    """Buyer-side decryption failed; ``cause`` holds the underlying error."""

    def __init__(self, message: str, cause: Exception | None = None) -> None:
        self.cause = cause
        super().__init__(message)


class InvalidTransition(TPKEError):
    """A trade operation was attempted in the wrong state."""
