"""Domain-specific exceptions for fiscal document services."""
from models.chained_document import ImmutableDocumentError


class ChainError(Exception):
     """Base exception for invoice chain services."""
     pass


class InvalidDraftError(ChainError, ValueError):
     """Raised when a draft cannot be issued as a fiscal document."""
     pass


class DuplicateSequenceError(ChainError):
     """Raised when a sequence number was taken by a concurrent writer."""

     def __init__(self, message: str, *, sequence_number: str | None = None):
          super().__init__(message)
          self.sequence_number = sequence_number


class ChainBuildFailure(ChainError):
     """Raised when a document could not be issued; nothing was persisted."""

     def __init__(self, message: str, *, cause: Exception | None = None):
          super().__init__(message)
          self.cause = cause


class DocumentNotFoundError(ChainError):
     """Raised when a referenced record does not exist."""
     pass


class InvoiceNotFoundError(DocumentNotFoundError):
     """Raised when invoice does not exist."""
     pass


class OrderNotFoundError(DocumentNotFoundError):
     """Raised when repair order does not exist."""
     pass


class OrderStateError(ChainError):
     """Raised when a repair order cannot be invoiced in its current state."""
     pass


class CreditNoteLimitError(ChainError, ValueError):
     """Raised when credit notes would exceed the original invoice total."""
     pass


__all__ = [
     "ChainError",
     "InvalidDraftError",
     "DuplicateSequenceError",
     "ChainBuildFailure",
     "DocumentNotFoundError",
     "InvoiceNotFoundError",
     "OrderNotFoundError",
     "OrderStateError",
     "CreditNoteLimitError",
     "ImmutableDocumentError",
]
