# routers/deps.py
"""
Shared router dependencies and service-error translation.
"""
from fastapi import HTTPException, status

from services.chain_builder import ChainBuilder
from services.exceptions import (
     ChainBuildFailure,
     ChainError,
     CreditNoteLimitError,
     DocumentNotFoundError,
     ImmutableDocumentError,
     InvalidDraftError,
     OrderStateError,
)

_builder = ChainBuilder()


def get_chain_builder() -> ChainBuilder:
     """FastAPI dependency returning the process-wide chain builder."""
     return _builder


def http_error(exc: Exception) -> HTTPException:
     """Map a service exception onto the HTTP error the client sees."""
     if isinstance(exc, DocumentNotFoundError):
          return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc))
     if isinstance(exc, (OrderStateError, CreditNoteLimitError)):
          return HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc))
     if isinstance(exc, InvalidDraftError):
          return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc))
     if isinstance(exc, ImmutableDocumentError):
          return HTTPException(status_code=status.HTTP_405_METHOD_NOT_ALLOWED, detail=str(exc))
     if isinstance(exc, ChainBuildFailure):
          return HTTPException(
               status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
               detail=f"Invoicing failed, please retry: {exc}",
          )
     if isinstance(exc, ChainError):
          return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc))
     return HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Internal error")
