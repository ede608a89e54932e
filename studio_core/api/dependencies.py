"""Dependency injection for FastAPI endpoints"""

import logging

from fastapi import Depends, HTTPException, Request
from sqlalchemy.orm import Session

from studio_core.domain.exceptions import DomainException, RecordNotFoundError, StorageError, ValidationError
from studio_core.infrastructure.database.repositories import RecordStore
from studio_core.infrastructure.database.session import get_db
from studio_core.services.studio import Studio, open_studio


def get_request_id(request: Request) -> str:
    """Extract request ID from request state"""
    return getattr(request.state, "request_id", "unknown")


def get_studio(db: Session = Depends(get_db)) -> Studio:
    """Provide services over a projection freshly loaded from the request's session"""
    return open_studio(RecordStore(db))


def to_http_error(error: DomainException, request_id: str) -> HTTPException:
    """Map a domain failure to the HTTP error returned to the UI"""
    if isinstance(error, ValidationError):
        logging.warning(f"Validation failed: {error}", extra={"request_id": request_id})
        return HTTPException(status_code=422, detail=str(error))
    if isinstance(error, RecordNotFoundError):
        return HTTPException(status_code=404, detail=str(error))
    if isinstance(error, StorageError):
        logging.error(f"Storage error: {error}", extra={"request_id": request_id})
        return HTTPException(status_code=503, detail="Storage unavailable")
    logging.error(f"Unexpected domain error: {error}", extra={"request_id": request_id})
    return HTTPException(status_code=500, detail="Internal server error")
