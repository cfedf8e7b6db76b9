"""Translate service exceptions into HTTP errors.

Handlers wrap their service calls in `with service_errors():`.  Each
failure is logged once here, then re-raised as an HTTPException with
`from None` so the client sees the reason and not a traceback.
"""

from __future__ import annotations

import logging
from collections.abc import Iterator
from contextlib import contextmanager

from fastapi import HTTPException, status

from coursetrack.repos.document_store import DocumentNotFoundError, StorageError
from coursetrack.services.errors import (
    ConflictError,
    NotFoundError,
    PermissionDeniedError,
    ValidationError,
)
from coursetrack.services.progress_tracker import ProgressWriteError

logger = logging.getLogger(__name__)


@contextmanager
def service_errors() -> Iterator[None]:
    try:
        yield
    except ValidationError as e:
        logger.warning("Rejected invalid request: %s", e)
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(e)
        ) from None
    except (NotFoundError, DocumentNotFoundError) as e:
        logger.warning("Referenced entity not found: %s", e)
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND, detail=str(e).strip("'\"")
        ) from None
    except ConflictError as e:
        logger.warning("Conflicting write rejected: %s", e)
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT, detail=str(e)
        ) from None
    except PermissionDeniedError as e:
        logger.warning("Access denied: %s", e)
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN, detail=str(e)
        ) from None
    except (StorageError, ProgressWriteError) as e:
        logger.error("Storage failure: %s", e)
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=f"Storage unavailable: {e}",
        ) from None
