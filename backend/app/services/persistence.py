"""
RentCar Backend — Persistence Helpers
=======================================

What:  Helpers every service uses: fetch-or-404, PATCH field extraction and
       flush-with-translation.
Why:   Services must hand the route layer RentCarError subclasses only.
       SQLAlchemy's IntegrityError (a unique index lost a race) becomes a
       409 ConflictError; anything else from the driver becomes a generic
       DatabaseError whose details stay in the server log.
"""

import logging
import uuid
from typing import Any, Dict, Type, TypeVar

from pydantic import BaseModel
from sqlalchemy import inspect as sa_inspect
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.exceptions import ConflictError, DatabaseError, NotFoundError, ValidationError

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT")


async def get_or_404(
    db: AsyncSession, model: Type[ModelT], object_id: uuid.UUID, resource: str
) -> ModelT:
    try:
        instance = await db.get(model, object_id)
    except SQLAlchemyError as e:
        logger.error("Database error loading %s %s: %s", resource, object_id, str(e))
        raise DatabaseError(
            message=f"Could not load the {resource}. Please try again.",
            context={"resource": resource, "error_type": type(e).__name__},
        )
    if instance is None:
        raise NotFoundError(resource=resource, resource_id=str(object_id))
    return instance


def update_fields(instance: Any, data: BaseModel) -> Dict[str, Any]:
    """
    Fields present in a PATCH body.

    An explicit null on a NOT NULL column is a 400 for that field, not a
    constraint failure at flush time.
    """
    changes = data.model_dump(exclude_unset=True)
    columns = sa_inspect(type(instance)).columns
    for field, value in changes.items():
        column = columns.get(field)
        if value is None and column is not None and not column.nullable:
            raise ValidationError(f"{field} cannot be null", field=field)
    return changes


async def flush(db: AsyncSession, action: str) -> None:
    """Flush pending changes (commit happens in get_db_session)."""
    try:
        await db.flush()
    except IntegrityError as e:
        logger.warning("Integrity error while trying to %s: %s", action, str(e.orig))
        raise ConflictError(
            message=f"Could not {action}: a conflicting record already exists",
        )
    except SQLAlchemyError as e:
        logger.error("Database error while trying to %s: %s", action, str(e), exc_info=True)
        raise DatabaseError(
            message=f"Could not {action}. Please try again.",
            context={"error_type": type(e).__name__},
        )
