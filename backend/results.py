# results.py — Discriminated results and error taxonomy for server actions
# Every mutation returns ActionResult; nothing escapes to the transport layer.

import functools
import logging
from typing import Any, Generic, Optional, TypeVar

from pydantic import BaseModel
from sqlalchemy.exc import SQLAlchemyError

logger = logging.getLogger("kanban-sync.actions")

T = TypeVar("T")

NO_TENANT_MESSAGE = "You must be in an organization to perform this action"


# ============================================================
# RESULT SHAPE
# ============================================================

class ActionResult(BaseModel, Generic[T]):
    success: bool
    data: Optional[T] = None
    error: Optional[str] = None
    code: Optional[str] = None


class CreatedRef(BaseModel):
    id: str


def ok(data: Any = None) -> ActionResult:
    return ActionResult(success=True, data=data)


def fail(error: str, code: str = "error") -> ActionResult:
    return ActionResult(success=False, error=error, code=code)


# ============================================================
# ERROR TAXONOMY
# ============================================================

class ActionError(Exception):
    """Expected rejection, reported to the caller with its message"""
    code = "error"


class Unauthorized(ActionError):
    code = "unauthorized"

    def __init__(self, message: str = NO_TENANT_MESSAGE):
        super().__init__(message)


class NotFound(ActionError):
    code = "not_found"


class InvariantViolation(ActionError):
    code = "invariant_violation"


class PlanGate(ActionError):
    code = "plan_gate"


class TransientStoreFailure(ActionError):
    code = "store_failure"


def require_org(org_id: Optional[str]) -> str:
    if not org_id:
        raise Unauthorized()
    return org_id


# ============================================================
# ACTION BOUNDARY
# ============================================================

def server_action(failure_message: str):
    """Decorator: recover every failure of an async action into an ActionResult.

    The wrapped coroutine receives the AsyncSession as its first argument and
    returns the success payload. Store errors roll the session back and are
    logged with full detail; the caller only sees ``failure_message``.
    """
    def decorator(func):
        @functools.wraps(func)
        async def wrapper(db, *args, **kwargs) -> ActionResult:
            try:
                data = await func(db, *args, **kwargs)
                return ok(data)
            except ActionError as e:
                await db.rollback()
                logger.info(f"{func.__name__} rejected ({e.code}): {e}")
                return fail(str(e), e.code)
            except Exception as e:
                await db.rollback()
                kind = "store error" if isinstance(e, SQLAlchemyError) else "unexpected error"
                logger.exception(f"{failure_message}: {kind} in {func.__name__}")
                return fail(failure_message, TransientStoreFailure.code)
        return wrapper
    return decorator
