"""Result envelope handling shared by the engine operations"""

from typing import Awaitable, Callable, Type, TypeVar

from sqlalchemy.ext.asyncio import AsyncSession

from booking_engine.errors import EngineError, FALLBACK_MESSAGE, INTERNAL_ERROR
from booking_engine.schemas.common import EngineResult

ResultT = TypeVar("ResultT", bound=EngineResult)


async def run_operation(
    db: AsyncSession,
    operation: Callable[[], Awaitable[ResultT]],
    result_type: Type[ResultT],
    log,
    event: str,
) -> ResultT:
    """Run one transactional operation and fold every failure into a result

    Commits on success. Engine errors roll back and keep their status and
    code; anything else rolls back, is logged with its traceback, and
    becomes INTERNAL_ERROR.
    """
    try:
        result = await operation()
        await db.commit()
    except EngineError as exc:
        await db.rollback()
        log.info(f"{event} rejected", status=exc.status, error_code=exc.code)
        return result_type(status=exc.status, message=exc.message, error_code=exc.code)
    except Exception:
        await db.rollback()
        log.exception(f"{event} failed")
        return result_type(status="error", message=FALLBACK_MESSAGE, error_code=INTERNAL_ERROR)
    
    log.info(event, status=result.status)
    return result
