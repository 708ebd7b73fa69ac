import inspect
from functools import wraps
from fastapi import HTTPException
from app.core.errors import (
    AuthorizationError,
    FleetError,
    NotFoundError,
    PersistenceError,
    ValidationError,
)
from app.utiles.logger import get_logger

logger = get_logger(__name__)

# domain error -> HTTP status, most specific first
_STATUS_CODES = (
    (ValidationError, 400),
    (AuthorizationError, 403),
    (NotFoundError, 404),
    (PersistenceError, 503),
)


def _to_http(func_name: str, err: FleetError) -> HTTPException:
    for err_type, status_code in _STATUS_CODES:
        if isinstance(err, err_type):
            break
    else:
        status_code = 500
    if status_code >= 500:
        logger.error(f"{type(err).__name__} in {func_name}: {err.message}")
    else:
        logger.warning(f"{type(err).__name__} in {func_name}: {err.message}")
    return HTTPException(status_code=status_code, detail=err.message)


def handle_exceptions(func):
    if inspect.iscoroutinefunction(func):
        @wraps(func)
        async def wrapper(*args, **kwargs):
            try:
                logger.info(f"Calling function: {func.__name__}")
                result = await func(*args, **kwargs)
                logger.info(f"Function {func.__name__} completed successfully")
                return result
            except HTTPException as he:
                logger.warning(f"HTTPException in {func.__name__}: {he.detail}")
                raise he
            except FleetError as fe:
                raise _to_http(func.__name__, fe) from fe
            except Exception as e:
                logger.exception(f"Exception in function: {func.__name__} - {str(e)}")
                raise HTTPException(status_code=500, detail="Internal Server Error")
        return wrapper
    else:
        @wraps(func)
        def wrapper(*args, **kwargs):
            try:
                logger.info(f"Calling function: {func.__name__}")
                result = func(*args, **kwargs)
                logger.info(f"Function {func.__name__} completed successfully")
                return result
            except HTTPException as he:
                logger.warning(f"HTTPException in {func.__name__}: {he.detail}")
                raise he
            except FleetError as fe:
                raise _to_http(func.__name__, fe) from fe
            except Exception as e:
                logger.exception(f"Exception in function: {func.__name__} - {str(e)}")
                raise HTTPException(status_code=500, detail="Internal Server Error")
        return wrapper
