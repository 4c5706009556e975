import logging
from functools import wraps

from mentorlink.services.exceptions import ServiceError


def service_handler(action: str):
    """
    Logs a handler call and keeps its failures inside the ServiceError family.

    Service errors propagate unchanged for the route to translate. Anything
    else is logged with its traceback and wrapped in a generic ServiceError.
    """

    def decorator(func):
        handler_logger = logging.getLogger(func.__module__)

        @wraps(func)
        async def wrapper(*args, **kwargs):
            handler_logger.debug(f"Handler: {action}")
            try:
                return await func(*args, **kwargs)
            except ServiceError as e:
                handler_logger.info(f"Handler: service error {action}: {e}")
                raise
            except Exception as e:
                handler_logger.error(
                    f"Handler: unexpected error {action}: {e}", exc_info=True
                )
                raise ServiceError(f"An unexpected error occurred while {action}.")

        return wrapper

    return decorator
