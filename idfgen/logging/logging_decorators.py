from functools import wraps
from time import time
from typing import Callable, ParamSpec, TypeVar

from idfgen.logging.loglevel import LogLevel

T = TypeVar("T")
P = ParamSpec("P")


def standard_log_decorator(
    start_level: LogLevel = LogLevel.INFO, end_level: LogLevel = LogLevel.DEBUG
) -> Callable[[Callable[P, T]], Callable[P, T]]:
    """
    Log the start and the end (with elapsed time) of the decorated method.
    """

    def decorator(fun: Callable[P, T]) -> Callable[P, T]:
        @wraps(fun)
        def wrapper(*args: P.args, **kwargs: P.kwargs):
            from idfgen.logging import logger

            object_name = str(type(args[0]).__name__)
            target = f" on {args[1]}" if len(args) > 1 else ""
            logger.log(
                loglevel=start_level,
                message=f"Beginning execution of {fun.__module__}.{fun.__name__} for object {object_name}{target}...",
                additional_depth=2,
            )
            start_time = time()
            return_value = fun(*args, **kwargs)
            end_time = time()
            logger.log(
                loglevel=end_level,
                message=f"Finished execution of {fun.__module__}.{fun.__name__} for object {object_name}{target} in {end_time - start_time:.3f} seconds",
                additional_depth=2,
            )
            return return_value

        return wrapper

    return decorator
