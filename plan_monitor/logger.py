import functools
import gzip
import inspect
import logging
import logging.handlers
import os
import shutil
import sys
from gzip import GzipFile
from pathlib import Path
from typing import Any, Callable

from .config import settings

logger = logging.getLogger("plan_monitor")
logger.setLevel(logging.DEBUG)
formatter = logging.Formatter(
    "%(asctime)s %(levelname)s [%(module)s:%(funcName)s:%(lineno)d] %(message)s"
)


def rotator(source, dest):
    with open(source, "rb") as f_in:
        with gzip.open(dest + ".gz", "wb") as f_out:
            assert isinstance(f_out, GzipFile)
            shutil.copyfileobj(f_in, f_out)
    os.remove(source)


if settings.log_to_file:
    logs_dir = Path(settings.logs_dir)
    logs_dir.mkdir(parents=True, exist_ok=True)

    log_file_handler = logging.handlers.TimedRotatingFileHandler(
        logs_dir / "plan_monitor.log", when="midnight"
    )
    log_file_handler.setFormatter(formatter)
    log_file_handler.rotator = rotator
    logger.addHandler(log_file_handler)

log_stream_handler = logging.StreamHandler(sys.stdout)
log_stream_handler.setFormatter(formatter)
log_stream_handler.setLevel(logging.INFO)
logger.addHandler(log_stream_handler)


def log_exception[**P, R](
    prefix: str = "",
    default_return: R | None = None,
) -> Callable[[Callable[P, R]], Callable[P, R]]:
    """
    Decorator that logs and swallows exceptions raised by the wrapped function.

    Works on sync and async functions. The log line carries the bound call
    arguments, and the prefix may reference them by name:

        @log_exception("Progress fetch for {task_id}")
        async def fetch(task_id: str) -> TaskProgress: ...

    Args:
        prefix: Optional prefix to prepend to the error message
        default_return: Value returned in place of the exception
    """

    def decorator(func: Callable[P, R]) -> Callable[P, R]:
        sig = inspect.signature(func)

        def describe_call(args: tuple, kwargs: dict) -> str:
            try:
                bound = sig.bind(*args, **kwargs)
                bound.apply_defaults()
            except TypeError as e:
                logger.warning(
                    f"Failed to bind arguments for {func.__qualname__}: {e}",
                    stacklevel=4,  # describe_call -> report -> wrapper -> caller
                )
                return f"[args={args!r}, kwargs={kwargs!r}] "

            arguments: dict[str, Any] = bound.arguments
            params = ", ".join(f"{k}={v!r}" for k, v in arguments.items())
            head = f"[{params}] " if params else ""
            if not prefix:
                return head
            try:
                return f"{head}{prefix.format_map(arguments)}: "
            except (KeyError, ValueError, IndexError) as e:
                logger.warning(
                    f"Failed to format prefix '{prefix}' with arguments: {e}",
                    stacklevel=4,
                )
                return f"{head}{prefix}: "

        def report(e: Exception, args: tuple, kwargs: dict) -> None:
            logger.error(
                f"{describe_call(args, kwargs)}{type(e).__name__}: {e}",
                exc_info=True,
                stacklevel=3,  # report -> wrapper -> caller
            )

        if inspect.iscoroutinefunction(func):

            @functools.wraps(func)
            async def async_wrapper(*args: P.args, **kwargs: P.kwargs) -> R:
                try:
                    return await func(*args, **kwargs)
                except Exception as e:
                    report(e, args, kwargs)
                    return default_return  # type: ignore[return-value]

            return async_wrapper  # type: ignore[return-value]

        @functools.wraps(func)
        def sync_wrapper(*args: P.args, **kwargs: P.kwargs) -> R:
            try:
                return func(*args, **kwargs)
            except Exception as e:
                report(e, args, kwargs)
                return default_return  # type: ignore[return-value]

        return sync_wrapper

    return decorator
