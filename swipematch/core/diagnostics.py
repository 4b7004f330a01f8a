import functools
import inspect
import time
from datetime import datetime

from loguru import logger
from sqlalchemy.exc import SQLAlchemyError

from swipematch.core.config import get_settings
from swipematch.core.errors import TransientStoreFailure

# Track performance metrics
metrics = {
    "db_operations": 0,
    "errors": 0,
    "matches_created": 0,
    "connections_created": 0,
    "resets_accepted": 0,
    "last_error_time": None,
}


def reset_metrics():
    """Zero all counters."""
    for key in metrics:
        metrics[key] = None if key == "last_error_time" else 0


def record(counter: str, amount: int = 1):
    """Increment a protocol counter."""
    metrics[counter] += amount


def track_db(func):
    """Decorator to track store operations.

    Every call is counted. Any SQLAlchemy error escaping the wrapped coroutine
    is re-raised as TransientStoreFailure. Timing and argument logging only
    happen when DIAGNOSTICS_ENABLED is set.
    """
    @functools.wraps(func)
    async def wrapper(*args, **kwargs):
        metrics["db_operations"] += 1
        verbose = get_settings().DIAGNOSTICS_ENABLED

        if verbose:
            sig = inspect.signature(func)
            bound_args = sig.bind(*args, **kwargs)
            bound_args.apply_defaults()
            arg_desc = {
                k: (str(v) if not isinstance(v, (int, bool)) else v)
                for k, v in bound_args.arguments.items()
                if k != "session" and k != "self"
            }
            logger.debug(f"DB OPERATION #{metrics['db_operations']} - {func.__name__} with args: {arg_desc}")

        start_time = time.time()
        try:
            result = await func(*args, **kwargs)
        except SQLAlchemyError as e:
            metrics["errors"] += 1
            metrics["last_error_time"] = datetime.now().isoformat()
            logger.error(f"DB ERROR in {func.__name__}: {e}")
            raise TransientStoreFailure(f"Store call {func.__name__} failed: {e}") from e

        if verbose:
            execution_time = time.time() - start_time
            result_type = type(result).__name__
            if hasattr(result, "__len__"):
                logger.debug(f"DB OPERATION {func.__name__} completed in {execution_time:.3f}s - returned {result_type} with {len(result)} items")
            else:
                logger.debug(f"DB OPERATION {func.__name__} completed in {execution_time:.3f}s - returned {result_type}")
        return result

    return wrapper


def get_diagnostics_report() -> str:
    """Get a diagnostics report"""
    report = [
        "==== SWIPEMATCH DIAGNOSTICS REPORT ====",
        f"DB operations: {metrics['db_operations']}",
        f"Errors: {metrics['errors']}",
        f"Last error time: {metrics['last_error_time']}",
        f"Matches created: {metrics['matches_created']}",
        f"Connections created: {metrics['connections_created']}",
        f"Resets accepted: {metrics['resets_accepted']}",
        f"Current time: {datetime.now().isoformat()}",
    ]
    return "\n".join(report)
