# backend/app/services/base.py
"""
Base Service Pattern for the CourtBook booking engine.

Provides common functionality for all service classes including:
- Transaction management (the unit-of-work boundary)
- Logging
- Error handling
- Performance monitoring
- An injectable clock
"""

from contextlib import contextmanager
from datetime import datetime
from functools import wraps
import logging
import time
from typing import Any, Callable, Dict, Iterator, Optional, TypeVar, cast

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..core.exceptions import ServiceException
from ..models.types import utcnow
from ..monitoring.prometheus_metrics import prometheus_metrics

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]
F = TypeVar("F", bound=Callable[..., Any])

# Session.info key tracking how many transaction() blocks are open
_UOW_DEPTH_KEY = "courtbook_uow_depth"


class BaseService:
    """
    Base class for all service layer components.

    Provides common patterns for:
    - Database session management
    - Logging
    - Transaction handling
    - Performance monitoring
    """

    # Class-level metrics storage
    _class_metrics: Dict[str, Dict[str, Dict[str, float]]] = {}

    def __init__(self, db: Session, clock: Optional[Clock] = None):
        """
        Initialize base service.

        Args:
            db: Database session
            clock: Returns the current aware UTC time; defaults to the wall clock
        """
        self.db = db
        self._clock = clock or utcnow
        self.logger = logging.getLogger(self.__class__.__name__)

    def now(self) -> datetime:
        return self._clock()

    @contextmanager
    def transaction(self) -> Iterator[Session]:
        """
        Unit of work over the session.

        The outermost block commits on success and rolls back on any error.
        Nested blocks (from this or any service sharing the session) join the
        outer one, so composite operations stay atomic.

        Usage:
            with self.transaction():
                self.db.add(entity)
        """
        depth = self.db.info.get(_UOW_DEPTH_KEY, 0)
        self.db.info[_UOW_DEPTH_KEY] = depth + 1
        try:
            yield self.db
            if depth == 0:
                self.db.commit()
                self.logger.debug("Transaction committed successfully")
        except SQLAlchemyError as e:
            if depth == 0:
                self.logger.error(f"Transaction failed: {str(e)}")
                self.db.rollback()
                raise ServiceException(
                    f"Database operation failed: {str(e)}",
                    code="TRANSACTION_FAILED",
                    details={"retryable": True},
                ) from e
            raise
        except Exception as e:
            if depth == 0:
                self.logger.error(f"Unexpected error in transaction: {str(e)}")
                self.db.rollback()
            raise
        finally:
            self.db.info[_UOW_DEPTH_KEY] = depth

    def with_transaction(self, func: Callable[..., Any]) -> Callable[..., Any]:
        """
        Wrap a callable so it runs inside transaction().

        Usage:
            apply = self.with_transaction(self._apply_penalty)
            apply(user, booking)
        """

        @wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> Any:
            with self.transaction():
                return func(*args, **kwargs)

        return wrapper

    @staticmethod
    def measure_operation(operation_name: str) -> Callable[[F], F]:
        """
        Decorator to measure operation performance.

        Usage:
            @BaseService.measure_operation("report_no_show")
            def report_no_show(self, ...):
                ...
        """

        def decorator(func: F) -> F:
            @wraps(func)
            def wrapper(self: Any, *args: Any, **kwargs: Any) -> Any:
                start_time = time.time()
                success = False
                error_type = None

                try:
                    result = func(self, *args, **kwargs)
                    success = True
                    return result
                except Exception as e:
                    error_type = type(e).__name__
                    raise
                finally:
                    elapsed = time.time() - start_time

                    if hasattr(self, "_record_metric"):
                        self._record_metric(operation_name, elapsed, success)

                    # Only log if it's actually slow
                    if elapsed > 1.0 and hasattr(self, "logger"):
                        self.logger.warning(
                            f"Slow operation detected: {operation_name} took {elapsed:.2f}s"
                        )

                    prometheus_metrics.record_service_operation(
                        service=self.__class__.__name__,
                        operation=operation_name,
                        duration=elapsed,
                        status="success" if success else "error",
                        error_type=error_type,
                    )

            return cast(F, wrapper)

        return decorator

    def log_operation(self, operation: str, **context: Any) -> None:
        """Log an operation with context."""
        self.logger.info(f"Operation: {operation}", extra={"operation": operation, **context})

    def _record_metric(self, operation: str, elapsed: float, success: bool) -> None:
        class_name = self.__class__.__name__
        metrics = BaseService._class_metrics.setdefault(class_name, {})

        if operation not in metrics:
            metrics[operation] = {
                "count": 0,
                "total_time": 0.0,
                "success_count": 0,
                "failure_count": 0,
                "min_time": float("inf"),
                "max_time": 0.0,
            }

        metric_data = metrics[operation]
        metric_data["count"] += 1
        metric_data["total_time"] += elapsed
        metric_data["min_time"] = min(metric_data["min_time"], elapsed)
        metric_data["max_time"] = max(metric_data["max_time"], elapsed)

        if success:
            metric_data["success_count"] += 1
        else:
            metric_data["failure_count"] += 1

    def get_metrics(self) -> Dict[str, Any]:
        """
        Get performance metrics for this service.

        Returns:
            Dictionary with metrics for each measured operation
        """
        result = {}
        for operation, data in BaseService._class_metrics.get(self.__class__.__name__, {}).items():
            count = data["count"]
            if count == 0:
                continue
            result[operation] = {
                "count": count,
                "avg_time": data["total_time"] / count,
                "min_time": data["min_time"],
                "max_time": data["max_time"],
                "success_rate": data["success_count"] / count,
            }
        return result
