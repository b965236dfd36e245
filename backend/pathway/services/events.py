"""
Best-effort side effects: analytics events and audit entries.

Nothing here may fail the caller. Write failures are logged at warning
level and dropped. With ANALYTICS_ASYNC set, writes are handed to a
small thread pool so they never block the primary request either.
"""

from concurrent.futures import Executor, ThreadPoolExecutor
from typing import Any, Callable, Dict, Optional
import logging

from pathway.core.config import settings
from pathway.schemas import AnalyticsEvent, AuditEntry
from pathway.storage import OnboardingStore


# Configure logging
logger = logging.getLogger(__name__)


def best_effort(description: str, func: Callable, *args, **kwargs) -> Any:
    """Run ``func`` and log, rather than raise, any failure. Returns None on failure."""
    try:
        return func(*args, **kwargs)
    except Exception as e:
        logger.warning(f"Failed to {description}: {e}")
        return None


class EventRecorder:
    """
    Writes analytics events and audit entries through the storage port.
    """
    
    def __init__(
        self,
        store: OnboardingStore,
        enabled: Optional[bool] = None,
        executor: Optional[Executor] = None
    ):
        self.store = store
        self.enabled = settings.ENABLE_ANALYTICS if enabled is None else enabled
        if executor is None and settings.ANALYTICS_ASYNC:
            executor = ThreadPoolExecutor(
                max_workers=settings.ANALYTICS_WORKERS,
                thread_name_prefix="pathway-events"
            )
        self.executor = executor
    
    def _dispatch(self, description: str, func: Callable, payload: Any) -> None:
        if self.executor is None:
            best_effort(description, func, payload)
            return
        try:
            self.executor.submit(best_effort, description, func, payload)
        except RuntimeError as e:
            # Executor already shut down
            logger.warning(f"Failed to {description}: {e}")
    
    def track(self, event_type: str, event_data: Optional[Dict[str, Any]] = None, **fields) -> None:
        """Record an analytics event such as ``session_start`` or ``step_complete``."""
        if not self.enabled:
            return
        event = AnalyticsEvent(event_type=event_type, event_data=event_data or {}, **fields)
        self._dispatch("record analytics event", self.store.insert_analytics_event, event)
    
    def audit(
        self,
        action: str,
        entity_type: str,
        entity_id: Optional[str] = None,
        user_id: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
        success: bool = True,
        error_message: Optional[str] = None
    ) -> None:
        entry = AuditEntry(
            action=action,
            entity_type=entity_type,
            entity_id=entity_id,
            user_id=user_id,
            details=details or {},
            success=success,
            error_message=error_message,
        )
        self._dispatch("write audit log", self.store.create_audit_log, entry)
    
    def shutdown(self) -> None:
        if self.executor is not None:
            self.executor.shutdown(wait=True)
