"""
Request correlation ids for log tracing.
"""
import threading
import uuid


def new_correlation_id() -> str:
    return str(uuid.uuid4())[:8]


class CorrelationContext:
    """Thread-local correlation ID context."""

    def __init__(self):
        self._local = threading.local()

    def set_correlation_id(self, correlation_id: str):
        """Set correlation ID for current thread."""
        self._local.correlation_id = correlation_id

    def get_correlation_id(self) -> str:
        """Get correlation ID for current thread."""
        if not hasattr(self._local, 'correlation_id'):
            self._local.correlation_id = new_correlation_id()
        return self._local.correlation_id

    def clear(self):
        """Clear correlation ID."""
        if hasattr(self._local, 'correlation_id'):
            delattr(self._local, 'correlation_id')


# Global correlation context
correlation_context = CorrelationContext()
