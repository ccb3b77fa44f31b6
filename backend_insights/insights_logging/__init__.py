"""
Structured logging for backend_insights.

JSON logs with timestamp, level, event_type and per-call keyword fields.
"""

from backend_insights.insights_logging.logger import configure_structlog, get_logger, task_context

__all__ = ["configure_structlog", "get_logger", "task_context"]
