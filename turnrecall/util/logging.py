"""
Structured logging for turn memory operations.
Observability sink for vectorization, retrieval, context assembly and persistence.
"""

import logging
from typing import Any, Dict, Optional

from ..core.config import debug_enabled


def _truncate(value: str, limit: int = 50) -> str:
    return value[:limit] + "..." if len(value) > limit else value


class StructuredLogger:
    """Structured logger for memory indexing, retrieval and persistence operations."""

    def __init__(self, name: str = "turnrecall", debug: Optional[bool] = None):
        self.logger = logging.getLogger(name)
        if debug is None:
            debug = debug_enabled()
        self.logger.setLevel(logging.DEBUG if debug else logging.INFO)

        # Create handler if not already set
        if not self.logger.handlers:
            handler = logging.StreamHandler()
            formatter = logging.Formatter(
                '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
            )
            handler.setFormatter(formatter)
            self.logger.addHandler(handler)

    def log_operation(self, operation: str, status: str, details: Dict[str, Any] = None):
        """Log a structured operation."""
        message = f"Operation: {operation}, Status: {status}"
        if details:
            message += f", Details: {details}"

        if status in ("failed", "error"):
            self.logger.error(message)
        elif status in ("fallback", "rejected", "skipped", "invalid"):
            self.logger.warning(message)
        else:
            self.logger.info(message)

    def log_vector_operation(self, operation: str, turn_index: Optional[int] = None,
                             details: Dict[str, Any] = None, status: str = "success"):
        """Log a vectorization or memory store operation."""
        log_details = {}
        if turn_index is not None:
            log_details["turn_index"] = turn_index
        if details:
            log_details.update(details)

        self.log_operation(f"vector.{operation}", status, log_details)

    def log_retrieval(self, store_size: int, hits: list, status: str = "success"):
        """Log a retrieval pass with per-hit scores."""
        log_details = {
            "store_size": store_size,
            "hit_count": len(hits),
            "hits": [
                {
                    "turn_index": hit.turn_index,
                    "similarity": round(hit.similarity, 3),
                    "summary": _truncate(hit.summary),
                }
                for hit in hits
            ],
        }
        self.log_operation("retrieval.query", status, log_details)

    def log_context_build(self, report: Dict[str, Any]):
        """Log the composition report of an assembled message list."""
        self.log_operation("context.build", "success", report)

    def log_persistence(self, operation: str, status: str = "success", details: Dict[str, Any] = None):
        """Log a save/load against the durable store."""
        log_details = {}
        if details:
            for k, v in details.items():
                log_details[k] = _truncate(v, 100) if isinstance(v, str) else v

        self.log_operation(f"persistence.{operation}", status, log_details)

    # Standard logging methods for compatibility
    def info(self, message: str) -> None:
        """Log an info message."""
        self.logger.info(message)

    def warning(self, message: str) -> None:
        """Log a warning message."""
        self.logger.warning(message)

    def error(self, message: str) -> None:
        """Log an error message."""
        self.logger.error(message)

    def debug(self, message: str) -> None:
        """Log a debug message."""
        self.logger.debug(message)


# Global logger instance
logger = StructuredLogger()
