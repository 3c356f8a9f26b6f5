"""Structured logging for pipeline runs and review decisions."""

import logging
from typing import Any
from uuid import UUID

logger = logging.getLogger(__name__)


def configure_logging(level: str = "INFO") -> None:
    """Install a basic root handler if the host has not configured one."""
    logging.basicConfig(
        level=level.upper(),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )


class StructuredPipelineLogger:
    """Structured logger for pipeline stage transitions."""

    def log_stage(
        self,
        document_id: UUID,
        stage: str,
        progress: int,
        latency_ms: float,
    ) -> None:
        """Log a completed pipeline stage with structured data."""
        log_data: dict[str, Any] = {
            "document_id": str(document_id),
            "stage": stage,
            "progress": progress,
            "latency_ms": round(latency_ms, 2),
        }

        logger.info(
            f"Pipeline stage: {stage} -> {progress}%", extra={"structured": log_data}
        )

    def log_failure(self, document_id: UUID, stage: str, error: BaseException) -> None:
        """Log a failed run with traceback."""
        log_data: dict[str, Any] = {
            "document_id": str(document_id),
            "stage": stage,
            "error_type": type(error).__name__,
            "error_reason": str(error)[:200],
        }

        logger.error(
            f"Pipeline failed at {stage}: {type(error).__name__}",
            exc_info=error,
            extra={"structured": log_data},
        )

    def log_decision(self, chunk_id: UUID, document_id: UUID, decision: str) -> None:
        """Log a chunk review transition."""
        log_data: dict[str, Any] = {
            "chunk_id": str(chunk_id),
            "document_id": str(document_id),
            "decision": decision,
        }

        logger.info(f"Chunk {decision}", extra={"structured": log_data})
