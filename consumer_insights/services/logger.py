"""Centralized logging for pipeline runs and provider calls."""
import json
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Optional

from consumer_insights.config import settings

LOG_DIR = Path(settings.log_dir)
LOG_DIR.mkdir(parents=True, exist_ok=True)

APP_LOG_LEVEL = getattr(logging, settings.app_log_level.upper(), logging.INFO)
NOISY_LOG_LEVEL = getattr(logging, settings.noisy_log_level.upper(), logging.WARNING)

logging.basicConfig(
    level=APP_LOG_LEVEL,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    handlers=[
        logging.FileHandler(LOG_DIR / "consumer_insights.log", encoding="utf-8"),
        logging.StreamHandler(),
    ],
)

for logger_name in (
    "uvicorn",
    "uvicorn.error",
    "uvicorn.access",
    "fastapi",
    "sse_starlette.sse",
    "httpx",
    "httpcore",
    "hpack",
    "openai._base_client",
    "asyncio",
):
    logging.getLogger(logger_name).setLevel(NOISY_LOG_LEVEL)

logger = logging.getLogger("consumer_insights")


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def log_llm_call(
    model: str,
    caller: str,
    input_tokens: int = 0,
    output_tokens: int = 0,
    duration_ms: int = 0,
    status: str = "success",
    error: Optional[str] = None,
) -> None:
    """Log an LLM API call."""
    call_data = {
        "timestamp": _now(),
        "model": model,
        "caller": caller,
        "input_tokens": input_tokens,
        "output_tokens": output_tokens,
        "total_tokens": input_tokens + output_tokens,
        "duration_ms": duration_ms,
        "status": status,
        "error": error,
    }
    logger.info(f"LLM_CALL: {json.dumps(call_data, ensure_ascii=False)}")


def log_pipeline_step(stage: str, status: str, **data: Any) -> None:
    """Log one stage of the search/analysis pipeline."""
    step_data = {
        "timestamp": _now(),
        "stage": stage,
        "status": status,
        "data": data,
    }
    logger.info(f"PIPELINE_STEP: {json.dumps(step_data, ensure_ascii=False, default=str)}")


def log_db_operation(
    operation: str,
    table: str,
    status: str,
    details: Optional[str] = None,
    error: Optional[str] = None,
) -> None:
    """Log a database operation."""
    op_data = {
        "timestamp": _now(),
        "operation": operation,
        "table": table,
        "status": status,
        "details": details,
        "error": error,
    }
    level = logging.WARNING if status != "success" else logging.DEBUG
    logger.log(level, f"DB_OPERATION: {json.dumps(op_data, ensure_ascii=False)}")


def log_event(
    event_type: str,
    message: str,
    **kwargs: Any,
) -> None:
    """Log a generic event."""
    event_data = {
        "timestamp": _now(),
        "event_type": event_type,
        "message": message,
        **kwargs,
    }
    logger.info(f"EVENT: {json.dumps(event_data, ensure_ascii=False, default=str)}")
