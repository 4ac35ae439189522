import logging
import time
from typing import Optional

from .config import settings


def setup_logger(name: str = "shortcuts", level: Optional[str] = None) -> logging.Logger:
    """Setup standardized logger for shortcut resolution with UTF-8 support."""
    logger = logging.getLogger(name)

    if not logger.handlers:  # Avoid duplicate handlers
        handler = logging.StreamHandler()
        if hasattr(handler.stream, 'reconfigure'):
            handler.stream.reconfigure(encoding='utf-8')

        formatter = logging.Formatter(
            '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
        )
        handler.setFormatter(formatter)
        logger.addHandler(handler)

    logger.setLevel(getattr(logging, (level or settings.log_level).upper()))
    return logger


def log_resolution(logger: logging.Logger,
                   session_id: str,
                   query: str,
                   status: str,
                   duration_ms: float,
                   namespace: Optional[str] = None,
                   key: Optional[str] = None,
                   url: Optional[str] = None,
                   reason: Optional[str] = None) -> None:
    """Log one resolved query in a structured format."""

    log_data = {
        "session_id": session_id,
        "query": query,
        "status": status,
        "duration_ms": round(duration_ms, 1),
    }

    if namespace:
        log_data["namespace"] = namespace
    if key:
        log_data["key"] = key
    if url:
        log_data["url"] = url if len(url) <= 200 else url[:197] + "..."
    if reason:
        log_data["reason"] = reason

    status_icon = "✅" if status == "ok" else "❌"
    logger.info(f"{status_icon} Resolve: {log_data}")


def log_diagnostic(logger: logging.Logger, diagnostic, debug: bool = False) -> None:
    """Log a recoverable session problem; loud only in debug sessions."""
    message = f"⚠️ [{diagnostic.kind}] {diagnostic.namespace or '-'}: {diagnostic.message}"
    if diagnostic.details:
        message += "\n\n" + "\n".join(diagnostic.details)
    logger.log(logging.WARNING if debug else logging.DEBUG, message)


def create_session_id() -> str:
    """Create unique session ID for tracking."""
    return f"session_{int(time.time() * 1000)}"
