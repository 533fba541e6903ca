import logging
import sys

# Project-wide logger for user-facing messages (menus, main loop).
logger = logging.getLogger("curatify")


def setup_logging(level: int = logging.INFO) -> None:
    """Configure root logging once: stdout, time + level + logger name."""
    root = logging.getLogger()

    # Avoid adding handlers multiple times
    if root.handlers:
        root.setLevel(level)
        return

    handler = logging.StreamHandler(sys.stdout)
    formatter = logging.Formatter(
        "%(asctime)s [%(levelname)s] %(name)s - %(message)s",
        datefmt="%H:%M:%S",
    )
    handler.setFormatter(formatter)

    root.addHandler(handler)
    root.setLevel(level)

    # httpx logs every request line at INFO; keep the menus readable.
    logging.getLogger("httpx").setLevel(logging.WARNING)


def log_info(message: str) -> None:
    logger.info("%s", message)


def log_success(message: str) -> None:
    logger.info("✅ %s", message)


def log_warning(message: str) -> None:
    logger.warning("⚠️ %s", message)


def log_error(message: str) -> None:
    logger.error("❌ %s", message)
