"""
Logging configuration for the shipping agent.

Records logged through order_logger() carry the order id in
`extra["order_id"]`. Every sink prints it, and shipments.log keeps
only those records as a per-order shipping trail.
"""

import sys
from pathlib import Path
from loguru import logger

from clinic_shipping import __version__
from clinic_shipping.config import ShippingConfig


NO_ORDER = "-"

CONSOLE_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss}</green> | "
    "<level>{level: <8}</level> | "
    "<magenta>{extra[order_id]}</magenta> | "
    "<cyan>{name}</cyan>:<cyan>{line}</cyan> | "
    "<level>{message}</level>"
)

FILE_FORMAT = "{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | {extra[order_id]} | {name}:{function}:{line} | {message}"

SHIPMENT_FORMAT = "{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | {extra[order_id]} | {message}"


def _is_order_record(record) -> bool:
    return record["extra"].get("order_id", NO_ORDER) != NO_ORDER


def setup_logging(config: ShippingConfig, console: bool = True) -> None:
    """
    Configure logging for the agent.

    Args:
        config: Shipping configuration
        console: Whether to output to console
    """
    logger.remove()
    logger.configure(extra={"order_id": NO_ORDER})

    if console:
        logger.add(sys.stdout, format=CONSOLE_FORMAT, level=config.log_level, colorize=True)

    log_path = Path(config.log_file)
    log_path.parent.mkdir(parents=True, exist_ok=True)

    logger.add(
        str(log_path),
        format=FILE_FORMAT,
        level=config.log_level,
        rotation="10 MB",
        retention="30 days",
        compression="zip",
        enqueue=True,
    )

    # Label, retry and tracking events for single orders
    logger.add(
        str(log_path.parent / "shipments.log"),
        format=SHIPMENT_FORMAT,
        level="INFO",
        filter=_is_order_record,
        rotation="10 MB",
        retention="180 days",
        compression="zip",
        enqueue=True,
    )

    logger.add(
        str(log_path.parent / "error.log"),
        format=FILE_FORMAT,
        level="ERROR",
        rotation="10 MB",
        retention="60 days",
        compression="zip",
        enqueue=True,
    )

    if config.sentry_dsn:
        try:
            import sentry_sdk
            sentry_sdk.init(
                dsn=config.sentry_dsn,
                traces_sample_rate=0.1,
                release=f"clinic-shipping@{__version__}",
            )
            logger.info("Sentry error tracking enabled")
        except ImportError:
            logger.warning("Sentry SDK not installed, error tracking disabled")

    logger.info(f"Logging initialized - Level: {config.log_level}, File: {log_path}")


def order_logger(order_id: str):
    """Logger whose records are tagged with one order."""
    return logger.bind(order_id=order_id)
