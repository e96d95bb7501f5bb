"""
Logging utilities for the G2B bid monitor.

This module provides structured logging with support for multiple outputs
(console, file) and configurable formats.
"""

import logging
import logging.config
import sys
from pathlib import Path
from typing import Optional
from datetime import datetime
import yaml


def setup_logger(
    config_path: Optional[Path] = None,
    log_level: Optional[str] = None,
    log_dir: Optional[Path] = None
) -> None:
    """
    Set up logging configuration.

    Args:
        config_path: Path to logging configuration YAML file
        log_level: Override log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_dir: Directory for log files
    """
    log_dir = Path(log_dir) if log_dir else Path("logs")
    log_dir.mkdir(parents=True, exist_ok=True)

    if config_path and config_path.exists():
        try:
            with open(config_path, 'r', encoding='utf-8') as f:
                config = yaml.safe_load(f)

            # Point file handlers at timestamped files in log_dir
            timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
            handlers = config.get('handlers', {})
            if 'file' in handlers:
                handlers['file']['filename'] = str(log_dir / f"monitor_{timestamp}.log")
            if 'error_file' in handlers:
                handlers['error_file']['filename'] = str(log_dir / f"errors_{timestamp}.log")

            logging.config.dictConfig(config)
        except Exception as e:
            print(f"Failed to load logging config: {e}", file=sys.stderr)
            _setup_basic_logging(log_level, log_dir)
    else:
        _setup_basic_logging(log_level, log_dir)

    if log_level:
        logging.getLogger().setLevel(log_level.upper())


def _setup_basic_logging(log_level: Optional[str] = None, log_dir: Optional[Path] = None) -> None:
    """
    Set up basic logging configuration as fallback.

    Args:
        log_level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_dir: Directory for log files
    """
    level = getattr(logging, log_level.upper() if log_level else "INFO")

    console_formatter = logging.Formatter(
        '[%(asctime)s] %(levelname)s - %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )
    file_formatter = logging.Formatter(
        '[%(asctime)s] %(levelname)s [%(name)s.%(funcName)s:%(lineno)d] - %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(level)
    console_handler.setFormatter(console_formatter)
    handlers = [console_handler]

    if log_dir:
        log_dir.mkdir(parents=True, exist_ok=True)
        timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
        file_handler = logging.FileHandler(
            log_dir / f"monitor_{timestamp}.log",
            encoding='utf-8'
        )
        file_handler.setLevel(level)
        file_handler.setFormatter(file_formatter)
        handlers.append(file_handler)

    logging.basicConfig(level=level, handlers=handlers)


class MonitorLogger:
    """
    Logger wrapper with monitor-specific methods.

    Provides convenient methods for logging navigation steps and run
    summaries with a consistent layout.
    """

    def __init__(self, name: str):
        self.logger = logging.getLogger(name)

    def log_step(self, state: str, message: str = "") -> None:
        """Log arrival at a navigation state."""
        suffix = f" - {message}" if message else ""
        self.logger.info(f"[{state}] reached{suffix}")

    def log_degraded(self, step: str, reason: str) -> None:
        """Log a non-fatal step failure."""
        self.logger.warning(f"[{step}] degraded: {reason}")

    def log_page_visit(self, url: str) -> None:
        self.logger.info(f"Visiting: {url}")

    def log_error(self, error: Exception, context: Optional[str] = None) -> None:
        """Log error with context."""
        message = f"Error: {str(error)}"
        if context:
            message = f"{context} - {message}"
        self.logger.error(message, exc_info=True)

    def log_run_start(self, target: str) -> None:
        self.logger.info("=" * 60)
        self.logger.info(f"Starting monitor run: {target}")
        self.logger.info("=" * 60)

    def log_run_complete(self, report: dict, duration: float) -> None:
        self.logger.info("=" * 60)
        self.logger.info(f"Run completed in {duration:.2f}s")
        for key, value in report.items():
            self.logger.info(f"  {key}: {value}")
        self.logger.info("=" * 60)

    def __getattr__(self, name):
        """Delegate unknown attributes to underlying logger."""
        return getattr(self.logger, name)
