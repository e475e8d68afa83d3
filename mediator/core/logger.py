"""Mediator Logger - Cross-platform, self-cleaning logging utility."""

import logging
import platform
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path

from mediator.core.config import settings


class MediatorLogger:
    """
    Cross-platform logging utility.

    Features:
    - Stdlib only
    - Console output on stderr (stdout carries the tool protocol in the agent process)
    - Self-cleaning with size-based rotation
    """

    def __init__(self, name: str = "mediator"):
        self.logger = logging.getLogger(name)
        self.logger.setLevel(logging.DEBUG)
        self._setup_handlers()

    def _get_log_dir(self) -> Path:
        """Cross-platform log directory discovery."""
        if platform.system() == "Windows":
            # Windows: %LOCALAPPDATA%\mediator\logs
            base_dir = Path.home() / "AppData/Local/mediator"
        else:
            # Linux/macOS: XDG state directory
            base_dir = Path.home() / ".local/state/mediator"

        log_dir = base_dir / "logs"
        log_dir.mkdir(parents=True, exist_ok=True)
        return log_dir

    def _setup_handlers(self):
        """Set up console and rotating file handlers."""
        # Prevent double logging if handlers already exist
        if self.logger.handlers:
            return

        formatter = logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s")

        console_handler = logging.StreamHandler(sys.stderr)
        console_handler.setFormatter(formatter)
        console_handler.setLevel(logging.INFO)
        self.logger.addHandler(console_handler)

        try:
            log_file = self._get_log_dir() / "server.log"
            file_handler = RotatingFileHandler(
                log_file,
                maxBytes=settings.log_max_bytes,
                backupCount=settings.log_backup_count,
                encoding="utf-8",
            )
            file_handler.setFormatter(formatter)
            file_handler.setLevel(logging.DEBUG)  # File gets more detail
            self.logger.addHandler(file_handler)
        except (OSError, PermissionError) as e:
            # Console-only fallback
            self.logger.warning(f"Could not set up file logging: {e}")
            self.logger.info("Continuing with console logging only")


# Global instance - mediator modules should use this logger
logger = MediatorLogger().logger
