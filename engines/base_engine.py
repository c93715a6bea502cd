"""
Base Engine class that all engines inherit from.
Provides logging, event publishing and error handling shared by the engines.

Engines hold no scheduling state between calls: every operation receives
the snapshot and settings it works on. The only state an engine keeps is
its configuration, an optional message bus and error counters.
"""
from abc import ABC, abstractmethod
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Optional
import logging
import os
import traceback

from rich.console import Console

from communication.message import Message, MessageType
from communication.message_bus import MessageBus
from config import config as default_config


class BaseEngine(ABC):
    """
    Abstract base class for the governance engines.

    Provides:
    - Event publishing via an optional MessageBus
    - Dual logging (rich console + shared log file)
    - Error handling that logs the traceback and keeps the engine usable

    Attributes:
        name: Engine name used in logs and events
        message_bus: Optional bus events are published on
        verbose: Whether log lines are echoed to the console
    """

    # Class-level file logger (shared across all engines)
    _file_logger: Optional[logging.Logger] = None
    _log_file_path: Optional[str] = None

    @classmethod
    def setup_file_logging(cls, log_dir: str = "output") -> str:
        """
        Set up file logging for all engines.

        Args:
            log_dir: Directory for log files

        Returns:
            Path to the log file
        """
        if cls._file_logger is not None:
            return cls._log_file_path

        Path(log_dir).mkdir(parents=True, exist_ok=True)

        timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
        log_file = os.path.join(log_dir, f"workload_log_{timestamp}.txt")

        logger = logging.getLogger("WorkloadGovernance")
        logger.setLevel(logging.DEBUG)

        file_handler = logging.FileHandler(log_file, mode='w', encoding='utf-8')
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(logging.Formatter(
            '%(asctime)s | %(levelname)-8s | %(message)s',
            datefmt='%Y-%m-%d %H:%M:%S'
        ))
        logger.addHandler(file_handler)

        BaseEngine._file_logger = logger
        BaseEngine._log_file_path = log_file

        logger.info("=" * 70)
        logger.info("WORKLOAD GOVERNANCE ENGINE - LOG FILE")
        logger.info(f"Session started: {datetime.now().isoformat()}")
        logger.info("=" * 70)

        return log_file

    @classmethod
    def teardown_file_logging(cls) -> None:
        """Close the shared log file."""
        logger = BaseEngine._file_logger
        if logger is None:
            return
        for handler in list(logger.handlers):
            handler.close()
            logger.removeHandler(handler)
        BaseEngine._file_logger = None
        BaseEngine._log_file_path = None

    def __init__(self, name: str, message_bus: Optional[MessageBus] = None,
                 verbose: Optional[bool] = None):
        """
        Initialize the engine.

        Args:
            name: Unique name for this engine
            message_bus: Optional bus to publish events on
            verbose: Echo log lines to the console (defaults to config)
        """
        self.name = name
        self.message_bus = message_bus
        self.verbose = default_config.verbose if verbose is None else verbose
        self.console = Console()
        self._error_count = 0
        self._operation_count = 0

        if default_config.file_logging:
            BaseEngine.setup_file_logging(default_config.log_dir)

        self.log("Engine initialized", "debug")

    @abstractmethod
    def execute(self, **kwargs) -> Any:
        """
        Run the engine's main operation.

        Returns:
            Result of the engine's execution
        """
        pass

    # ==================== Event Publishing ====================

    def publish(self,
                msg_type: MessageType,
                content: Any,
                correlation_id: Optional[str] = None,
                metadata: Optional[dict] = None) -> Optional[Message]:
        """
        Broadcast an event on the message bus, if one is attached.

        Args:
            msg_type: Type of event
            content: Event payload
            correlation_id: ID grouping related events
            metadata: Additional metadata

        Returns:
            The published message, or None without a bus
        """
        if self.message_bus is None:
            return None

        message = Message(msg_type=msg_type, sender=self.name, content=content,
                          metadata=metadata or {})
        if correlation_id:
            message.correlation_id = correlation_id

        if BaseEngine._file_logger:
            BaseEngine._file_logger.info(
                "[Event] %s %s by %s correlation=%s | %s",
                self.name,
                msg_type.value,
                message.actor,
                message.correlation_id,
                message.preview(120),
            )

        self.message_bus.send(message)
        return message

    # ==================== Logging ====================

    def log(self, message: str, level: str = "info") -> None:
        """
        Log a message with engine context (dual: console + file).

        Args:
            message: The log message
            level: Log level (info, warning, error, debug, success)
        """
        if self.verbose:
            colors = {
                "info": "blue",
                "warning": "yellow",
                "error": "red",
                "debug": "dim",
                "success": "green"
            }
            color = colors.get(level, "white")
            self.console.print(f"[{color}][{self.name}] {message}[/{color}]")

        if BaseEngine._file_logger:
            log_level = {
                "info": logging.INFO,
                "warning": logging.WARNING,
                "error": logging.ERROR,
                "debug": logging.DEBUG,
                "success": logging.INFO,
            }.get(level, logging.INFO)

            BaseEngine._file_logger.log(log_level, f"[{self.name}] {message}")

    # ==================== Error Handling ====================

    def _handle_error(self, error: Exception, context: str = "") -> str:
        """
        Log an unexpected error with its traceback.

        Must be called from inside the ``except`` block.

        Args:
            error: The exception that occurred
            context: Description of what was happening

        Returns:
            Human-readable error message for result objects
        """
        self._error_count += 1

        error_msg = f"Error in {context}: {type(error).__name__}: {error}"
        self.log(error_msg, "error")

        if BaseEngine._file_logger:
            BaseEngine._file_logger.error(f"[{self.name}] Traceback:\n{traceback.format_exc()}")

        return str(error) or type(error).__name__

    def get_metrics(self) -> Dict[str, Any]:
        """
        Get engine counters.

        Returns:
            Dictionary with operation and error counts
        """
        return {
            "name": self.name,
            "operations": self._operation_count,
            "error_count": self._error_count,
        }

    # ==================== Utility Methods ====================

    def __str__(self) -> str:
        return f"{self.name} ({self.__class__.__name__})"

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__}(name='{self.name}')>"
