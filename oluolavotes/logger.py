"""
oluolavotes Logging System
==========================

Process-wide logging for the voting client. Integrates the standard
`logging` module with `rich` for highlighted console output and keeps a
rotating log file for later inspection.

Usage:
    >>> from oluolavotes.logger import get_logger
    >>> logger = get_logger(__name__)
    >>> logger.info("Proposal refresh started")
"""

import logging
import logging.handlers
import re
import sys
import threading
import time
from pathlib import Path
from typing import Optional

from rich.console import Console
from rich.highlighter import RegexHighlighter
from rich.logging import RichHandler
from rich.theme import Theme

from .constants import (
    LOG_LEVEL,
    LOG_FORMAT,
    LOG_DATE_FORMAT,
    LOG_FILE,
    LOG_FILE_OUTPUT,
    LOG_MAX_FILE_SIZE,
    LOG_BACKUP_COUNT,
    LOG_CONSOLE_HIGHLIGHTING,
)


# Libraries whose INFO chatter drowns out contract call logs
_NOISY_LIBRARIES = ("httpx", "httpcore", "httpcore.connection", "httpcore.http11")


class LogManager:
    """
    Configures the root logger exactly once per process.

    Attributes:
        _instance (LogManager): The singleton instance.
        _lock (threading.Lock): Guards initialization and configuration.
    """

    _instance: Optional["LogManager"] = None
    _lock: threading.Lock = threading.Lock()


    def __new__(cls) -> "LogManager":
        if cls._instance is None:
            with cls._lock:
                if cls._instance is None:
                    cls._instance = super().__new__(cls)
                    cls._instance._initialized = False
        return cls._instance


    def __init__(self) -> None:
        if self._initialized:
            return
        self._configured = False
        self._initialized = True


    @staticmethod
    def validate_log_format(log_format: str) -> str:
        """
        Checks that a logging format string renders against a dummy record.

        Args:
            log_format (str): The logging format string from the environment.

        Returns:
            str: The format itself, or the default format if it cannot be used.
        """
        if not log_format:
            return str(LOG_FORMAT.default())
        try:
            formatter = logging.Formatter(fmt=str(log_format))
            record = logging.LogRecord(
                name="check", level=logging.INFO, pathname="", lineno=0,
                msg="check", args=(), exc_info=None,
            )
            formatter.format(record)
            return str(log_format)
        except (ValueError, KeyError, TypeError) as e:
            print(
                f"{time.strftime('%Y-%m-%d %H:%M:%S')} - oluolavotes.logger - "
                f"Invalid LOG_FORMAT ({e}). Using default.",
                file=sys.stderr,
            )
            return str(LOG_FORMAT.default())


    def configure(
        self,
        log_level: Optional[str] = None,
        log_file: Optional[Path] = None,
        console_output: bool = True,
        file_output: Optional[bool] = None,
    ) -> None:
        """
        Attaches console and file handlers to the root logger.

        Args:
            log_level (Optional[str]): DEBUG, INFO, ... Defaults to LOG_LEVEL.
            log_file (Optional[Path]): Log file path. Defaults to LOG_FILE.
            console_output (bool): Log to the terminal.
            file_output (Optional[bool]): Log to a rotating file. Defaults to LOG_FILE_OUTPUT.
        """
        with self._lock:
            if self._configured:
                return

            level_str = log_level or LOG_LEVEL
            numeric_level = getattr(logging, str(level_str).upper(), logging.INFO)

            root_logger = logging.getLogger()
            root_logger.setLevel(numeric_level)

            for lib in _NOISY_LIBRARIES:
                logging.getLogger(lib).setLevel(logging.WARNING)

            root_logger.handlers.clear()

            log_format = self.validate_log_format(LOG_FORMAT)
            date_format = str(LOG_DATE_FORMAT) or str(LOG_DATE_FORMAT.default())

            # Timestamps are always UTC
            formatter = TerminalSafeFormatter(fmt=log_format, datefmt=date_format + " UTC")
            formatter.converter = time.gmtime

            if console_output:
                if LOG_CONSOLE_HIGHLIGHTING:
                    theme = Theme(
                        {
                            "votes.arrow":          "bold yellow",
                            "votes.contract_fn":    "bold white",
                            "votes.failed":         "bold red",
                            "votes.cancelled":      "bold yellow",
                            "votes.finished":       "bold green",
                            "votes.level_critical": "bold red reverse",
                            "votes.level_debug":    "bold dim",
                            "votes.level_error":    "bold red",
                            "votes.level_info":     "bold green",
                            "votes.level_warning":  "bold yellow",
                            "votes.logger_name":    "magenta",
                            "votes.principal":      "cyan",
                            "votes.proposal":       "bold magenta",
                            "votes.timestamp":      "bold cyan",
                            "votes.txid":           "cyan",
                            "votes.url":            "cyan",
                        }
                    )
                    console = Console(theme=theme, highlight=False, stderr=True)
                    rich_handler = RichHandler(
                        console=console,
                        highlighter=VotesLogHighlighter(),
                        keywords=[],
                        rich_tracebacks=True,
                        omit_repeated_times=False,
                        show_path=False,
                        show_time=False,
                        show_level=False,
                        markup=False,
                    )
                    rich_handler.setLevel(numeric_level)
                    rich_handler.setFormatter(formatter)
                    root_logger.addHandler(rich_handler)
                else:
                    console_handler = logging.StreamHandler(sys.stderr)
                    console_handler.setLevel(numeric_level)
                    console_handler.setFormatter(formatter)
                    root_logger.addHandler(console_handler)

            if file_output is None:
                file_output = bool(LOG_FILE_OUTPUT)

            if file_output:
                log_file_path = Path(log_file or str(LOG_FILE))
                log_file_path.parent.mkdir(parents=True, exist_ok=True)

                file_handler = logging.handlers.RotatingFileHandler(
                    filename=str(log_file_path),
                    maxBytes=LOG_MAX_FILE_SIZE,
                    backupCount=LOG_BACKUP_COUNT,
                    encoding="utf-8",
                )
                file_handler.setLevel(numeric_level)
                file_handler.setFormatter(formatter)
                root_logger.addHandler(file_handler)

            self._configured = True


    def get_logger(self, name: str) -> logging.Logger:
        """Returns the standard logger for `name`, configuring logging first if needed."""
        if not self._configured:
            self.configure()
        return logging.getLogger(name)


    def set_level(self, log_level: str) -> None:
        """Changes the level of the root logger and every handler attached to it."""
        numeric_level = getattr(logging, str(log_level).upper(), logging.INFO)
        root_logger = logging.getLogger()
        root_logger.setLevel(numeric_level)
        for handler in root_logger.handlers:
            handler.setLevel(numeric_level)


    @property
    def is_configured(self) -> bool:
        return self._configured


class TerminalSafeFormatter(logging.Formatter):
    """
    Strips ANSI escape sequences and control characters from formatted records.

    Proposal titles and descriptions are user-authored on-chain text and end
    up in log lines verbatim, so they must not be able to drive the terminal.
    """

    _ansi_escape_re = re.compile(
        r"\x1b\[[0-?]*[ -/]*[@-~]"
        r"|\x1b[@-Z\\-_]"
    )
    # Control chars (0x00-0x1F) except Tab and Newline
    _control_chars_re = re.compile(r"[\x00-\x08\x0B\x0C\x0E-\x1F\x7F]")
    _carriage_return_re = re.compile(r"\r")


    @classmethod
    def sanitize(cls, text: str) -> str:
        if not text:
            return text
        text = cls._ansi_escape_re.sub("", text)
        text = cls._carriage_return_re.sub("", text)
        text = cls._control_chars_re.sub("", text)
        return text


    def format(self, record: logging.LogRecord) -> str:
        return self.sanitize(super().format(record))


class VotesLogHighlighter(RegexHighlighter):
    """Colors contract calls, principals, proposal ids and outcomes in log lines."""

    base_style = "votes."
    highlights = [
        r"(?P<arrow>(\-\->)|(<--))",
        r"(?P<contract_fn>\b(get-proposal-count|get-proposal|get-voting-results|is-voting-active|get-vote|create-proposal|vote|end-voting)\b)",
        r"(?P<level_critical>\bCRITICAL\b)",
        r"(?P<level_debug>\bDEBUG\b)",
        r"(?P<level_error>\bERROR\b)",
        r"(?P<level_info>\bINFO\b)",
        r"(?P<level_warning>\bWARNING\b)",
        r"\-\s+\w+\s+-\s+(?P<logger_name>[\w.]+)(?=\s-\s)",
        r"(?P<principal>\bS[PMTN][0-9A-HJKMNP-TV-Z]{28,41}(\.[a-zA-Z][\w-]*)?)",
        r"(?P<proposal>#\d+)",
        r"(?P<txid>\b0x[0-9a-fA-F]{64}\b)",
        r"(?P<finished>\bFINISHED\b)",
        r"(?P<cancelled>\bCANCELLED\b)",
        r"(?P<failed>\bFAILED\b)",
        r"(?P<timestamp>^(.*?)UTC)",
        r"(?P<url>https?://\S+)",
    ]


_manager = LogManager()

def get_logger(name: str) -> logging.Logger:
    """
    Public accessor of the logging system.

    Args:
        name (str): The name of the module requesting the logger.

    Returns:
        logging.Logger: The configured logger instance.
    """
    return _manager.get_logger(name)

def set_log_level(log_level: str) -> None:
    """Applies a configured log level (e.g. the [logging] level from oluolavotes.toml)."""
    _manager.set_level(log_level)

# Auto-configure on import
_manager.configure()
