"""Structured logging for the validation pipeline.

One ``PipelineLogger`` follows a batch of documents. Each document gets a
start line and an end line carrying its verdict and elapsed time; each
stage inside it gets a header and a one-line result. Extra keyword data is
rendered as ``key=value`` pairs, shortened so a line stays readable.

With ``log_dir`` set, the batch is also written to a timestamped file.
"""

import logging
import sys
import time
from datetime import datetime
from pathlib import Path
from typing import Any

_MAX_VALUE_CHARS = 60
_MAX_LIST_ITEMS = 5

_LEVEL_PREFIXES = {
    logging.DEBUG: "",
    logging.INFO: "  ",
    logging.WARNING: "WARN: ",
    logging.ERROR: "ERROR: ",
}


class PipelineLogger:
    """Structured logger for the validation pipeline."""

    def __init__(self, name: str = "verdict", verbose: bool = False, log_dir: str | Path | None = None):
        """Initialize the pipeline logger.

        Args:
            name: Logger name.
            verbose: If True, show DEBUG level logs on the console.
            log_dir: Directory for the batch log file. If None, console only.
        """
        self.logger = logging.getLogger(name)
        self.logger.setLevel(logging.DEBUG)
        self.verbose = verbose
        self.log_dir = Path(log_dir) if log_dir else None
        self.log_file: Path | None = None
        self.document_id = ""
        self._document_starts: dict[str, float] = {}
        self._phase_starts: dict[str, float] = {}

        if not self.logger.handlers:
            console = logging.StreamHandler(sys.stdout)
            console.setFormatter(_LineFormatter(timestamps=False))
            self.logger.addHandler(console)
        self.set_verbose(verbose)

    def set_verbose(self, verbose: bool):
        self.verbose = verbose
        for handler in self.logger.handlers:
            if not isinstance(handler, logging.FileHandler):
                handler.setLevel(logging.DEBUG if verbose else logging.INFO)

    @staticmethod
    def _since(started: float | None) -> str:
        return f"{time.monotonic() - started:.2f}s" if started else ""

    def _open_log_file(self):
        if self.log_dir is None or self.log_file is not None:
            return
        self.log_dir.mkdir(parents=True, exist_ok=True)
        self.log_file = self.log_dir / f"verdict_{datetime.now():%Y%m%d_%H%M%S}.log"
        handler = logging.FileHandler(self.log_file, encoding="utf-8")
        handler.setFormatter(_LineFormatter(timestamps=True))
        handler.setLevel(logging.DEBUG)
        self.logger.addHandler(handler)

    def log(self, level: int, message: str, exc: BaseException | None = None, **data):
        """Emit one line at ``level`` with structured data appended."""
        text = _compose(message, data)
        if exc is not None:
            text = f"{text} | {type(exc).__name__}: {exc}"
        self.logger.log(level, f"{_LEVEL_PREFIXES.get(level, '')}{text}")

    # -- Documents --

    def start_pipeline(self, document_id: str, **data):
        """Mark the start of processing for one document."""
        self._open_log_file()
        self.document_id = document_id
        self._document_starts[document_id] = time.monotonic()
        self.logger.info(_compose(f"Processing document: {document_id}", data))

    def end_pipeline(self, success: bool = True, document_id: str | None = None, **data):
        """Mark the end of processing for one document.

        Args:
            success: False when the document was rejected before judgment.
            document_id: Document to close. Defaults to the last one started;
                pass it when documents are processed concurrently.
            **data: Verdict details (outcome, confidence, stage, reason).
        """
        status = "COMPLETE" if success else "REJECTED"
        document_id = document_id or self.document_id
        started = self._document_starts.pop(document_id, None)
        line = f"Document {document_id} {status} [{self._since(started)}]"
        self.logger.info(_compose(line, data))

    # -- Stages --

    def start_phase(self, phase: str, model: str = ""):
        """Header line for a stage, with the short model name if it calls one."""
        self._phase_starts[phase.lower()] = time.monotonic()
        header = phase.upper()
        if model:
            header += f" ({model.rsplit('/', 1)[-1]})"
        self.logger.info(header)

    def end_phase(self, phase: str = ""):
        self._phase_starts.pop(phase.lower(), None)

    def phase_result(self, phase: str, result: str, **metrics):
        """Log stage completion with key metrics.

        Args:
            phase: Stage name (e.g., "audit")
            result: Brief result description
            **metrics: Key-value metrics to display
        """
        line = f"  Done: {result}"
        if metrics:
            line += " | " + ", ".join(f"{k}={v}" for k, v in metrics.items())
        elapsed = self._since(self._phase_starts.get(phase.lower()))
        if elapsed:
            line += f" | [{elapsed}]"
        self.logger.info(line)

    def milestone(self, message: str, **data):
        """Log a decision point (verdict, fallback taken)."""
        self.logger.info(f"  -> {_compose(message, data)}")

    # -- Levels --

    def debug(self, message: str, **data):
        self.log(logging.DEBUG, message, **data)

    def info(self, message: str, **data):
        self.log(logging.INFO, message, **data)

    def warning(self, message: str, **data):
        self.log(logging.WARNING, message, **data)

    def error(self, message: str, exc: BaseException | None = None, **data):
        self.log(logging.ERROR, message, exc=exc, **data)

    # -- Batch --

    def summary(self, stats: dict):
        """Log a summary block, e.g. batch statistics."""
        self.logger.info("\n".join(["SUMMARY", *_summary_lines(stats, depth=1)]))


class _LineFormatter(logging.Formatter):
    """Bare message on the console, timestamp and level in files."""

    def __init__(self, timestamps: bool):
        super().__init__()
        self.timestamps = timestamps

    def format(self, record: logging.LogRecord) -> str:
        if not self.timestamps:
            return record.getMessage()
        ts = datetime.fromtimestamp(record.created).strftime("%Y-%m-%d %H:%M:%S.%f")[:-3]
        return f"{ts} [{record.levelname[:4]}] {record.getMessage()}"


def _short(value: Any) -> Any:
    if isinstance(value, str) and len(value) > _MAX_VALUE_CHARS:
        return value[:_MAX_VALUE_CHARS - 3] + "..."
    if isinstance(value, (list, tuple, set)) and len(value) > _MAX_LIST_ITEMS:
        return f"[{len(value)} items]"
    return value


def _compose(message: str, data: dict[str, Any]) -> str:
    if not data:
        return message
    return f"{message} | " + ", ".join(f"{k}={_short(v)}" for k, v in data.items())


def _summary_lines(stats: dict, depth: int) -> list[str]:
    indent = "  " * depth
    lines = []
    for key, value in stats.items():
        if isinstance(value, dict):
            lines.append(f"{indent}{key}:")
            lines.extend(_summary_lines(value, depth + 1))
        else:
            lines.append(f"{indent}{key}: {value}")
    return lines


_logger: PipelineLogger | None = None


def get_logger(verbose: bool = False, log_dir: str | Path | None = None) -> PipelineLogger:
    """Get or create the global pipeline logger.

    An existing logger is upgraded to verbose when asked, and picks up
    ``log_dir`` if it has none yet.
    """
    global _logger
    if _logger is None:
        _logger = PipelineLogger(verbose=verbose, log_dir=log_dir)
        return _logger
    if verbose and not _logger.verbose:
        _logger.set_verbose(True)
    if log_dir and _logger.log_dir is None:
        _logger.log_dir = Path(log_dir)
    return _logger


def reset_logger():
    """Drop the global logger and close its log file (for testing)."""
    global _logger
    if _logger is not None:
        for handler in _logger.logger.handlers[:]:
            if isinstance(handler, logging.FileHandler):
                handler.close()
                _logger.logger.removeHandler(handler)
    _logger = None
