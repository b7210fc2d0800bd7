import logging
from typing import Optional, Any, Dict
import traceback

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'


class LogTreeError(Exception):
    """Base exception class for logtree errors"""
    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.details = details or {}


class FilesystemError(LogTreeError):
    """Raised when a path is missing, unreadable, or a read fails mid-walk"""
    pass


class SerializationError(LogTreeError):
    """Raised when a walked tree cannot be encoded as JSON"""
    pass


class WatcherSetupError(LogTreeError):
    """Raised when the watcher cannot register the tree or start observing"""
    pass


class WatcherRuntimeError(LogTreeError):
    """Raised (and logged) for errors reported while observing"""
    pass


class ConfigError(LogTreeError):
    """Raised when settings fail validation"""
    pass


def filesystem_error(error: OSError, operation: str) -> FilesystemError:
    """Wrap an OSError, keeping the path and errno as details"""
    return FilesystemError(
        f"{operation} failed: {error.strerror or error}",
        details={
            "path": error.filename,
            "errno": error.errno,
            "operation": operation,
        }
    )


def setup_logging(level: str = "INFO", log_file: Optional[str] = None):
    """Configure logging for the application"""
    handlers = [logging.StreamHandler()]
    if log_file:
        handlers.append(logging.FileHandler(log_file))

    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format=LOG_FORMAT,
        handlers=handlers,
        force=True
    )


def log_operation(logger: logging.Logger, operation: str, **kwargs):
    """Log an operation with its parameters"""
    logger.info(f"Operation: {operation}", extra={"parameters": kwargs})


def handle_error(logger: logging.Logger, error: Exception, operation: str) -> Dict[str, Any]:
    """Handle and log an error, return error response"""
    error_details = {
        "type": type(error).__name__,
        "message": str(error),
        "operation": operation,
        "traceback": traceback.format_exc()
    }

    if isinstance(error, LogTreeError):
        error_details.update(error.details)

    logger.error(
        f"Error during {operation}: {str(error)}",
        extra={"error_details": error_details},
        exc_info=True
    )

    return {
        "type": "error",
        "message": str(error),
        "details": error_details
    }
