import errno
import logging
from logtree.error_handling import (
    FilesystemError,
    LogTreeError,
    SerializationError,
    WatcherRuntimeError,
    WatcherSetupError,
    filesystem_error,
    handle_error,
)


def test_taxonomy():
    for cls in (FilesystemError, SerializationError, WatcherSetupError, WatcherRuntimeError):
        assert issubclass(cls, LogTreeError)
    assert LogTreeError("boom").details == {}


def test_filesystem_error_keeps_path():
    error = filesystem_error(FileNotFoundError(errno.ENOENT, "No such file or directory", "/var/log/x"), "walk")
    assert isinstance(error, FilesystemError)
    assert error.details == {"path": "/var/log/x", "errno": errno.ENOENT, "operation": "walk"}
    assert "No such file or directory" in str(error)


def test_handle_error_merges_details(caplog):
    logger = logging.getLogger("logtree.test")
    try:
        raise SerializationError("bad bytes", details={"reason": "UnicodeDecodeError"})
    except SerializationError as e:
        with caplog.at_level(logging.ERROR):
            response = handle_error(logger, e, "serialize_tree")

    assert response["type"] == "error"
    assert response["message"] == "bad bytes"
    assert response["details"]["type"] == "SerializationError"
    assert response["details"]["reason"] == "UnicodeDecodeError"
    assert response["details"]["operation"] == "serialize_tree"
    assert "Error during serialize_tree: bad bytes" in caplog.text
