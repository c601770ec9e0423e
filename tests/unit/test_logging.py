"""Tests for backup_disks logging utilities."""

import json
import logging
import sys

import pytest

from backup_disks.lib.errors import ConfigError
from backup_disks.lib.logging import JSONFormatter, setup_logging
from backup_disks.lib.manager import BackupManager


def make_record(msg="Test message", args=(), exc_info=None, level=logging.INFO):
    return logging.LogRecord(
        name="backup_disks.lib.manager",
        level=level,
        pathname="/test/file.py",
        lineno=42,
        msg=msg,
        args=args,
        exc_info=exc_info,
    )


class TestJSONFormatter:
    """Tests for JSONFormatter class."""

    def test_basic_format(self):
        data = json.loads(JSONFormatter().format(make_record()))

        assert data["level"] == "INFO"
        assert data["logger"] == "backup_disks.lib.manager"
        assert data["message"] == "Test message"
        assert data["timestamp"].endswith("Z")
        assert "disk" not in data
        assert "error" not in data

    def test_format_with_args(self):
        data = json.loads(JSONFormatter().format(make_record("Creating backup disk %s", ("s3-main",))))
        assert data["message"] == "Creating backup disk s3-main"

    def test_disk_context_fields(self):
        record = make_record()
        record.disk = "s3-main"
        record.kind = "s3"

        data = json.loads(JSONFormatter().format(record))
        assert data["disk"] == "s3-main"
        assert data["kind"] == "s3"

    def test_plain_exception(self):
        try:
            raise ValueError("Test error")
        except ValueError:
            exc_info = sys.exc_info()

        data = json.loads(JSONFormatter().format(make_record(exc_info=exc_info)))
        assert "ValueError: Test error" in data["exception"]
        assert "error" not in data

    def test_backup_disk_error_is_structured(self):
        try:
            raise ConfigError("S3 backup disk requires a bucket.", disk="s3-main", field="bucket")
        except ConfigError:
            exc_info = sys.exc_info()

        data = json.loads(JSONFormatter().format(make_record(exc_info=exc_info, level=logging.ERROR)))
        assert data["error"]["error_type"] == "ConfigError"
        assert data["error"]["disk"] == "s3-main"
        assert data["error"]["details"] == {"field": "bucket"}


class TestManagerLogRecords:
    """The manager tags construction records with the disk and kind."""

    def test_construction_record_carries_disk_and_kind(self, caplog):
        manager = BackupManager({"backups": {"disks": {"local": {"kind": "memory"}}}})

        with caplog.at_level(logging.INFO, logger="backup_disks.lib.manager"):
            manager.disk("local")

        record = next(r for r in caplog.records if r.getMessage().startswith("Creating"))
        assert record.disk == "local"
        assert record.kind == "memory"


class TestSetupLogging:
    """Tests for setup_logging."""

    @pytest.fixture(autouse=True)
    def restore_root_logger(self):
        root = logging.getLogger()
        handlers, level = root.handlers[:], root.level
        yield
        for handler in root.handlers[:]:
            root.removeHandler(handler)
        for handler in handlers:
            root.addHandler(handler)
        root.setLevel(level)

    def test_default_level(self):
        setup_logging()
        root = logging.getLogger()
        assert root.level == logging.INFO
        assert len(root.handlers) == 1
        assert root.handlers[0].stream is sys.stderr
        assert logging.getLogger("botocore").level == logging.WARNING

    def test_verbose_json(self):
        setup_logging(verbose=True, json_format=True)
        root = logging.getLogger()
        assert root.level == logging.DEBUG
        assert isinstance(root.handlers[0].formatter, JSONFormatter)

    def test_json_lines_on_stderr(self, capsys):
        setup_logging(json_format=True)

        logging.getLogger("backup_disks.test").info("resolved", extra={"disk": "local"})

        captured = capsys.readouterr()
        assert captured.out == ""
        assert json.loads(captured.err.strip().splitlines()[-1])["disk"] == "local"
