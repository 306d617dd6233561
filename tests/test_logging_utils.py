"""Test cases for logging_utils."""

from __future__ import annotations

import logging
from pathlib import Path

from autocalib.utils.logging_utils import LOG_FILE_NAME, setup_logging


def test_setup_logging_debug_mode(tmp_path: Path):
    """デバッグモードでのロギング設定"""
    output_dir = str(tmp_path / "output")

    log_path = setup_logging(debug_mode=True, output_dir=output_dir)

    root_logger = logging.getLogger()
    assert root_logger.level == logging.DEBUG
    assert log_path == Path(output_dir) / LOG_FILE_NAME

    file_handlers = [h for h in root_logger.handlers if isinstance(h, logging.FileHandler)]
    assert len(file_handlers) == 1
    assert Path(file_handlers[0].baseFilename) == log_path.absolute()


def test_setup_logging_info_mode(tmp_path: Path):
    """INFOモードでのロギング設定"""
    setup_logging(debug_mode=False, output_dir=str(tmp_path / "output"))

    assert logging.getLogger().level == logging.INFO


def test_setup_logging_creates_directory(tmp_path: Path):
    """存在しないディレクトリが自動作成される"""
    output_dir = tmp_path / "new" / "output"

    setup_logging(debug_mode=False, output_dir=str(output_dir))

    assert output_dir.exists()


def test_setup_logging_replaces_existing_handlers(tmp_path: Path):
    """再設定しても console + file の2つだけになる"""
    setup_logging(debug_mode=False, output_dir=str(tmp_path / "first"))
    setup_logging(debug_mode=False, output_dir=str(tmp_path / "second"))

    root_logger = logging.getLogger()
    assert len(root_logger.handlers) == 2


def test_log_messages_are_written_to_file(tmp_path: Path):
    log_path = setup_logging(debug_mode=False, output_dir=str(tmp_path))

    logging.getLogger("autocalib.test").info("calibration started")
    for handler in logging.getLogger().handlers:
        handler.flush()

    content = log_path.read_text(encoding="utf-8")
    assert "calibration started" in content
    assert "autocalib.test - INFO" in content
