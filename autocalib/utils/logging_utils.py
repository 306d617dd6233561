"""Logging utilities for the automatic camera calibrator."""

import logging
import sys
from pathlib import Path

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
LOG_FILE_NAME = "system.log"


def setup_logging(debug_mode: bool = False, output_dir: str = "output") -> Path:
    """ロギングを設定する

    コンソールと出力ディレクトリ内の system.log に同じ形式で出力する。
    デバッグモードではサンプル誤差や反復ごとのステップ幅も出力される。

    Args:
        debug_mode: デバッグモードの場合True
        output_dir: 出力ディレクトリ

    Returns:
        ログファイルのパス
    """
    log_level = logging.DEBUG if debug_mode else logging.INFO
    formatter = logging.Formatter(LOG_FORMAT)

    # 既存のハンドラをクリア
    root_logger = logging.getLogger()
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)
        handler.close()

    # コンソール出力
    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(log_level)
    console_handler.setFormatter(formatter)

    # ファイル出力
    log_dir = Path(output_dir)
    log_dir.mkdir(exist_ok=True, parents=True)
    log_path = log_dir / LOG_FILE_NAME

    file_handler = logging.FileHandler(log_path, encoding="utf-8")
    file_handler.setLevel(log_level)
    file_handler.setFormatter(formatter)

    root_logger.setLevel(log_level)
    root_logger.addHandler(console_handler)
    root_logger.addHandler(file_handler)

    return log_path
