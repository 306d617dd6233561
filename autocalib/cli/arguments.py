"""Command-line argument parsing."""

import argparse
from typing import Optional, Sequence


def parse_arguments(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    """コマンドライン引数をパースする

    Args:
        argv: 引数リスト（None の場合は sys.argv を使用）

    Returns:
        パース済み引数
    """
    parser = argparse.ArgumentParser(description="自動カメラキャリブレーション - 上下2カメラの回転補正の管理")

    parser.add_argument(
        "--config",
        type=str,
        default="config.yaml",
        help="設定ファイルのパス（デフォルト: config.yaml）",
    )

    parser.add_argument("--debug", action="store_true", help="デバッグモードで実行（詳細ログ）")

    action = parser.add_mutually_exclusive_group()
    action.add_argument("--reset", action="store_true", help="キャリブレーションを補正なしに戻して保存する")
    action.add_argument("--validate", action="store_true", help="設定ファイルの検証のみを行う")

    return parser.parse_args(argv)
