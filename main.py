#!/usr/bin/env python
"""
自動カメラキャリブレーション - メインエントリーポイント

上下2台のカメラと胴体の回転補正（roll/tilt）からなるキャリブレーション値を
設定ファイルに従って読み込み・表示・初期化します。
"""

import logging
import sys

from autocalib.calibration import CalibratorSettings, load_calibration, save_calibration
from autocalib.cli import parse_arguments
from autocalib.config import ConfigManager
from autocalib.models import CameraCalibration
from autocalib.utils import setup_logging


def main(argv=None):
    """メイン処理"""
    # コマンドライン引数のパース
    args = parse_arguments(argv)

    # 初期ロギング設定（設定ファイル読み込み前）
    setup_logging(args.debug)
    logger = logging.getLogger(__name__)

    logger.info("=" * 80)
    logger.info("自動カメラキャリブレーション 起動")
    logger.info("=" * 80)

    try:
        # 設定ファイルの読み込み
        logger.info(f"設定ファイルを読み込んでいます: {args.config}")
        config = ConfigManager(args.config)
        config.validate()

        if args.validate:
            logger.info("設定ファイルは有効です")
            return 0

        # デバッグモードの場合、設定を上書き
        if args.debug:
            config.set("output.debug_mode", True)
            logger.info("デバッグモードが有効になりました")

        # ロギングを再設定（出力ディレクトリを反映）
        output_dir = config.get("output.directory", "output")
        setup_logging(args.debug or config.get("output.debug_mode", False), output_dir)
        logger = logging.getLogger(__name__)

        settings = CalibratorSettings.from_config(config.config)
        calibration_path = config.get("calibration.path")

        if args.reset:
            save_calibration(CameraCalibration(), calibration_path)
            logger.info(f"キャリブレーションを初期化しました: {calibration_path}")
            return 0

        calibration = load_calibration(calibration_path)
        logger.info(f"キャリブレーション: {calibration_path}")
        for name, angles in calibration.to_degrees().items():
            logger.info(f"  {name:<13} roll = {angles['roll_deg']:+.3f} deg, tilt = {angles['tilt_deg']:+.3f} deg")
        logger.info(
            f"フィールド寸法: ライン幅 {settings.field_lines_width:.0f} mm, "
            f"平行ライン間隔 {settings.field_dimensions.parallel_lines_distance:.0f} mm"
        )
        return 0

    except FileNotFoundError as e:
        logger.error(f"ファイルが見つかりません: {e}")
        return 1
    except ValueError as e:
        logger.error(f"設定エラー: {e}")
        return 1
    except KeyboardInterrupt:
        logger.warning("処理が中断されました")
        return 130


if __name__ == "__main__":
    sys.exit(main())
