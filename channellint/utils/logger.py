"""ロギング設定モジュール。"""

import logging
import sys
from pathlib import Path
from typing import List, Optional

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def setup_logging(level: str = "INFO", log_file: Optional[str] = None) -> logging.Logger:
    """ルートロガーにコンソールと任意のファイル出力を設定する。

    指摘は標準出力に書くため、コンソールへのログは標準エラー出力に流す。
    再度呼ばれた場合は既存のハンドラーを置き換える。

    Args:
        level: ログレベル名（不明な名前はINFO）
        log_file: ログファイルへのパス（省略可）

    Returns:
        ルートロガー
    """
    log_level = getattr(logging, str(level).upper(), logging.INFO)

    handlers: List[logging.Handler] = [logging.StreamHandler(sys.stderr)]
    if log_file:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(log_path, encoding="utf-8"))

    formatter = logging.Formatter(LOG_FORMAT)
    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.setLevel(log_level)
    for handler in handlers:
        handler.setLevel(log_level)
        handler.setFormatter(formatter)
        root_logger.addHandler(handler)

    return root_logger


class ProgressLogger:
    """解析ファイル数の進捗をログに出すヘルパークラス。"""

    def __init__(
        self,
        total: int,
        logger: Optional[logging.Logger] = None,
        log_interval: int = 50
    ):
        """進捗ロガーを初期化する。

        Args:
            total: ファイルの総数
            logger: 使用するロガー
            log_interval: 進捗を出す間隔（ファイル数）
        """
        self.total = total
        self.current = 0
        self.logger = logger or logging.getLogger(__name__)
        self.log_interval = max(1, log_interval)

    def update(self, message: Optional[str] = None) -> None:
        """1ファイル分進める。

        Args:
            message: 含めるメッセージ（省略可）
        """
        self.current += 1
        if self.current % self.log_interval != 0 and self.current != self.total:
            return

        progress = self.current / self.total * 100 if self.total else 100.0
        msg = f"Progress: {self.current}/{self.total} files ({progress:.1f}%)"
        if message:
            msg += f" - {message}"
        self.logger.info(msg)

    def complete(self, message: str = "Analysis complete") -> None:
        """進捗を完了としてマークする。"""
        self.logger.info(f"{message}: {self.current} files analyzed")
