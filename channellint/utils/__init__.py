"""ユーティリティモジュール。"""

from .logger import ProgressLogger, setup_logging
from .text import go_quote

__all__ = ["ProgressLogger", "setup_logging", "go_quote"]
