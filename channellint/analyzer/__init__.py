"""チャネル誤用を検出する解析モジュール。"""

from .classifier import ChannelCreation, eval_capacity, is_channel_creation, is_timeout_receive
from .clause_analyzer import ClauseKind, WaitAnalysis, analyze_wait, classify_clause
from .engine import ChannelChecker, FileState
from .reporter import DiagnosticReporter
from .suppression import SuppressionManager

__all__ = [
    "ChannelCreation",
    "eval_capacity",
    "is_channel_creation",
    "is_timeout_receive",
    "ClauseKind",
    "WaitAnalysis",
    "analyze_wait",
    "classify_clause",
    "ChannelChecker",
    "FileState",
    "DiagnosticReporter",
    "SuppressionManager",
]
