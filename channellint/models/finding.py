"""解析結果の指摘情報モデル。"""

from dataclasses import dataclass
from enum import Enum
import os


class Severity(Enum):
    """指摘の重大度レベル。"""
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"
    INFO = "info"


class Rule(Enum):
    """指摘を生成したルール。"""
    BLOCKING_SEND = "blockingSend"
    UNBUFFERED_CHANNEL = "unbufferedChannel"
    ZERO_BUFFER = "zeroBuffer"
    BUFFER_LIMIT = "bufferLimit"


# ルールごとのメッセージ書式（%q相当の部分に引用済みソースを埋め込む）
RULE_MESSAGES = {
    Rule.BLOCKING_SEND: (
        "channel send without default or timer - "
        "consider adding default or timeout case {}"
    ),
    Rule.UNBUFFERED_CHANNEL: (
        "unbuffered channel creation detected - "
        "consider specifying buffer size {}"
    ),
    Rule.ZERO_BUFFER: "channel buffer size set to 0 {}",
    Rule.BUFFER_LIMIT: "channel buffer size exceeds the specified limit {}",
}

RULE_SEVERITIES = {
    Rule.BLOCKING_SEND: Severity.MEDIUM,
    Rule.UNBUFFERED_CHANNEL: Severity.LOW,
    Rule.ZERO_BUFFER: Severity.LOW,
    Rule.BUFFER_LIMIT: Severity.LOW,
}


@dataclass(frozen=True)
class SourceLocation:
    """ソースコードの位置情報（行・列は1始まり、列はバイト単位）。"""
    file_path: str
    line: int
    column: int = 0

    def __post_init__(self):
        # パスを正規化
        object.__setattr__(self, "file_path", os.path.normpath(self.file_path))

    def __str__(self) -> str:
        if self.column:
            return f"{self.file_path}:{self.line}:{self.column}"
        return f"{self.file_path}:{self.line}"


@dataclass(frozen=True)
class Finding:
    """チャネル誤用の指摘。

    ``position`` はファイル内のバイトオフセットで、同一ファイル内の
    ソース順の比較に使う。
    """
    rule: Rule
    message: str
    severity: Severity
    location: SourceLocation
    position: int
    snippet: str = ""

    @property
    def rule_id(self) -> str:
        return self.rule.value

    def to_dict(self) -> dict:
        """JSON出力用の辞書に変換する。

        Returns:
            位置・ルール・重大度・メッセージを含む辞書
        """
        return {
            "posn": str(self.location),
            "rule": self.rule.value,
            "severity": self.severity.value,
            "message": self.message,
        }

    def __str__(self) -> str:
        return f"{self.location}: {self.message}"
