"""``//nolint`` コメントと設定による指摘の抑制。

抑制には3つの範囲がある。

* 行単位: ``//nolint`` が書かれた行（コメントだけの行なら次の行も）
* リンター指定: ``//nolint:channelcheck,blockingSend`` のように対象を限定
* 全体: 設定ファイルの ``disabled_rules`` に列挙したルールID
"""

from typing import Iterable, List, Set
import logging

from ..models.finding import Finding
from ..models.source import SourceFile

logger = logging.getLogger(__name__)

LINTER_NAME = "channelcheck"
WILDCARD = "all"


class SuppressionManager:
    """指摘を抑制するかどうかを判定する。"""

    def __init__(self, disabled_rules: Iterable[str] = (), honor_nolint: bool = True):
        """抑制マネージャーを初期化する。

        Args:
            disabled_rules: 全体で無効にするルールID
            honor_nolint: ``//nolint`` コメントを尊重するかどうか
        """
        self.global_suppressions: Set[str] = set(disabled_rules)
        self.honor_nolint = honor_nolint

    def add_global(self, rule_id: str) -> None:
        """ルールIDを全体で抑制する。"""
        self.global_suppressions.add(rule_id)

    def is_suppressed(self, finding: Finding, source_file: SourceFile) -> bool:
        """指摘が抑制対象かどうかを判定する。

        Args:
            finding: 判定する指摘
            source_file: 指摘を生成したファイル

        Returns:
            抑制する場合True
        """
        if finding.rule_id in self.global_suppressions or WILDCARD in self.global_suppressions:
            return True

        if not self.honor_nolint:
            return False

        linters = source_file.nolint.get(finding.location.line)
        if linters is None:
            return False

        # リンター名のない //nolint はすべてを抑制する
        if not linters:
            return True
        return bool(linters & {LINTER_NAME, finding.rule_id, WILDCARD})

    def filter(self, findings: Iterable[Finding], source_file: SourceFile) -> List[Finding]:
        """抑制対象を除いた指摘を返す。

        Args:
            findings: 1ファイル分の指摘
            source_file: 指摘を生成したファイル

        Returns:
            抑制されなかった指摘（順序は保持）
        """
        kept = []
        suppressed = 0
        for finding in findings:
            if self.is_suppressed(finding, source_file):
                suppressed += 1
            else:
                kept.append(finding)
        if suppressed:
            logger.debug(f"{source_file.path}: suppressed {suppressed} findings")
        return kept
