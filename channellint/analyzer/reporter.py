"""指摘の集約。"""

from collections import Counter
from typing import Dict, Iterable, List, Tuple
import os
import threading

from ..models.finding import Finding, Rule


class DiagnosticReporter:
    """解析器が生成した指摘を受け取るスレッドセーフな集約先。

    受け取った順序を保持する。ファイル単位では解析器がソース順に
    報告するため、ファイル内の順序もソース順になる。
    """

    def __init__(self):
        self._findings: List[Finding] = []
        self._lock = threading.Lock()

    def report(self, finding: Finding) -> None:
        """指摘を1件受け取る。"""
        with self._lock:
            self._findings.append(finding)

    def extend(self, findings: Iterable[Finding]) -> None:
        """複数の指摘を順序を保ったまま受け取る。"""
        findings = list(findings)
        with self._lock:
            self._findings.extend(findings)

    @property
    def findings(self) -> Tuple[Finding, ...]:
        with self._lock:
            return tuple(self._findings)

    def for_file(self, path: str) -> List[Finding]:
        """指定ファイルの指摘だけを返す。

        Args:
            path: ファイルパス（正規化して比較する）

        Returns:
            ソース順の指摘リスト
        """
        target = os.path.normpath(path)
        return [f for f in self.findings if f.location.file_path == target]

    def count_by_rule(self) -> Dict[Rule, int]:
        """ルールごとの件数を集計する。"""
        counts = Counter(f.rule for f in self.findings)
        return {rule: counts[rule] for rule in Rule if counts[rule]}

    def __len__(self) -> int:
        with self._lock:
            return len(self._findings)
