"""指摘のテキスト・JSON出力モジュール。"""

from typing import Iterable, TextIO
import json
import logging

from ..analyzer.engine import ChannelChecker
from ..models.finding import Finding

logger = logging.getLogger(__name__)


class ReportWriter:
    """指摘を標準出力などのストリームに書き出す。"""

    FORMATS = ("text", "json")

    def __init__(self, stream: TextIO, output_format: str = "text"):
        """レポートライターを初期化する。

        Args:
            stream: 出力先ストリーム
            output_format: "text" または "json"
        """
        if output_format not in self.FORMATS:
            raise ValueError(f"Unknown output format: {output_format}")
        self.stream = stream
        self.output_format = output_format

    def write(self, findings: Iterable[Finding]) -> int:
        """指摘を書き出す。

        Args:
            findings: 出力する指摘（この順序で出力する）

        Returns:
            出力した件数
        """
        findings = list(findings)
        if self.output_format == "json":
            self._write_json(findings)
        else:
            self._write_text(findings)
        logger.debug(f"Wrote {len(findings)} findings as {self.output_format}")
        return len(findings)

    def _write_text(self, findings) -> None:
        # go vet と同じ path:line:col: message 形式
        for finding in findings:
            self.stream.write(f"{finding}\n")

    def _write_json(self, findings) -> None:
        data = {ChannelChecker.NAME: [finding.to_dict() for finding in findings]}
        json.dump(data, self.stream, indent=2, ensure_ascii=False)
        self.stream.write("\n")
