"""ファイル単位の走査エンジン。

構文木を前順で1回だけ走査する。select文を訪問した時点で安全な送信位置を
記録し、その後に子孫として訪問される送信文と照合する。後順で走査すると
フォールバック付きのselect文の送信がすべて誤検知になるため、前順であること
はこのエンジンの不変条件である。
"""

from dataclasses import dataclass, field
from typing import Iterable, List, Optional, Set
import logging

from ..errors import Unresolvable
from ..models.finding import RULE_MESSAGES, RULE_SEVERITIES, Finding, Rule
from ..models.settings import Settings
from ..models.source import SourceFile
from ..models.syntax import CallExpression, SendOperation, SyntaxNode, WaitConstruct, walk
from ..utils.text import go_quote
from .classifier import eval_capacity, is_channel_creation
from .clause_analyzer import analyze_wait
from .reporter import DiagnosticReporter

logger = logging.getLogger(__name__)


@dataclass
class FileState:
    """1ファイルの走査中だけ存在する状態。

    Attributes:
        source_file: 走査中のファイル
        safe_sends: フォールバックで保護された送信位置（SafeSendSet）
        findings: このファイルで生成した指摘（ソース順）
    """
    source_file: SourceFile
    safe_sends: Set[int] = field(default_factory=set)
    findings: List[Finding] = field(default_factory=list)


class ChannelChecker:
    """チャネルの誤用を検出する解析器。"""

    NAME = "channelcheck"
    DOC = "reports channel blocking issues"

    def __init__(self, settings: Optional[Settings] = None):
        """解析器を初期化する。

        Args:
            settings: ルール設定（省略時は既定値）
        """
        self.settings = settings or Settings()
        logger.debug(f"ChannelChecker settings: {self.settings.model_dump()}")

    def check_file(self, source_file: SourceFile) -> List[Finding]:
        """1ファイルを解析する。

        呼び出しごとに新しいFileStateを作るため、安全な送信位置が
        ファイルをまたいで漏れることはない。

        Args:
            source_file: 解析対象

        Returns:
            ソース順の指摘リスト
        """
        state = FileState(source_file=source_file)

        for node in walk(source_file.root):
            if isinstance(node, WaitConstruct):
                self._visit_wait(node, state)
            elif isinstance(node, SendOperation):
                self._visit_send(node, state)
            elif isinstance(node, CallExpression):
                self._visit_call(node, state)

        logger.debug(f"{source_file.path}: {len(state.findings)} findings")
        return state.findings

    def check_files(
        self,
        source_files: Iterable[SourceFile],
        reporter: DiagnosticReporter
    ) -> int:
        """複数ファイルを解析して指摘をレポーターに渡す。

        Args:
            source_files: 解析対象のファイル群
            reporter: 指摘の送り先

        Returns:
            報告した指摘の件数
        """
        count = 0
        for source_file in source_files:
            findings = self.check_file(source_file)
            reporter.extend(findings)
            count += len(findings)
        return count

    def _visit_wait(self, node: WaitConstruct, state: FileState) -> None:
        analysis = analyze_wait(node, state.source_file.resolver)
        if analysis.guarded:
            # 一度安全になった位置はファイルの終わりまで安全
            state.safe_sends.update(analysis.send_positions)

    def _visit_send(self, node: SendOperation, state: FileState) -> None:
        if not self.settings.check_blocking_sends:
            return
        if node.pos not in state.safe_sends:
            self._report(Rule.BLOCKING_SEND, node, state)

    def _visit_call(self, node: CallExpression, state: FileState) -> None:
        creation = is_channel_creation(node, state.source_file.resolver)
        if creation is None:
            return

        if not creation.buffered:
            if self.settings.check_unbuffered_channels:
                self._report(Rule.UNBUFFERED_CHANNEL, node, state)
            return

        limit = self.settings.check_buffer_amount
        if limit <= 0 or creation.capacity is None:
            return

        try:
            capacity = eval_capacity(creation.capacity)
        except Unresolvable as e:
            logger.debug(f"Skipping buffer check at {state.source_file.location(node.pos)}: {e}")
            return

        if capacity == 0:
            self._report(Rule.ZERO_BUFFER, node, state)
        elif capacity > limit:
            self._report(Rule.BUFFER_LIMIT, node, state)

    def _report(self, rule: Rule, node: SyntaxNode, state: FileState) -> None:
        source_file = state.source_file
        snippet = source_file.text(node)
        state.findings.append(Finding(
            rule=rule,
            message=RULE_MESSAGES[rule].format(go_quote(snippet)),
            severity=RULE_SEVERITIES[rule],
            location=source_file.location(node.pos),
            position=node.pos,
            snippet=snippet,
        ))
