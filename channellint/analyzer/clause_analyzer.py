"""select文の節を分類し、構文全体としてフォールバックの有無を判定する。

チャネル宣言にはバッファの有無が含まれないため、select文の中の送信が
安全かどうかは節の構成だけで判断する。送信節とフォールバック節
（default節またはタイムアウト受信節）が同じselect文にあれば、その
select文のすべての送信を安全とみなす。
"""

from dataclasses import dataclass
from enum import Enum
from typing import FrozenSet, List

from ..models.symbols import TypeResolver
from ..models.syntax import Clause, CommClause, DefaultClause, SendOperation, WaitConstruct
from .classifier import is_timeout_receive


class ClauseKind(Enum):
    """節の分類（節ごとに算出し、保存しない）。"""
    SEND = "send"
    EXPLICIT_DEFAULT = "default"
    TIMEOUT_RECEIVE = "timeout"
    OTHER_RECEIVE = "receive"


@dataclass(frozen=True)
class WaitAnalysis:
    """select文1つ分の解析結果。"""
    send_found: bool
    fallback_found: bool
    send_positions: FrozenSet[int]

    @property
    def guarded(self) -> bool:
        """送信とフォールバックの両方を含むかどうか。"""
        return self.send_found and self.fallback_found


def classify_clause(clause: Clause, resolver: TypeResolver) -> ClauseKind:
    """節を分類する。

    Args:
        clause: select文の節
        resolver: シンボル・型解決サービス

    Returns:
        ClauseKind
    """
    if isinstance(clause, DefaultClause):
        return ClauseKind.EXPLICIT_DEFAULT
    if isinstance(clause, CommClause):
        if isinstance(clause.communication, SendOperation):
            return ClauseKind.SEND
        if is_timeout_receive(clause.communication, resolver):
            return ClauseKind.TIMEOUT_RECEIVE
    return ClauseKind.OTHER_RECEIVE


def analyze_wait(construct: WaitConstruct, resolver: TypeResolver) -> WaitAnalysis:
    """select文の節を走査して送信とフォールバックを探す。

    節以外の要素（select本体に紛れた宣言など）は無視する。
    副作用はなく、指摘も生成しない。

    Args:
        construct: select文
        resolver: シンボル・型解決サービス

    Returns:
        WaitAnalysis
    """
    send_found = False
    fallback_found = False
    send_positions: List[int] = []

    for clause in construct.clauses():
        kind = classify_clause(clause, resolver)
        if kind == ClauseKind.SEND:
            send_found = True
            send_positions.append(clause.communication.pos)
        elif kind in (ClauseKind.EXPLICIT_DEFAULT, ClauseKind.TIMEOUT_RECEIVE):
            fallback_found = True

    return WaitAnalysis(
        send_found=send_found,
        fallback_found=fallback_found,
        send_positions=frozenset(send_positions),
    )
