"""Go構文木の不変モデル。

フロントエンドが具象構文木から変換した結果を表す。解析コアはこのモデルを
読み取るだけで、変更はしない。各ノードはファイル先頭からのバイトオフセット
（``pos``）を持ち、これがファイル内での同一性キーとなる。
"""

from dataclasses import dataclass
from enum import Enum
from typing import Iterator, List, Optional, Tuple


# ファイル内のバイトオフセット
Position = int


class ChanDir(Enum):
    """チャネル型の方向。"""
    BOTH = "chan"
    SEND = "chan<-"
    RECV = "<-chan"


class LiteralKind(Enum):
    """リテラルの種別。"""
    INT = "int"
    FLOAT = "float"
    IMAG = "imag"
    RUNE = "rune"
    STRING = "string"


@dataclass(frozen=True)
class SyntaxNode:
    """構文ノードの基底クラス。"""
    pos: Position
    end: Position

    def children(self) -> Tuple["SyntaxNode", ...]:
        """子ノードをソース順で返す。"""
        return ()


@dataclass(frozen=True)
class Identifier(SyntaxNode):
    """識別子（変数名、パッケージ名、型名）。"""
    name: str = ""


@dataclass(frozen=True)
class Literal(SyntaxNode):
    """基本リテラル。``value`` はソース上の表記そのもの。"""
    kind: LiteralKind = LiteralKind.INT
    value: str = ""


@dataclass(frozen=True)
class BinaryExpression(SyntaxNode):
    """二項演算式。"""
    left: Optional[SyntaxNode] = None
    operator: str = ""
    right: Optional[SyntaxNode] = None

    def children(self) -> Tuple[SyntaxNode, ...]:
        return _present(self.left, self.right)


@dataclass(frozen=True)
class SelectorExpression(SyntaxNode):
    """``X.Sel`` 形式の式。修飾型名（``time.Time``）もこの形で表す。"""
    operand: Optional[SyntaxNode] = None
    field: str = ""

    def children(self) -> Tuple[SyntaxNode, ...]:
        return _present(self.operand)


@dataclass(frozen=True)
class ChannelTypeExpression(SyntaxNode):
    """``chan T`` / ``chan<- T`` / ``<-chan T`` 型式。"""
    element: Optional[SyntaxNode] = None
    direction: ChanDir = ChanDir.BOTH

    def children(self) -> Tuple[SyntaxNode, ...]:
        return _present(self.element)


@dataclass(frozen=True)
class TypeAssertion(SyntaxNode):
    """``x.(T)`` 形式の型アサーション。"""
    operand: Optional[SyntaxNode] = None
    asserted_type: Optional[SyntaxNode] = None

    def children(self) -> Tuple[SyntaxNode, ...]:
        return _present(self.operand, self.asserted_type)


@dataclass(frozen=True)
class CallExpression(SyntaxNode):
    """関数呼び出し。``make(chan int)`` の型引数も ``arguments`` に含まれる。"""
    function: Optional[SyntaxNode] = None
    arguments: Tuple[SyntaxNode, ...] = ()

    def children(self) -> Tuple[SyntaxNode, ...]:
        return _present(self.function) + self.arguments


@dataclass(frozen=True)
class ReceiveExpression(SyntaxNode):
    """``<-ch`` 受信式。"""
    operand: Optional[SyntaxNode] = None

    def children(self) -> Tuple[SyntaxNode, ...]:
        return _present(self.operand)


@dataclass(frozen=True)
class SendOperation(SyntaxNode):
    """``ch <- v`` 送信文。"""
    channel: Optional[SyntaxNode] = None
    value: Optional[SyntaxNode] = None

    def children(self) -> Tuple[SyntaxNode, ...]:
        return _present(self.channel, self.value)


@dataclass(frozen=True)
class Clause(SyntaxNode):
    """select文の節の基底クラス。"""
    body: Tuple[SyntaxNode, ...] = ()

    def children(self) -> Tuple[SyntaxNode, ...]:
        return self.body


@dataclass(frozen=True)
class DefaultClause(Clause):
    """``default:`` 節。"""


@dataclass(frozen=True)
class CommClause(Clause):
    """``case <通信>:`` 節。

    ``communication`` は送信文（SendOperation）または受信式。
    ``v, ok := <-ch`` の左辺は ``assignments`` に保持する。
    """
    communication: Optional[SyntaxNode] = None
    assignments: Tuple[SyntaxNode, ...] = ()

    def children(self) -> Tuple[SyntaxNode, ...]:
        return _present(self.communication) + self.assignments + self.body


@dataclass(frozen=True)
class WaitConstruct(SyntaxNode):
    """select文。``body`` には節以外のノードが含まれることもある。"""
    body: Tuple[SyntaxNode, ...] = ()

    def children(self) -> Tuple[SyntaxNode, ...]:
        return self.body

    def clauses(self) -> List[Clause]:
        """節だけを取り出す。"""
        return [item for item in self.body if isinstance(item, Clause)]


@dataclass(frozen=True)
class Other(SyntaxNode):
    """上記以外のノード。``kind`` は元の構文種別名。"""
    kind: str = ""
    items: Tuple[SyntaxNode, ...] = ()

    def children(self) -> Tuple[SyntaxNode, ...]:
        return self.items


def _present(*nodes: Optional[SyntaxNode]) -> Tuple[SyntaxNode, ...]:
    return tuple(node for node in nodes if node is not None)


def walk(root: SyntaxNode) -> Iterator[SyntaxNode]:
    """前順（親→子、子はソース順）で全ノードを列挙する。

    深くネストした式でも再帰上限に達しないよう明示的なスタックを使う。

    Args:
        root: 走査の起点

    Yields:
        訪問順のノード
    """
    stack: List[SyntaxNode] = [root]
    while stack:
        node = stack.pop()
        yield node
        stack.extend(reversed(node.children()))
