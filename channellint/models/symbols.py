"""シンボル解決と静的型のモデル。"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional, Protocol

from .syntax import ChanDir, Identifier, SyntaxNode


# 時刻を表す既知の型（time.Time）
TIME_PACKAGE = "time"
INSTANT_TYPE_NAME = "Time"


class DeclKind(Enum):
    """宣言の種別。"""
    PACKAGE = "package"
    VARIABLE = "var"
    CONSTANT = "const"
    FUNCTION = "func"
    BUILTIN = "builtin"


class TypeKind(Enum):
    """解決済み型の種別。"""
    NAMED = "named"
    CHANNEL = "chan"


@dataclass(frozen=True)
class ResolvedType:
    """静的に解決された型。

    名前付き型は ``package`` にインポートパスを持つ（組み込み型や
    同一パッケージの型は空文字）。チャネル型は ``element`` を持つ。
    """
    kind: TypeKind
    name: str = ""
    package: str = ""
    element: Optional["ResolvedType"] = None
    direction: ChanDir = ChanDir.BOTH

    def is_instant(self) -> bool:
        """``time.Time`` かどうか。"""
        return (
            self.kind == TypeKind.NAMED
            and self.package == TIME_PACKAGE
            and self.name == INSTANT_TYPE_NAME
        )

    def channel_element(self) -> Optional["ResolvedType"]:
        """チャネル型なら要素型を返す。"""
        if self.kind == TypeKind.CHANNEL:
            return self.element
        return None

    def __str__(self) -> str:
        if self.kind == TypeKind.CHANNEL:
            return f"{self.direction.value} {self.element}"
        if self.package:
            return f"{self.package}.{self.name}"
        return self.name


def channel_of(element: ResolvedType, direction: ChanDir = ChanDir.BOTH) -> ResolvedType:
    """要素型からチャネル型を作る。"""
    return ResolvedType(kind=TypeKind.CHANNEL, element=element, direction=direction)


INSTANT = ResolvedType(kind=TypeKind.NAMED, name=INSTANT_TYPE_NAME, package=TIME_PACKAGE)


@dataclass(frozen=True)
class Declaration:
    """識別子が参照する宣言。

    Attributes:
        kind: 宣言の種別
        name: 宣言された名前
        pos: 宣言位置（組み込みは -1）
        type_expr: 明示された型式（変数・定数）または単一の戻り値型（関数）
        value: 初期化式（型推論用、なければNone）
        import_path: パッケージ名の場合のインポートパス
    """
    kind: DeclKind
    name: str
    pos: int = -1
    type_expr: Optional[SyntaxNode] = None
    value: Optional[SyntaxNode] = None
    import_path: str = ""


class TypeResolver(Protocol):
    """フロントエンドが提供するシンボル・型解決サービス。"""

    def resolve(self, identifier: Identifier) -> Optional[Declaration]:
        ...

    def type_of(self, expression: SyntaxNode) -> Optional[ResolvedType]:
        ...
