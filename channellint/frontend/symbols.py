"""Goソースのシンボル解決と簡易な静的型付け。"""

from typing import Dict, Optional, Tuple
import re

from ..models.symbols import (
    INSTANT,
    DeclKind,
    Declaration,
    ResolvedType,
    TypeKind,
    channel_of,
)
from ..models.syntax import (
    CallExpression,
    ChanDir,
    ChannelTypeExpression,
    Identifier,
    ReceiveExpression,
    SelectorExpression,
    SyntaxNode,
    TypeAssertion,
)

# ユニバーススコープの組み込み関数
BUILTIN_FUNCTIONS = (
    "append", "cap", "clear", "close", "complex", "copy", "delete",
    "imag", "len", "make", "max", "min", "new", "panic", "print",
    "println", "real", "recover",
)

# 戻り値の型が既知の標準パッケージ関数（インポートパス, 関数名）
KNOWN_PACKAGE_FUNCTIONS: Dict[Tuple[str, str], ResolvedType] = {
    ("time", "After"): channel_of(INSTANT, ChanDir.RECV),
    ("time", "Tick"): channel_of(INSTANT, ChanDir.RECV),
}

# 型推論の再帰の上限
MAX_INFERENCE_DEPTH = 16

_MAJOR_VERSION = re.compile(r"^v[0-9]+$")


def default_package_name(import_path: str) -> str:
    """インポートパスから既定のパッケージ名を推定する。

    ``math/rand/v2`` → ``rand``、``gopkg.in/yaml.v3`` → ``yaml``。

    Args:
        import_path: インポートパス

    Returns:
        パッケージ名
    """
    parts = [part for part in import_path.split("/") if part]
    if not parts:
        return import_path
    name = parts[-1]
    if _MAJOR_VERSION.match(name) and len(parts) > 1:
        name = parts[-2]
    name = re.sub(r"\.v[0-9]+$", "", name)
    if name.startswith("go-"):
        name = name[3:]
    return name.replace("-", "_").replace(".", "_")


class Scope:
    """レキシカルスコープ。"""

    def __init__(self, parent: Optional["Scope"] = None):
        self.parent = parent
        self._names: Dict[str, Declaration] = {}

    def declare(self, declaration: Declaration) -> None:
        self._names[declaration.name] = declaration

    def lookup_local(self, name: str) -> Optional[Declaration]:
        return self._names.get(name)

    def lookup(self, name: str) -> Optional[Declaration]:
        """このスコープから外側へ向かって名前を探す。"""
        scope: Optional[Scope] = self
        while scope is not None:
            declaration = scope._names.get(name)
            if declaration is not None:
                return declaration
            scope = scope.parent
        return None


class SymbolTable:
    """1ファイル分の識別子→宣言の対応表。

    フロントエンドの変換中に構築され、解析中は読み取り専用。
    解決できない識別子や型はNoneを返す（例外は投げない）。
    """

    def __init__(self):
        """ユニバーススコープとファイルスコープを初期化する。"""
        self.universe = Scope()
        for name in BUILTIN_FUNCTIONS:
            self.universe.declare(Declaration(kind=DeclKind.BUILTIN, name=name))
        self.file_scope = Scope(self.universe)
        self._uses: Dict[int, Declaration] = {}

    def record(self, identifier: Identifier, declaration: Declaration) -> None:
        """識別子の出現と宣言を結び付ける。"""
        self._uses[identifier.pos] = declaration

    def resolve(self, identifier: Identifier) -> Optional[Declaration]:
        """識別子が参照する宣言を返す。

        Args:
            identifier: 解決する識別子

        Returns:
            宣言、未解決の場合はNone
        """
        return self._uses.get(identifier.pos)

    def type_of(self, expression: SyntaxNode) -> Optional[ResolvedType]:
        """式の静的型を返す。

        識別子、呼び出し、受信式、型アサーションのみを扱う。
        フィールドアクセス（``timer.C``）は解決しない。

        Args:
            expression: 対象の式

        Returns:
            解決済み型、決定できない場合はNone
        """
        return self._type_of(expression, 0)

    def _type_of(self, expression: SyntaxNode, depth: int) -> Optional[ResolvedType]:
        if depth > MAX_INFERENCE_DEPTH:
            return None

        if isinstance(expression, Identifier):
            declaration = self.resolve(expression)
            if declaration is None:
                return None
            if declaration.kind not in (DeclKind.VARIABLE, DeclKind.CONSTANT):
                return None
            if declaration.type_expr is not None:
                return self.type_from_expr(declaration.type_expr)
            if declaration.value is not None:
                return self._type_of(declaration.value, depth + 1)
            return None

        if isinstance(expression, CallExpression):
            return self._call_result_type(expression)

        if isinstance(expression, ReceiveExpression):
            if expression.operand is None:
                return None
            channel_type = self._type_of(expression.operand, depth + 1)
            if channel_type is None:
                return None
            return channel_type.channel_element()

        if isinstance(expression, TypeAssertion):
            if expression.asserted_type is None:
                return None
            return self.type_from_expr(expression.asserted_type)

        return None

    def _call_result_type(self, call: CallExpression) -> Optional[ResolvedType]:
        function = call.function

        if isinstance(function, SelectorExpression):
            if not isinstance(function.operand, Identifier):
                return None
            declaration = self.resolve(function.operand)
            if declaration is None or declaration.kind != DeclKind.PACKAGE:
                return None
            return KNOWN_PACKAGE_FUNCTIONS.get((declaration.import_path, function.field))

        if isinstance(function, Identifier):
            declaration = self.resolve(function)
            if declaration is None:
                return None
            if declaration.kind == DeclKind.FUNCTION and declaration.type_expr is not None:
                return self.type_from_expr(declaration.type_expr)
            if declaration.kind == DeclKind.BUILTIN and declaration.name == "make":
                if call.arguments:
                    return self.type_from_expr(call.arguments[0])
            return None

        # 型変換 (<-chan time.Time)(x)
        if isinstance(function, ChannelTypeExpression):
            return self.type_from_expr(function)

        return None

    def type_from_expr(self, node: SyntaxNode) -> Optional[ResolvedType]:
        """型式を解決済み型に変換する。

        Args:
            node: 型式ノード

        Returns:
            解決済み型、対応していない型式の場合はNone
        """
        if isinstance(node, ChannelTypeExpression):
            if node.element is None:
                return None
            element = self.type_from_expr(node.element)
            if element is None:
                return None
            return channel_of(element, node.direction)

        if isinstance(node, Identifier):
            return ResolvedType(kind=TypeKind.NAMED, name=node.name)

        if isinstance(node, SelectorExpression) and isinstance(node.operand, Identifier):
            declaration = self.resolve(node.operand)
            if declaration is None or declaration.kind != DeclKind.PACKAGE:
                return None
            return ResolvedType(
                kind=TypeKind.NAMED,
                name=node.field,
                package=declaration.import_path,
            )

        return None
