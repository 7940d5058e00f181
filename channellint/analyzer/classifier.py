"""式の形を判定する純粋な述語群。"""

from dataclasses import dataclass
from typing import Optional
import re

from ..errors import Unresolvable
from ..models.symbols import TIME_PACKAGE, DeclKind, TypeResolver
from ..models.syntax import (
    CallExpression,
    ChannelTypeExpression,
    Identifier,
    Literal,
    LiteralKind,
    ReceiveExpression,
    SelectorExpression,
    SyntaxNode,
)

# Goのint（64bit）の最大値
MAX_CAPACITY = 2 ** 63 - 1

_DECIMAL = re.compile(r"^(?:0|[1-9](?:_?[0-9])*)$")
_LEGACY_OCTAL = re.compile(r"^0(?:_?[0-7])+$")
_PREFIXED = re.compile(r"^0([xXoObB])_?([0-9a-fA-F](?:_?[0-9a-fA-F])*)$")
_BASES = {"x": 16, "o": 8, "b": 2}


@dataclass(frozen=True)
class ChannelCreation:
    """``make(chan T[, n])`` の判定結果。"""
    buffered: bool
    capacity: Optional[SyntaxNode] = None


def is_channel_creation(
    call: CallExpression,
    resolver: Optional[TypeResolver] = None
) -> Optional[ChannelCreation]:
    """組み込みmakeによるチャネル生成かどうかを判定する。

    Args:
        call: 呼び出し式
        resolver: シンボル解決器（指定時はmakeの再定義を除外する）

    Returns:
        チャネル生成ならChannelCreation、それ以外はNone
    """
    function = call.function
    if not isinstance(function, Identifier) or function.name != "make":
        return None

    if resolver is not None:
        declaration = resolver.resolve(function)
        if declaration is not None and declaration.kind != DeclKind.BUILTIN:
            return None

    if not call.arguments or not isinstance(call.arguments[0], ChannelTypeExpression):
        return None

    if len(call.arguments) == 1:
        return ChannelCreation(buffered=False)
    if len(call.arguments) == 2:
        return ChannelCreation(buffered=True, capacity=call.arguments[1])
    return None


def eval_capacity(expression: SyntaxNode) -> int:
    """バッファサイズ式を整数リテラルとして評価する。

    Args:
        expression: makeの第2引数

    Returns:
        非負の整数値

    Raises:
        Unresolvable: 整数リテラル以外、またはintで表現できない値
    """
    if not isinstance(expression, Literal) or expression.kind != LiteralKind.INT:
        raise Unresolvable(f"capacity is not an integer literal: {expression!r}")

    text = expression.value
    if _DECIMAL.match(text):
        value = int(text.replace("_", ""), 10)
    elif _LEGACY_OCTAL.match(text):
        value = int(text.replace("_", ""), 8)
    else:
        match = _PREFIXED.match(text)
        if match is None:
            raise Unresolvable(f"malformed integer literal: {text}")
        try:
            value = int(match.group(2).replace("_", ""), _BASES[match.group(1).lower()])
        except ValueError as e:
            raise Unresolvable(f"malformed integer literal: {text}") from e

    if value > MAX_CAPACITY:
        raise Unresolvable(f"integer literal overflows int: {text}")
    return value


def is_timeout_receive(expression: Optional[SyntaxNode], resolver: TypeResolver) -> bool:
    """受信式がタイマー・タイムアウト由来かどうかを判定する。

    次のいずれかを満たせばTrue:
      (a) 受信対象の静的型が ``time.Time`` を要素とするチャネル
      (b) 受信対象が ``X.After(...)`` の呼び出しで、Xがtimeパッケージ

    ローカル変数へのフィールドアクセス（``timer.C``）やインターフェース
    経由の値は判定できず、Falseになる。

    Args:
        expression: 節の通信式
        resolver: シンボル・型解決サービス

    Returns:
        タイムアウト受信と判定できた場合True
    """
    if not isinstance(expression, ReceiveExpression) or expression.operand is None:
        return False

    operand = expression.operand

    channel_type = resolver.type_of(operand)
    if channel_type is not None:
        element = channel_type.channel_element()
        if element is not None and element.is_instant():
            return True

    return _is_time_after(operand, resolver)


def _is_time_after(operand: SyntaxNode, resolver: TypeResolver) -> bool:
    if not isinstance(operand, CallExpression):
        return False

    function = operand.function
    if not isinstance(function, SelectorExpression) or function.field != "After":
        return False

    if not isinstance(function.operand, Identifier):
        return False

    declaration = resolver.resolve(function.operand)
    if declaration is None or declaration.kind != DeclKind.PACKAGE:
        return False

    return declaration.import_path == TIME_PACKAGE
