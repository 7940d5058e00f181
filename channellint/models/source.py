"""解析対象の1ファイル分のソースモデル。"""

from bisect import bisect_right
from dataclasses import dataclass, field
from typing import FrozenSet, Mapping, Tuple

from .finding import SourceLocation
from .symbols import TypeResolver
from .syntax import SyntaxNode


def compute_line_starts(source: bytes) -> Tuple[int, ...]:
    """各行の先頭バイトオフセットを求める。"""
    starts = [0]
    index = source.find(b"\n")
    while index != -1:
        starts.append(index + 1)
        index = source.find(b"\n", index + 1)
    return tuple(starts)


@dataclass(frozen=True)
class SourceFile:
    """変換済み構文木・シンボル解決器・抑制コメントをまとめたもの。

    Attributes:
        path: ファイルパス
        source: ソースのバイト列
        root: 構文木のルート
        resolver: シンボル・型解決サービス
        line_starts: 各行の先頭オフセット
        nolint: 行番号→抑制対象のリンター名（空集合は全リンター）
        has_errors: 構文エラーを含むかどうか
    """
    path: str
    source: bytes
    root: SyntaxNode
    resolver: TypeResolver
    line_starts: Tuple[int, ...]
    nolint: Mapping[int, FrozenSet[str]] = field(default_factory=dict)
    has_errors: bool = False

    def text(self, node: SyntaxNode) -> str:
        """ノードのソーステキストを返す。"""
        return self.source[node.pos:node.end].decode("utf-8", errors="replace")

    def location(self, pos: int) -> SourceLocation:
        """バイトオフセットを行・列に変換する。

        Args:
            pos: バイトオフセット

        Returns:
            1始まりの行・列を持つSourceLocation
        """
        line = bisect_right(self.line_starts, pos)
        column = pos - self.line_starts[line - 1] + 1
        return SourceLocation(file_path=self.path, line=line, column=column)
