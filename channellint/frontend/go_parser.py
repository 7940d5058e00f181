"""tree-sitterを使用したGoソースコード解析のラッパー。"""

from typing import Dict, Union
import os
import logging
import threading

import tree_sitter_go
from tree_sitter import Language, Parser

from ..errors import GoParseError
from ..models.source import SourceFile, compute_line_starts
from .lowering import GoLowering, collect_nolint
from .symbols import SymbolTable

logger = logging.getLogger(__name__)


class GoParser:
    """tree-sitterによるGo解析のメインクラス。

    tree-sitterのパーサーをラップし、具象構文木を解析用の構文モデルと
    シンボル表に変換する。パフォーマンス向上のためにファイル単位の
    キャッシュを提供する。
    """

    def __init__(self):
        """Goパーサーを初期化する。"""
        self._language = Language(tree_sitter_go.language())
        self._parser = Parser(self._language)

        # tree-sitterのParserはスレッドセーフではないため排他する
        self._parse_lock = threading.Lock()

        # スレッドセーフなSourceFileキャッシュ
        self._source_files: Dict[str, SourceFile] = {}
        self._cache_lock = threading.Lock()

        logger.info("GoParser initialized")

    def parse_file(self, file_path: str, force_reparse: bool = False) -> SourceFile:
        """ファイルのSourceFileを取得する。

        同じファイルの再パースを避けるためにキャッシュを使用する。

        Args:
            file_path: ソースファイルのパス
            force_reparse: キャッシュがあっても強制的に再パース

        Returns:
            SourceFile

        Raises:
            GoParseError: 読み込みまたは変換に失敗した場合
        """
        abs_path = os.path.abspath(file_path)

        with self._cache_lock:
            if not force_reparse and abs_path in self._source_files:
                return self._source_files[abs_path]

        try:
            with open(abs_path, "rb") as f:
                source = f.read()
        except OSError as e:
            raise GoParseError(f"Failed to read {abs_path}: {e}") from e

        source_file = self._build(source, file_path)

        with self._cache_lock:
            self._source_files[abs_path] = source_file

        return source_file

    def parse_string(
        self,
        source_code: Union[str, bytes],
        filename: str = "input.go"
    ) -> SourceFile:
        """文字列からGoソースコードをパースする。

        Args:
            source_code: Goソースコード
            filename: ソースの仮想ファイル名

        Returns:
            SourceFile
        """
        if isinstance(source_code, str):
            source_code = source_code.encode("utf-8")
        return self._build(source_code, filename)

    def _build(self, source: bytes, path: str) -> SourceFile:
        with self._parse_lock:
            tree = self._parser.parse(source)

        root = tree.root_node
        if root.has_error:
            # 部分的な構文木のまま解析を続ける
            logger.warning(f"Syntax errors in {path}; analyzing partial tree")

        symbols = SymbolTable()
        try:
            lowered = GoLowering(source, symbols).lower_file(root)
            nolint = collect_nolint(root, source)
        except RecursionError as e:
            raise GoParseError(f"Failed to parse {path}: nesting too deep") from e

        logger.debug(f"Parsed {path} ({len(source)} bytes)")
        return SourceFile(
            path=path,
            source=source,
            root=lowered,
            resolver=symbols,
            line_starts=compute_line_starts(source),
            nolint=nolint,
            has_errors=root.has_error,
        )

    def clear_cache(self) -> None:
        """SourceFileキャッシュをクリアする。"""
        with self._cache_lock:
            self._source_files.clear()
        logger.debug("SourceFile cache cleared")
