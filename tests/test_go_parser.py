"""Goフロントエンド（パーサー・変換・シンボル解決）のテスト。"""

import os
import pytest
from pathlib import Path
from tempfile import TemporaryDirectory

from channellint.errors import GoParseError
from channellint.frontend import GoParser, default_package_name
from channellint.models.symbols import DeclKind
from channellint.models.syntax import (
    CallExpression,
    CommClause,
    DefaultClause,
    Identifier,
    ReceiveExpression,
    SelectorExpression,
    SendOperation,
    WaitConstruct,
    walk,
)


@pytest.fixture(scope="module")
def parser():
    return GoParser()


def _nodes(source_file, node_type):
    return [node for node in walk(source_file.root) if isinstance(node, node_type)]


class TestLowering:
    """構文モデルへの変換のテスト。"""

    def test_select_clauses(self, parser):
        """select文の節が送信・受信・defaultに変換されること。"""
        source_file = parser.parse_string(
            "package p\n"
            "\n"
            "func f(ch chan int) {\n"
            "\tselect {\n"
            "\tcase ch <- 1:\n"
            "\tcase v, ok := <-ch:\n"
            "\t\t_, _ = v, ok\n"
            "\tdefault:\n"
            "\t}\n"
            "}\n"
        )
        constructs = _nodes(source_file, WaitConstruct)
        assert len(constructs) == 1

        clauses = constructs[0].clauses()
        assert len(clauses) == 3
        assert isinstance(clauses[0], CommClause)
        assert isinstance(clauses[0].communication, SendOperation)
        assert isinstance(clauses[1], CommClause)
        assert isinstance(clauses[1].communication, ReceiveExpression)
        assert [a.name for a in clauses[1].assignments] == ["v", "ok"]
        assert isinstance(clauses[2], DefaultClause)

    def test_switch_default_is_not_clause(self, parser):
        """switch文のdefaultはselectの節として扱わないこと。"""
        source_file = parser.parse_string(
            "package p\n"
            "\n"
            "func f(x int) {\n"
            "\tswitch x {\n"
            "\tcase 1:\n"
            "\tdefault:\n"
            "\t}\n"
            "}\n"
        )
        assert _nodes(source_file, DefaultClause) == []
        assert _nodes(source_file, WaitConstruct) == []

    def test_parentheses_unwrapped(self, parser):
        """括弧で囲まれた受信対象が取り除かれること。"""
        source_file = parser.parse_string(
            "package p\n"
            "\n"
            "import \"time\"\n"
            "\n"
            "func f() {\n"
            "\tselect {\n"
            "\tcase <-(time.After(time.Second)):\n"
            "\t}\n"
            "}\n"
        )
        clause = _nodes(source_file, WaitConstruct)[0].clauses()[0]
        operand = clause.communication.operand
        assert isinstance(operand, CallExpression)
        assert isinstance(operand.function, SelectorExpression)
        assert operand.function.field == "After"

    def test_location(self, parser):
        """位置が1始まりの行・バイト列で計算されること。"""
        source_file = parser.parse_string(
            "package p\n"
            "\n"
            "func f(ch chan int) {\n"
            "\tch <- 1\n"
            "}\n",
            filename="dir/f.go"
        )
        send = _nodes(source_file, SendOperation)[0]
        location = source_file.location(send.pos)

        assert location.line == 4
        assert location.column == 2
        assert source_file.text(send) == "ch <- 1"
        assert str(location) == os.path.normpath("dir/f.go") + ":4:2"

    def test_syntax_error_partial_tree(self, parser):
        """構文エラーがあっても部分的な構文木を返すこと。"""
        source_file = parser.parse_string(
            "package p\n"
            "\n"
            "func f(ch chan int) {\n"
            "\tch <- 1\n"
            "\tif {\n"
            "}\n"
        )
        assert source_file.has_errors


class TestSymbolResolution:
    """シンボル解決と型推論のテスト。"""

    def test_import_resolution(self, parser):
        """パッケージ名がインポートパスに解決されること。"""
        source_file = parser.parse_string(
            "package p\n"
            "\n"
            "import \"time\"\n"
            "\n"
            "func f() {\n"
            "\t<-time.After(time.Second)\n"
            "}\n"
        )
        selector = next(
            node for node in _nodes(source_file, SelectorExpression) if node.field == "After"
        )
        declaration = source_file.resolver.resolve(selector.operand)

        assert declaration is not None
        assert declaration.kind == DeclKind.PACKAGE
        assert declaration.import_path == "time"

    def test_aliased_import(self, parser):
        """別名インポートが解決されること。"""
        source_file = parser.parse_string(
            "package p\n"
            "\n"
            "import clock \"time\"\n"
            "\n"
            "func f() {\n"
            "\t<-clock.After(clock.Second)\n"
            "}\n"
        )
        selector = next(
            node for node in _nodes(source_file, SelectorExpression) if node.field == "After"
        )
        declaration = source_file.resolver.resolve(selector.operand)
        assert declaration.import_path == "time"

    def test_local_shadows_package(self, parser):
        """ローカル変数がパッケージ名を隠すこと。"""
        source_file = parser.parse_string(
            "package p\n"
            "\n"
            "import \"time\"\n"
            "\n"
            "func f(time int) {\n"
            "\t_ = time\n"
            "}\n"
        )
        uses = [
            node for node in _nodes(source_file, Identifier)
            if node.name == "time" and source_file.location(node.pos).line == 6
        ]
        assert len(uses) == 1
        assert source_file.resolver.resolve(uses[0]).kind == DeclKind.VARIABLE

    def test_type_of_inferred_variable(self, parser):
        """初期化式から推論した型が得られること。"""
        source_file = parser.parse_string(
            "package p\n"
            "\n"
            "import \"time\"\n"
            "\n"
            "func f() {\n"
            "\ttick := time.Tick(time.Second)\n"
            "\tselect {\n"
            "\tcase <-tick:\n"
            "\t}\n"
            "}\n"
        )
        clause = _nodes(source_file, WaitConstruct)[0].clauses()[0]
        channel_type = source_file.resolver.type_of(clause.communication.operand)

        assert channel_type is not None
        assert channel_type.channel_element().is_instant()

    def test_type_of_function_result(self, parser):
        """同一ファイルの関数の戻り値型が得られること。"""
        source_file = parser.parse_string(
            "package p\n"
            "\n"
            "import \"time\"\n"
            "\n"
            "func f() {\n"
            "\tselect {\n"
            "\tcase <-deadline():\n"
            "\t}\n"
            "}\n"
            "\n"
            "func deadline() <-chan time.Time {\n"
            "\treturn time.After(time.Second)\n"
            "}\n"
        )
        clause = _nodes(source_file, WaitConstruct)[0].clauses()[0]
        channel_type = source_file.resolver.type_of(clause.communication.operand)

        assert channel_type is not None
        assert channel_type.channel_element().is_instant()

    def test_type_of_package_variable(self, parser):
        """パッケージ変数の宣言型が得られること。"""
        source_file = parser.parse_string(
            "package p\n"
            "\n"
            "import \"time\"\n"
            "\n"
            "var expired <-chan time.Time\n"
            "\n"
            "func f() {\n"
            "\tselect {\n"
            "\tcase <-expired:\n"
            "\t}\n"
            "}\n"
        )
        clause = _nodes(source_file, WaitConstruct)[0].clauses()[0]
        channel_type = source_file.resolver.type_of(clause.communication.operand)
        assert channel_type.channel_element().is_instant()

    def test_field_access_unresolved(self, parser):
        """フィールドアクセスの型は解決しないこと。"""
        source_file = parser.parse_string(
            "package p\n"
            "\n"
            "import \"time\"\n"
            "\n"
            "func f() {\n"
            "\ttimer := time.NewTimer(time.Second)\n"
            "\tselect {\n"
            "\tcase <-timer.C:\n"
            "\t}\n"
            "}\n"
        )
        clause = _nodes(source_file, WaitConstruct)[0].clauses()[0]
        assert source_file.resolver.type_of(clause.communication.operand) is None

    def test_builtin_make(self, parser):
        """makeが組み込み関数に解決されること。"""
        source_file = parser.parse_string(
            "package p\n"
            "\n"
            "func f() {\n"
            "\t_ = make(chan int)\n"
            "}\n"
        )
        call = _nodes(source_file, CallExpression)[0]
        assert source_file.resolver.resolve(call.function).kind == DeclKind.BUILTIN


class TestNolintCollection:
    """//nolint コメント収集のテスト。"""

    def test_directives(self, parser):
        """行ごとの抑制対象が収集されること。"""
        source_file = parser.parse_string(
            "package p\n"
            "\n"
            "func f(ch chan int) {\n"
            "\tch <- 1 //nolint\n"
            "\t//nolint:channelcheck\n"
            "\tch <- 2\n"
            "\tch <- 3 //nolint:errcheck,blockingSend\n"
            "\tch <- 4 // nolintable is not a directive\n"
            "}\n"
        )
        nolint = source_file.nolint

        assert nolint[4] == frozenset()
        assert nolint[5] == frozenset({"channelcheck"})
        assert nolint[6] == frozenset({"channelcheck"})
        assert nolint[7] == frozenset({"errcheck", "blockingSend"})
        assert 8 not in nolint
        # 行末コメントは次の行に及ばない
        assert 9 not in nolint


class TestGoParser:
    """GoParserのファイル操作のテスト。"""

    def test_parse_file_cache(self, parser):
        """同じファイルはキャッシュから返されること。"""
        with TemporaryDirectory() as tmpdir:
            path = Path(tmpdir) / "main.go"
            path.write_text("package main\n\nfunc main() {}\n")

            first = parser.parse_file(str(path))
            assert parser.parse_file(str(path)) is first
            assert parser.parse_file(str(path), force_reparse=True) is not first

            parser.clear_cache()
            assert parser.parse_file(str(path)) is not first

    def test_missing_file(self, parser):
        """存在しないファイルはGoParseError。"""
        with TemporaryDirectory() as tmpdir:
            with pytest.raises(GoParseError):
                parser.parse_file(str(Path(tmpdir) / "missing.go"))


class TestDefaultPackageName:
    """インポートパスからのパッケージ名推定のテスト。"""

    @pytest.mark.parametrize("import_path,expected", [
        ("time", "time"),
        ("net/http", "http"),
        ("math/rand/v2", "rand"),
        ("gopkg.in/yaml.v3", "yaml"),
        ("github.com/mattn/go-sqlite3", "sqlite3"),
        ("github.com/foo/bar-baz", "bar_baz"),
    ])
    def test_names(self, import_path, expected):
        """既定のパッケージ名。"""
        assert default_package_name(import_path) == expected
