"""走査エンジンのテスト。"""

from pathlib import Path

import pytest

from channellint.analyzer import ChannelChecker, DiagnosticReporter
from channellint.frontend import GoParser
from channellint.models.finding import Rule, Severity
from channellint.models.settings import Settings

TESTDATA = Path(__file__).parent / "testdata"


@pytest.fixture(scope="module")
def parser():
    return GoParser()


def _check(parser, body: str, settings: Settings = None, imports: str = ""):
    source = f"package p\n\n{imports}\nfunc f(ch chan int, v int) {{\n{body}}}\n"
    source_file = parser.parse_string(source)
    return ChannelChecker(settings).check_file(source_file)


def _rules(findings):
    return [f.rule for f in findings]


class TestBlockingSends:
    """ブロッキング送信の検出のテスト。"""

    def test_send_with_default(self, parser):
        """default付きのselectの送信は報告しないこと。"""
        findings = _check(parser, (
            "\tselect {\n"
            "\tcase ch <- v:\n"
            "\t\tv++\n"
            "\tdefault:\n"
            "\t\tv--\n"
            "\t}\n"
        ))
        assert findings == []

    def test_bare_send(self, parser):
        """select外の送信は報告すること。"""
        findings = _check(parser, "\tch <- 8\n")

        assert len(findings) == 1
        finding = findings[0]
        assert finding.rule == Rule.BLOCKING_SEND
        assert finding.severity == Severity.MEDIUM
        assert finding.message == (
            "channel send without default or timer - "
            "consider adding default or timeout case \"ch <- 8\""
        )
        assert finding.location.line == 5
        assert finding.location.column == 2

    def test_send_without_fallback(self, parser):
        """フォールバックのないselectの送信はすべて報告すること。"""
        findings = _check(parser, (
            "\tselect {\n"
            "\tcase ch <- 1:\n"
            "\tcase ch <- 2:\n"
            "\tcase <-ch:\n"
            "\t}\n"
        ))
        assert _rules(findings) == [Rule.BLOCKING_SEND, Rule.BLOCKING_SEND]
        assert [f.location.line for f in findings] == [6, 7]

    def test_one_fallback_covers_all_sends(self, parser):
        """1つのdefaultで複数の送信が保護されること。"""
        findings = _check(parser, (
            "\tselect {\n"
            "\tcase ch <- 1:\n"
            "\tcase ch <- 2:\n"
            "\tdefault:\n"
            "\t}\n"
        ))
        assert findings == []

    def test_send_inside_guarded_clause_body(self, parser):
        """保護されたselectの節本体にある送信は報告すること。"""
        findings = _check(parser, (
            "\tselect {\n"
            "\tcase ch <- 1:\n"
            "\t\tch <- 2\n"
            "\tdefault:\n"
            "\t}\n"
        ))
        assert len(findings) == 1
        assert findings[0].location.line == 7

    def test_nested_select(self, parser):
        """入れ子のselectはそれぞれ独立に解析されること。"""
        findings = _check(parser, (
            "\tselect {\n"
            "\tcase ch <- 1:\n"
            "\t\tselect {\n"
            "\t\tcase ch <- 2:\n"
            "\t\tcase <-ch:\n"
            "\t\t}\n"
            "\tdefault:\n"
            "\t}\n"
        ))
        assert len(findings) == 1
        assert findings[0].snippet == "ch <- 2"

    def test_time_after_fallback(self, parser):
        """time.Afterの受信節はフォールバックになること。"""
        findings = _check(parser, (
            "\tselect {\n"
            "\tcase ch <- v:\n"
            "\tcase <-time.After(time.Second):\n"
            "\t}\n"
        ), imports="import \"time\"\n")
        assert findings == []

    def test_aliased_time_after_fallback(self, parser):
        """別名インポートしたtime.Afterもフォールバックになること。"""
        findings = _check(parser, (
            "\tselect {\n"
            "\tcase ch <- v:\n"
            "\tcase <-(clock.After(clock.Second)):\n"
            "\t}\n"
        ), imports="import clock \"time\"\n")
        assert findings == []

    def test_after_from_other_package(self, parser):
        """time以外のAfterはフォールバックにならないこと。"""
        findings = _check(parser, (
            "\tselect {\n"
            "\tcase ch <- v:\n"
            "\tcase <-time.After(1):\n"
            "\t}\n"
        ), imports="import time \"example.com/fake/clock\"\n")
        assert _rules(findings) == [Rule.BLOCKING_SEND]

    def test_package_level_timeout_variable(self, parser):
        """パッケージレベル変数のtime.Afterもフォールバックになること。"""
        findings = _check(parser, (
            "\tselect {\n"
            "\tcase ch <- v:\n"
            "\tcase <-deadline:\n"
            "\t}\n"
        ), imports="import \"time\"\n\nvar deadline = time.After(time.Second)\n")
        assert findings == []

    def test_package_level_variable_declared_after_use(self, parser):
        """後方で宣言されたパッケージレベル変数も推論すること。"""
        source = (
            "package p\n"
            "\n"
            "import \"time\"\n"
            "\n"
            "func f(ch chan int) {\n"
            "\tselect {\n"
            "\tcase ch <- 1:\n"
            "\tcase <-tick:\n"
            "\tcase <-timeout:\n"
            "\t}\n"
            "}\n"
            "\n"
            "var (\n"
            "\tlimit   = 3\n"
            "\ttick    = make(chan time.Time, limit)\n"
            "\ttimeout = tick\n"
            ")\n"
        )
        findings = ChannelChecker().check_file(parser.parse_string(source))
        assert findings == []

    def test_package_level_untyped_variable(self, parser):
        """タイマーでないパッケージレベル変数はフォールバックにならないこと。"""
        findings = _check(parser, (
            "\tselect {\n"
            "\tcase ch <- v:\n"
            "\tcase <-events:\n"
            "\t}\n"
        ), imports="var events = make(chan int)\n")
        assert _rules(findings) == [Rule.BLOCKING_SEND]

    def test_timer_field_is_false_negative(self, parser):
        """timer.C経由のタイムアウトは認識されないこと。"""
        findings = _check(parser, (
            "\ttimer := time.NewTimer(time.Second)\n"
            "\tselect {\n"
            "\tcase ch <- v:\n"
            "\tcase <-timer.C:\n"
            "\t}\n"
        ), imports="import \"time\"\n")
        assert _rules(findings) == [Rule.BLOCKING_SEND]

    def test_blocking_sends_disabled(self, parser):
        """checkBlockingSends=falseでは送信を報告しないこと。"""
        settings = Settings(check_blocking_sends=False)
        assert _check(parser, "\tch <- 8\n", settings) == []

    def test_send_in_goroutine_literal(self, parser):
        """関数リテラル内の送信も報告すること。"""
        findings = _check(parser, "\tgo func() { ch <- 1 }()\n")
        assert _rules(findings) == [Rule.BLOCKING_SEND]


class TestChannelCreation:
    """チャネル生成の検査のテスト。"""

    def test_unbuffered_enabled(self, parser):
        """checkUnbufferedChannels=trueでバッファなし生成を報告すること。"""
        settings = Settings(check_unbuffered_channels=True)
        findings = _check(parser, "\tc := make(chan int)\n\t_ = c\n", settings)

        assert _rules(findings) == [Rule.UNBUFFERED_CHANNEL]
        assert findings[0].message == (
            "unbuffered channel creation detected - "
            "consider specifying buffer size \"make(chan int)\""
        )
        assert findings[0].location.column == 7

    def test_unbuffered_disabled(self, parser):
        """既定ではバッファなし生成を報告しないこと。"""
        assert _check(parser, "\tc := make(chan int)\n\t_ = c\n") == []

    def test_zero_buffer(self, parser):
        """バッファサイズ0を報告すること。"""
        settings = Settings(check_buffer_amount=5)
        findings = _check(parser, "\tc := make(chan int, 0)\n\t_ = c\n", settings)

        assert _rules(findings) == [Rule.ZERO_BUFFER]
        assert findings[0].message == "channel buffer size set to 0 \"make(chan int, 0)\""

    def test_buffer_over_limit(self, parser):
        """上限を超えるバッファサイズを報告すること。"""
        settings = Settings(check_buffer_amount=5)
        findings = _check(parser, "\tc := make(chan int, 10)\n\t_ = c\n", settings)

        assert _rules(findings) == [Rule.BUFFER_LIMIT]
        assert findings[0].message == (
            "channel buffer size exceeds the specified limit \"make(chan int, 10)\""
        )

    def test_buffer_within_limit(self, parser):
        """上限以下のバッファサイズは報告しないこと。"""
        settings = Settings(check_buffer_amount=20)
        assert _check(parser, "\tc := make(chan int, 10)\n\t_ = c\n", settings) == []

    def test_buffer_equal_to_limit(self, parser):
        """上限と等しいバッファサイズは報告しないこと。"""
        settings = Settings(check_buffer_amount=10)
        assert _check(parser, "\tc := make(chan int, 10)\n\t_ = c\n", settings) == []

    def test_buffer_check_disabled(self, parser):
        """checkBufferAmount=0ではサイズ0も報告しないこと。"""
        assert _check(parser, "\tc := make(chan int, 0)\n\t_ = c\n") == []

    def test_unresolvable_capacity(self, parser):
        """定数でないバッファサイズは黙ってスキップすること。"""
        settings = Settings(check_buffer_amount=5)
        findings = _check(parser, (
            "\tn := 100\n"
            "\ta := make(chan int, n)\n"
            "\tb := make(chan int, n*2)\n"
            "\t_, _ = a, b\n"
        ), settings)
        assert findings == []

    def test_slice_make_ignored(self, parser):
        """チャネル以外のmakeは対象外。"""
        settings = Settings(check_unbuffered_channels=True, check_buffer_amount=1)
        assert _check(parser, "\ts := make([]int, 10)\n\t_ = s\n", settings) == []

    def test_multiline_snippet_quoted(self, parser):
        """複数行にまたがる式は改行をエスケープして引用すること。"""
        settings = Settings(check_unbuffered_channels=True)
        findings = _check(parser, "\tc := make(\n\t\tchan int,\n\t)\n\t_ = c\n", settings)

        assert len(findings) == 1
        assert "\"make(\\n\\t\\tchan int,\\n\\t)\"" in findings[0].message


class TestChannelChecker:
    """ファイル単位の解析の性質のテスト。"""

    def test_source_order(self, parser):
        """指摘がソース順に並ぶこと。"""
        settings = Settings(check_unbuffered_channels=True, check_buffer_amount=5)
        findings = _check(parser, (
            "\tch <- 1\n"
            "\ta := make(chan int)\n"
            "\tch <- 2\n"
            "\tb := make(chan int, 50)\n"
            "\t_, _ = a, b\n"
        ), settings)

        assert _rules(findings) == [
            Rule.BLOCKING_SEND,
            Rule.UNBUFFERED_CHANNEL,
            Rule.BLOCKING_SEND,
            Rule.BUFFER_LIMIT,
        ]
        positions = [f.position for f in findings]
        assert positions == sorted(positions)

    def test_idempotent(self, parser):
        """同じ構文木を2回解析しても同じ結果になること。"""
        source_file = parser.parse_file(str(TESTDATA / "worker" / "worker.go"))
        checker = ChannelChecker(Settings(check_unbuffered_channels=True))

        assert checker.check_file(source_file) == checker.check_file(source_file)

    def test_safe_positions_do_not_leak_across_files(self, parser):
        """安全な送信位置がファイル間で共有されないこと。"""
        guarded = parser.parse_string(
            "package p\n"
            "\n"
            "func f(ch chan int) {\n"
            "\tselect {\n"
            "\tcase ch <- 1:\n"
            "\tdefault:\n"
            "\t}\n"
            "}\n",
            filename="guarded.go"
        )
        # 送信文が guarded.go の保護された送信と同じバイト位置に来るようにそろえる
        bare = parser.parse_string(
            "package p\n"
            "\n"
            "func f(ch chan int) {\n"
            "\tif true {\n"
            "\t\t\t\t\tch <- 1\n"
            "\t}\n"
            "}\n",
            filename="bare.go"
        )
        checker = ChannelChecker()
        reporter = DiagnosticReporter()

        count = checker.check_files([guarded, bare], reporter)

        assert count == 1
        assert reporter.findings[0].location.file_path == "bare.go"

    def test_worker_fixture(self, parser):
        """サンプルファイルの指摘。"""
        source_file = parser.parse_file(str(TESTDATA / "worker" / "worker.go"))
        settings = Settings(check_unbuffered_channels=True)
        findings = ChannelChecker(settings).check_file(source_file)

        assert [(f.rule, f.location.line, f.location.column) for f in findings] == [
            (Rule.BLOCKING_SEND, 17, 2),
            (Rule.UNBUFFERED_CHANNEL, 22, 13),
        ]

    def test_timeouts_fixture(self, parser):
        """タイムアウト系フォールバックのサンプル。"""
        source_file = parser.parse_file(str(TESTDATA / "timeouts" / "timeouts.go"))
        settings = Settings(check_buffer_amount=10)
        findings = ChannelChecker(settings).check_file(source_file)

        # timer.C だけは認識できない
        assert [(f.rule, f.location.line, f.location.column) for f in findings] == [
            (Rule.BLOCKING_SEND, 31, 7),
        ]

    def test_buffers_fixture(self, parser):
        """バッファサイズのサンプル。"""
        source_file = parser.parse_file(str(TESTDATA / "buffers" / "buffers.go"))
        settings = Settings(check_unbuffered_channels=True, check_buffer_amount=10)
        findings = ChannelChecker(settings).check_file(source_file)

        assert [(f.rule, f.location.line) for f in findings] == [
            (Rule.UNBUFFERED_CHANNEL, 4),
            (Rule.ZERO_BUFFER, 5),
            (Rule.BUFFER_LIMIT, 7),
        ]
