"""Goチャネル誤用検出ツールのメインエントリーポイント。"""

import argparse
import sys
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from typing import List, Optional
from dataclasses import dataclass, field
import logging

from .config import Config
from .errors import ConfigError, GoParseError
from .analyzer.engine import ChannelChecker
from .analyzer.reporter import DiagnosticReporter
from .analyzer.suppression import SuppressionManager
from .frontend.go_parser import GoParser
from .io.excel_writer import ExcelWriter
from .io.report_writer import ReportWriter
from .models.finding import Finding
from .models.settings import Settings
from .utils.logger import setup_logging, ProgressLogger

logger = logging.getLogger(__name__)

# singlecheckerと同じ終了コード
EXIT_OK = 0
EXIT_ERROR = 1
EXIT_FINDINGS = 3


@dataclass
class ProcessingStats:
    """処理統計情報。"""
    files: int = 0
    analyzed: int = 0
    parse_errors: int = 0
    findings: int = 0
    suppressed: int = 0


@dataclass
class FileResult:
    """1ファイル分の解析結果。"""
    path: str
    findings: List[Finding] = field(default_factory=list)
    suppressed: int = 0
    failed: bool = False


class ChannelLint:
    """Goチャネル解析のメインクラス。"""

    def __init__(self, config: Config, settings: Optional[Settings] = None):
        """解析ホストを初期化する。

        Args:
            config: アプリケーション設定
            settings: ルール設定（省略時は設定ファイルから構築）
        """
        self.config = config
        self.settings = settings or config.build_settings()
        self.stats = ProcessingStats()

        self._init_components()

    def _init_components(self) -> None:
        """すべてのコンポーネントを初期化する。"""
        self.parser = GoParser()
        self.checker = ChannelChecker(self.settings)
        self.suppressions = SuppressionManager(
            disabled_rules=self.config.disabled_rules,
            honor_nolint=self.config.honor_nolint
        )
        logger.info("All components initialized")

    def process(self, source_files: List[str]) -> DiagnosticReporter:
        """ファイル群を解析する。

        並列に解析しても、指摘は入力ファイルの順序で報告する。

        Args:
            source_files: 解析するGoファイルのパス

        Returns:
            指摘を集約したDiagnosticReporter
        """
        logger.info(f"Processing started: {len(source_files)} files")

        reporter = DiagnosticReporter()
        self.stats.files = len(source_files)
        progress = ProgressLogger(self.stats.files, logger)

        workers = max(1, self.config.workers)
        if workers > 1:
            with ThreadPoolExecutor(max_workers=workers) as executor:
                results = list(executor.map(self._analyze_file, source_files))
        else:
            results = [self._analyze_file(path) for path in source_files]

        for result in results:
            if result.failed:
                self.stats.parse_errors += 1
            else:
                self.stats.analyzed += 1
            self.stats.suppressed += result.suppressed
            self.stats.findings += len(result.findings)
            reporter.extend(result.findings)
            progress.update(result.path)

        progress.complete()
        self.parser.clear_cache()
        self._log_statistics()
        return reporter

    def _analyze_file(self, path: str) -> FileResult:
        """単一ファイルを解析する。

        Args:
            path: Goファイルのパス

        Returns:
            FileResult
        """
        try:
            source_file = self.parser.parse_file(path)
        except GoParseError as e:
            logger.error(f"Skipping {path}: {e}")
            return FileResult(path=path, failed=True)

        findings = self.checker.check_file(source_file)
        kept = self.suppressions.filter(findings, source_file)
        return FileResult(
            path=path,
            findings=kept,
            suppressed=len(findings) - len(kept)
        )

    def _log_statistics(self) -> None:
        """処理統計をログ出力する。"""
        logger.info("=" * 50)
        logger.info("Processing Statistics:")
        logger.info(f"  Files: {self.stats.files}")
        logger.info(f"  Analyzed: {self.stats.analyzed}")
        logger.info(f"  Parse errors: {self.stats.parse_errors}")
        logger.info(f"  Findings: {self.stats.findings}")
        logger.info(f"  Suppressed: {self.stats.suppressed}")
        logger.info("=" * 50)


def resolve_targets(paths: List[str], config: Config) -> List[str]:
    """コマンドライン引数のパスをGoファイルの一覧に展開する。

    Args:
        paths: ファイルまたはディレクトリのパス
        config: 除外設定を持つ設定

    Returns:
        重複を除いたGoファイルのパス（指定順）

    Raises:
        ConfigError: 存在しないパスが指定された場合
    """
    files: List[str] = []
    seen = set()
    for target in paths:
        path = Path(target)
        if path.is_dir():
            candidates = config.collect_go_files(target)
        elif path.is_file():
            candidates = [target]
        else:
            raise ConfigError(f"Path not found: {target}")

        for candidate in candidates:
            key = str(Path(candidate).resolve())
            if key not in seen:
                seen.add(key)
                files.append(candidate)
    return files


def build_arg_parser() -> argparse.ArgumentParser:
    """コマンドライン引数のパーサーを作成する。"""
    parser = argparse.ArgumentParser(
        prog="channellint",
        description="Goのチャネル誤用（ブロッキング送信・バッファ設定）を検出する",
        epilog=f"analyzer {ChannelChecker.NAME}: {ChannelChecker.DOC}"
    )
    parser.add_argument(
        "paths",
        nargs="*",
        help="解析するGoファイルまたはディレクトリ（省略時は設定のsource_directories）"
    )
    parser.add_argument(
        "-c", "--config",
        help="設定ファイルパス"
    )
    parser.add_argument(
        "--format",
        choices=ReportWriter.FORMATS,
        help="出力形式"
    )
    parser.add_argument(
        "--excel",
        metavar="FILE",
        help="Excelレポートの出力先"
    )
    parser.add_argument(
        "--check-unbuffered",
        action="store_true",
        help="バッファなしチャネルの生成を報告する"
    )
    parser.add_argument(
        "--buffer-limit",
        type=int,
        metavar="N",
        help="チャネルバッファサイズの上限（0で無効）"
    )
    parser.add_argument(
        "--no-blocking-sends",
        action="store_true",
        help="ブロッキング送信の検査を無効にする"
    )
    parser.add_argument(
        "--disable",
        action="append",
        metavar="RULE",
        help="指定したルールの指摘を抑制する（複数指定可、allで全ルール）"
    )
    parser.add_argument(
        "--workers",
        type=int,
        metavar="N",
        help="解析スレッド数"
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="詳細ログを有効にする"
    )
    parser.add_argument(
        "--init-config",
        metavar="FILE",
        help="既定の設定ファイルを生成して終了する"
    )
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """メインエントリーポイント。

    Args:
        argv: コマンドライン引数（省略時はsys.argv）

    Returns:
        終了コード（0: 指摘なし、3: 指摘あり、1: エラー）
    """
    args = build_arg_parser().parse_args(argv)

    if args.init_config:
        return _init_config(args.init_config, args.verbose)

    # 設定を読み込み
    try:
        if args.config:
            if not Path(args.config).exists():
                print(f"Error: 設定ファイルが見つかりません: {args.config}", file=sys.stderr)
                return EXIT_ERROR
            config = Config.from_yaml(args.config)
        else:
            config = Config()
    except ConfigError as e:
        print(f"Error: {e}", file=sys.stderr)
        return EXIT_ERROR

    # コマンドライン引数で上書き
    if args.format:
        config.output_format = args.format
    if args.excel:
        config.excel_output = args.excel
    if args.workers is not None:
        config.workers = args.workers
    if args.verbose:
        config.log_level = "DEBUG"

    setup_logging(level=config.log_level, log_file=config.log_file)

    # 設定を検証
    errors = config.validate()
    if errors:
        for error in errors:
            logger.error(f"Configuration error: {error}")
        return EXIT_ERROR

    try:
        settings = config.build_settings(
            check_unbuffered_channels=True if args.check_unbuffered else None,
            check_buffer_amount=args.buffer_limit,
            check_blocking_sends=False if args.no_blocking_sends else None,
        )
        if args.paths:
            source_files = resolve_targets(args.paths, config)
        elif config.source_directories:
            source_files = config.get_source_files()
        else:
            logger.error("No Go files or directories given")
            return EXIT_ERROR
    except ConfigError as e:
        logger.error(f"Configuration error: {e}")
        return EXIT_ERROR

    try:
        lint = ChannelLint(config, settings)
        for rule_id in args.disable or []:
            lint.suppressions.add_global(rule_id)
        reporter = lint.process(source_files)

        findings = list(reporter.findings)
        ReportWriter(sys.stdout, config.output_format).write(findings)
        if config.excel_output:
            ExcelWriter(config.excel_output).write(findings)
    except Exception as e:
        logger.exception(f"Fatal error: {e}")
        return EXIT_ERROR

    return EXIT_FINDINGS if findings else EXIT_OK


def _init_config(output_config: str, verbose: bool) -> int:
    """既定値の設定ファイルを生成する。

    Args:
        output_config: 出力設定ファイルパス
        verbose: 詳細ログを有効にするかどうか

    Returns:
        終了コード
    """
    setup_logging(level="DEBUG" if verbose else "INFO")

    try:
        Config().save_yaml(output_config)
    except OSError as e:
        print(f"Error: 設定ファイルを書き込めません: {e}", file=sys.stderr)
        return EXIT_ERROR

    print(f"設定ファイルを生成しました: {output_config}")
    return EXIT_OK


if __name__ == "__main__":
    sys.exit(main())
