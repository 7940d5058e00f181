"""設定管理モジュール。"""

from dataclasses import dataclass, field
from typing import List, Dict, Optional, Any
from pathlib import Path
import os
import logging

import yaml
from pydantic import ValidationError

from .errors import ConfigError
from .models.finding import Rule
from .models.settings import Settings

logger = logging.getLogger(__name__)

OUTPUT_FORMATS = ("text", "json")
LOG_LEVEL_ENV = "CHANNELLINT_LOG_LEVEL"

# YAMLでnullと書かれた場合は空リストとして扱う
LIST_FIELDS = ("source_directories", "exclude_dirs", "disabled_rules")


@dataclass
class Config:
    """アプリケーション設定。"""

    # 再帰的に *.go を探すディレクトリ
    source_directories: List[str] = field(default_factory=list)

    # 走査しないディレクトリ名
    exclude_dirs: List[str] = field(default_factory=lambda: ["vendor", "testdata", ".git"])

    # *_test.go を含めるかどうか
    include_tests: bool = True

    # ルール設定（snake_case / camelCase どちらでも可）
    settings: Dict[str, Any] = field(default_factory=dict)

    # 抑制設定
    honor_nolint: bool = True
    disabled_rules: List[str] = field(default_factory=list)

    # 処理設定
    workers: int = 1

    # 出力設定
    output_format: str = "text"
    excel_output: Optional[str] = None

    # ロギング設定
    log_level: str = "INFO"
    log_file: Optional[str] = None

    @classmethod
    def from_yaml(cls, file_path: str) -> "Config":
        """YAMLファイルから設定を読み込む。

        Args:
            file_path: YAML設定ファイルのパス

        Returns:
            Configインスタンス

        Raises:
            ConfigError: ファイルが読めない、またはYAMLとして不正な場合
        """
        try:
            with open(file_path, "r", encoding="utf-8") as f:
                data = yaml.safe_load(f) or {}
        except OSError as e:
            raise ConfigError(f"Cannot read config file {file_path}: {e}") from e
        except yaml.YAMLError as e:
            raise ConfigError(f"Invalid YAML in {file_path}: {e}") from e

        if not isinstance(data, dict):
            raise ConfigError(f"Config file {file_path} must contain a mapping")

        config = cls.from_dict(data)

        # ログレベルは環境変数が優先
        config.log_level = os.getenv(LOG_LEVEL_ENV, config.log_level)

        logger.info(f"Configuration loaded from {file_path}")
        return config

    @classmethod
    def from_dict(cls, data: dict) -> "Config":
        """辞書から設定を作成する。

        未知のキーは警告を出して無視する。

        Args:
            data: 設定辞書

        Returns:
            Configインスタンス
        """
        config = cls()

        for key, value in data.items():
            if hasattr(config, key):
                setattr(config, key, value)
            else:
                logger.warning(f"Unknown config key ignored: {key}")

        for key in LIST_FIELDS:
            if getattr(config, key) is None:
                setattr(config, key, [])

        return config

    def validate(self) -> List[str]:
        """設定を検証する。

        Returns:
            検証エラーのリスト（有効な場合は空）
        """
        errors = []

        for key in LIST_FIELDS:
            if not isinstance(getattr(self, key), list):
                errors.append(f"{key}はリストで指定してください: {getattr(self, key)!r}")
        if errors:
            return errors

        for path in self.source_directories:
            if not Path(path).exists():
                errors.append(f"ソースディレクトリが存在しません: {path}")

        if self.output_format not in OUTPUT_FORMATS:
            errors.append(
                f"output_formatは {', '.join(OUTPUT_FORMATS)} のいずれかです: {self.output_format}"
            )

        if not isinstance(self.workers, int) or self.workers < 1:
            errors.append(f"workersは1以上の整数です: {self.workers}")

        known_rules = {rule.value for rule in Rule} | {"all"}
        for rule_id in self.disabled_rules:
            if rule_id not in known_rules:
                logger.warning(f"Unknown rule in disabled_rules: {rule_id}")

        try:
            self.build_settings()
        except ConfigError as e:
            errors.append(str(e))

        return errors

    def build_settings(self, **overrides: Any) -> Settings:
        """ルール設定を構築する。

        Args:
            **overrides: 設定ファイルより優先する値（snake_case、Noneは無視）

        Returns:
            Settings

        Raises:
            ConfigError: 設定値が不正な場合
        """
        if not isinstance(self.settings or {}, dict):
            raise ConfigError(f"settings must be a mapping: {self.settings!r}")

        data = dict(self.settings or {})
        for key, value in overrides.items():
            if value is None:
                continue
            alias = Settings.model_fields[key].alias
            data.pop(alias, None)
            data[key] = value

        try:
            return Settings.model_validate(data)
        except ValidationError as e:
            raise ConfigError(f"Invalid settings: {e}") from e

    def to_dict(self) -> dict:
        """設定を辞書に変換する。

        Returns:
            辞書形式の設定
        """
        return {
            "source_directories": self.source_directories,
            "exclude_dirs": self.exclude_dirs,
            "include_tests": self.include_tests,
            "settings": self.settings,
            "honor_nolint": self.honor_nolint,
            "disabled_rules": self.disabled_rules,
            "workers": self.workers,
            "output_format": self.output_format,
            "excel_output": self.excel_output,
            "log_level": self.log_level,
            "log_file": self.log_file,
        }

    def get_source_files(self) -> List[str]:
        """ソースディレクトリから全Goファイルを取得する。

        Returns:
            ソースファイルパスのリスト（ディレクトリごとにソート済み）
        """
        source_files: List[str] = []

        for source_dir in self.source_directories:
            source_files.extend(self.collect_go_files(source_dir))

        logger.debug(f"Found {len(source_files)} source files")
        return source_files

    def collect_go_files(self, source_dir: str) -> List[str]:
        """1ディレクトリ配下のGoファイルを集める。

        Args:
            source_dir: 走査するディレクトリ

        Returns:
            ソート済みのファイルパスのリスト
        """
        path = Path(source_dir)
        if not path.exists():
            return []

        excluded = set(self.exclude_dirs)
        files = []
        for f in path.rglob("*.go"):
            relative_dirs = f.relative_to(path).parts[:-1]
            if excluded.intersection(relative_dirs):
                continue
            if not self.include_tests and f.name.endswith("_test.go"):
                continue
            if f.is_file():
                files.append(str(f))
        return sorted(files)

    def save_yaml(self, file_path: str) -> None:
        """設定をYAMLファイルに保存。

        Args:
            file_path: 保存先パス
        """
        # 出力先ディレクトリが存在しない場合は作成
        output_path = Path(file_path)
        output_path.parent.mkdir(parents=True, exist_ok=True)

        data = self.to_dict()
        if not data["settings"]:
            data["settings"] = Settings().model_dump(by_alias=True)
        for key in ("excel_output", "log_file"):
            if data[key] is None:
                del data[key]

        with open(file_path, "w", encoding="utf-8") as f:
            yaml.dump(
                data,
                f,
                default_flow_style=False,
                allow_unicode=True,
                sort_keys=False
            )

        logger.info(f"Configuration saved to {file_path}")
