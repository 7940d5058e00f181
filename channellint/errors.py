"""channellintの例外定義。"""


class ChannelLintError(Exception):
    """channellintの基底例外。"""
    pass


class GoParseError(ChannelLintError):
    """Goソースの読み込み・変換時のエラー。"""
    pass


class ConfigError(ChannelLintError):
    """設定ファイルまたは設定値のエラー。"""
    pass


class Unresolvable(Exception):
    """式の値や型を静的に決定できない。

    ユーザーには報告しない。依存するチェックをその箇所だけスキップする。
    """
    pass
