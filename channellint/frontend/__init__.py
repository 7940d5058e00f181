"""tree-sitterを使用したGoソースコード解析モジュール。"""

from .go_parser import GoParser
from .lowering import GoLowering, collect_nolint
from .symbols import SymbolTable, default_package_name

__all__ = [
    "GoParser",
    "GoLowering",
    "collect_nolint",
    "SymbolTable",
    "default_package_name",
]
