"""指摘の出力モジュール。"""

from .excel_writer import ExcelWriter
from .report_writer import ReportWriter

__all__ = ["ExcelWriter", "ReportWriter"]
