"""指摘一覧のExcel出力モジュール。"""

from datetime import datetime
from typing import Dict, List
from pathlib import Path
import logging

from openpyxl import Workbook
from openpyxl.styles import PatternFill, Font, Alignment, Border, Side

from ..models.finding import Finding, Rule, Severity

logger = logging.getLogger(__name__)


class ExcelWriter:
    """指摘一覧とサマリーをExcelファイルに書き込む。"""

    # 重大度ごとの色（RGB hex、#なし）
    SEVERITY_COLORS: Dict[Severity, str] = {
        Severity.HIGH: "FFC7CE",    # 赤
        Severity.MEDIUM: "FFEB9C",  # 黄
        Severity.LOW: "C6EFCE",     # 緑
        Severity.INFO: "D9D9D9",    # 灰
    }

    FINDING_HEADERS = ["ファイル", "行", "列", "ルール", "重大度", "メッセージ"]
    COLUMN_WIDTHS = [50, 8, 8, 20, 10, 90]

    FINDINGS_SHEET = "Findings"
    SUMMARY_SHEET = "Summary"

    def __init__(self, output_file: str):
        """Excelライターを初期化する。

        Args:
            output_file: 出力Excelファイルのパス
        """
        self.output_file = Path(output_file)

    def write(self, findings: List[Finding]) -> None:
        """指摘シートとサマリーシートを持つブックを作成する。

        Args:
            findings: 出力する指摘（この順序で行を作る）
        """
        self.output_file.parent.mkdir(parents=True, exist_ok=True)

        wb = Workbook()
        ws = wb.active
        ws.title = self.FINDINGS_SHEET

        self._write_headers(ws)
        for row, finding in enumerate(findings, 2):
            self._write_finding_row(ws, row, finding)
        self._adjust_column_widths(ws)
        ws.freeze_panes = "A2"

        self._write_summary(wb.create_sheet(self.SUMMARY_SHEET), findings)

        wb.save(self.output_file)
        logger.info(f"Excel report written to {self.output_file}")

    @staticmethod
    def _thin_border() -> Border:
        return Border(
            left=Side(style="thin"),
            right=Side(style="thin"),
            top=Side(style="thin"),
            bottom=Side(style="thin")
        )

    def _write_headers(self, ws) -> None:
        """ヘッダー行を書き込む。

        Args:
            ws: ワークシートオブジェクト
        """
        header_fill = PatternFill(
            start_color="4472C4",
            end_color="4472C4",
            fill_type="solid"
        )
        white_font = Font(bold=True, color="FFFFFF")
        header_alignment = Alignment(horizontal="center", vertical="center")
        thin_border = self._thin_border()

        for col, header in enumerate(self.FINDING_HEADERS, 1):
            cell = ws.cell(row=1, column=col)
            cell.value = header
            cell.font = white_font
            cell.alignment = header_alignment
            cell.fill = header_fill
            cell.border = thin_border

    def _write_finding_row(self, ws, row_num: int, finding: Finding) -> None:
        """1行分の指摘を書き込む。

        Args:
            ws: ワークシートオブジェクト
            row_num: 書き込む行番号
            finding: 書き込む指摘
        """
        thin_border = self._thin_border()
        location = finding.location
        values = [
            location.file_path,
            location.line,
            location.column,
            finding.rule_id,
            finding.severity.value,
            finding.message,
        ]

        for col, value in enumerate(values, 1):
            cell = ws.cell(row=row_num, column=col)
            cell.value = value
            cell.border = thin_border

        severity_cell = ws.cell(row=row_num, column=5)
        color = self.SEVERITY_COLORS[finding.severity]
        severity_cell.fill = PatternFill(start_color=color, end_color=color, fill_type="solid")
        severity_cell.alignment = Alignment(horizontal="center")

        ws.cell(row=row_num, column=6).alignment = Alignment(wrap_text=True, vertical="top")

    def _adjust_column_widths(self, ws) -> None:
        for col, width in enumerate(self.COLUMN_WIDTHS, 1):
            col_letter = ws.cell(row=1, column=col).column_letter
            ws.column_dimensions[col_letter].width = width

    def _write_summary(self, ws, findings: List[Finding]) -> None:
        """ルール別の件数を集計したサマリーシートを書き込む。

        Args:
            ws: ワークシートオブジェクト
            findings: 全指摘のリスト
        """
        total = len(findings)
        counts: Dict[Rule, int] = {rule: 0 for rule in Rule}
        for finding in findings:
            counts[finding.rule] += 1

        ws["A1"] = "チャネル解析結果サマリー"
        ws["A1"].font = Font(bold=True, size=14)
        ws.merge_cells("A1:C1")

        ws["A2"] = f"生成日時: {datetime.now().strftime('%Y-%m-%d %H:%M:%S')}"
        ws.merge_cells("A2:C2")

        header_font = Font(bold=True)
        thin_border = self._thin_border()

        for i, header in enumerate(["ルール", "件数", "割合"], 1):
            cell = ws.cell(row=4, column=i)
            cell.value = header
            cell.font = header_font
            cell.border = thin_border
            cell.alignment = Alignment(horizontal="center")

        row = 5
        for rule, count in counts.items():
            cell_rule = ws.cell(row=row, column=1)
            cell_rule.value = rule.value
            cell_rule.border = thin_border

            cell_count = ws.cell(row=row, column=2)
            cell_count.value = count
            cell_count.alignment = Alignment(horizontal="right")
            cell_count.border = thin_border

            cell_pct = ws.cell(row=row, column=3)
            cell_pct.value = f"{count / total * 100:.1f}%" if total > 0 else "0%"
            cell_pct.alignment = Alignment(horizontal="right")
            cell_pct.border = thin_border

            row += 1

        # 合計行
        for col, value in enumerate(["合計", total, "100%" if total > 0 else "0%"], 1):
            cell = ws.cell(row=row, column=col)
            cell.value = value
            cell.font = Font(bold=True)
            cell.border = thin_border
            if col > 1:
                cell.alignment = Alignment(horizontal="right")

        ws.column_dimensions["A"].width = 22
        ws.column_dimensions["B"].width = 10
        ws.column_dimensions["C"].width = 10
