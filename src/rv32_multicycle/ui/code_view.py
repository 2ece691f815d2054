"""
命令メモリの逆アセンブル結果を表示するウィジェット。
"""
from typing import List, Tuple

from PySide6.QtWidgets import QWidget, QVBoxLayout, QTableWidget, QTableWidgetItem, QHeaderView
from PySide6.QtGui import QColor

from rv32_multicycle.core.cpu import AbstractCpu
from rv32_multicycle.ui.fonts import get_monospace_font

HIGHLIGHT_COLOR = QColor("#404000")
NORMAL_COLOR = QColor("#101010")

# @intent:responsibility 逆アセンブルされたコードを表形式で表示し、処理中の命令のPCをハイライトします。
class CodeView(QWidget):
    """
    命令メモリは実行中に書き換わらないため、逆アセンブル結果はプログラムのロード時に一度だけ生成します。
    """
    def __init__(self, parent=None):
        super().__init__(parent)
        self.layout = QVBoxLayout(self)
        self.layout.setContentsMargins(0, 0, 0, 0)

        self.table = QTableWidget()
        self.table.setColumnCount(3)
        self.table.setHorizontalHeaderLabels(["Address", "Word", "Instruction"])
        self.table.horizontalHeader().setSectionResizeMode(0, QHeaderView.ResizeToContents)
        self.table.horizontalHeader().setSectionResizeMode(1, QHeaderView.ResizeToContents)
        self.table.horizontalHeader().setSectionResizeMode(2, QHeaderView.Stretch)
        self.table.setFont(get_monospace_font(10))
        self.table.verticalHeader().setVisible(False)
        self.table.setEditTriggers(QTableWidget.NoEditTriggers)
        self.table.setSelectionBehavior(QTableWidget.SelectRows)
        self.table.setShowGrid(False)
        self.table.setStyleSheet("background-color: #101010; color: #BBBBBB; gridline-color: #303030;")
        self.layout.addWidget(self.table)

        self.disassembled_data: List[Tuple[int, str, str]] = []
        self._highlight_row = -1

    # @intent:responsibility 命令メモリ全体を逆アセンブルして表を作り直します。
    def load_program(self, cpu: AbstractCpu):
        self.disassembled_data = cpu.disassemble(0, cpu.bus.rom.get_byte_size())
        self.table.setRowCount(len(self.disassembled_data))
        for row, (addr, hex_word, text) in enumerate(self.disassembled_data):
            self.table.setItem(row, 0, QTableWidgetItem(f"{addr:08X}"))
            self.table.setItem(row, 1, QTableWidgetItem(hex_word))
            self.table.setItem(row, 2, QTableWidgetItem(text))
        self._highlight_row = -1

    # @intent:responsibility 指定PCの行をハイライトし、その行が見えるようにスクロールします。
    def update_code(self, pc: int):
        row_index = pc // 4 if 0 <= pc // 4 < self.table.rowCount() else -1
        if row_index == self._highlight_row:
            return
        self._paint_row(self._highlight_row, NORMAL_COLOR)
        self._paint_row(row_index, HIGHLIGHT_COLOR)
        self._highlight_row = row_index
        if row_index != -1:
            self.table.scrollToItem(self.table.item(row_index, 0), QTableWidget.EnsureVisible)

    def _paint_row(self, row: int, color: QColor):
        if row < 0:
            return
        for col in range(self.table.columnCount()):
            item = self.table.item(row, col)
            if item is not None:
                item.setBackground(color)

    @property
    def highlighted_row(self) -> int:
        return self._highlight_row
