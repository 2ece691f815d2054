# src/rv32_multicycle/ui/memory_view.py
"""
データメモリの内容をワード単位の16進数で表示するウィジェット。
"""
from typing import Optional

from PySide6.QtWidgets import QWidget, QVBoxLayout, QPlainTextEdit
from PySide6.QtGui import QTextCharFormat, QTextCursor, QColor, QTextOption

from rv32_multicycle.transport.bus import Bus, WORD_BYTES
from rv32_multicycle.ui.fonts import get_monospace_font

WORDS_PER_ROW = 4

# @intent:responsibility データメモリをワード単位でダンプ表示し、直近にアクセスされたワードの行をハイライトします。
class DataMemoryView(QWidget):
    def __init__(self, parent=None):
        super().__init__(parent)
        self.layout = QVBoxLayout(self)
        self.layout.setContentsMargins(0, 0, 0, 0)
        self.editor = QPlainTextEdit(self)
        self.editor.setFont(get_monospace_font(10))
        self.editor.setReadOnly(True)
        self.editor.setWordWrapMode(QTextOption.NoWrap)
        self.editor.setStyleSheet("background-color: #101010; color: #BBBBBB;")
        self.layout.addWidget(self.editor)

    # @intent:responsibility データメモリ全体を読み込み（ログなしのpeek）、表示を更新します。
    def update_memory(self, bus: Bus, highlight_address: Optional[int] = None):
        lines = []
        size = bus.ram.get_size()
        for row_index in range(0, size, WORDS_PER_ROW):
            words = [
                f"{bus.peek(i):08X}"
                for i in range(row_index, min(row_index + WORDS_PER_ROW, size))
            ]
            lines.append(f"{row_index * WORD_BYTES:08X}: {' '.join(words)}")

        self.editor.setPlainText("\n".join(lines))

        if highlight_address is not None:
            line_to_highlight = (highlight_address % bus.ram.get_byte_size()) // (WORDS_PER_ROW * WORD_BYTES)
            cursor = self.editor.textCursor()
            cursor.movePosition(QTextCursor.Start)
            cursor.movePosition(QTextCursor.Down, QTextCursor.MoveAnchor, line_to_highlight)
            fmt = QTextCharFormat()
            fmt.setBackground(QColor("#404000"))
            cursor.select(QTextCursor.BlockUnderCursor)
            cursor.mergeCharFormat(fmt)
            self.editor.setTextCursor(cursor)
            self.editor.ensureCursorVisible()

    def text(self) -> str:
        return self.editor.toPlainText()
