# src/rv32_multicycle/ui/register_view.py
"""
CPUのレジスタを表示するウィジェット。
AbstractCpuのレイアウト情報を利用して動的にUIを構築します。
"""
from typing import Dict, Optional
from PySide6.QtWidgets import QWidget, QVBoxLayout, QFormLayout, QLabel, QGroupBox
from PySide6.QtCore import Qt

from rv32_multicycle.core.cpu import AbstractCpu
from rv32_multicycle.common.types import ABI_NAMES
from rv32_multicycle.ui.fonts import monospace_style

VALUE_COLOR = "#FFD700"
CHANGED_COLOR = "#FF6060"

# @intent:responsibility CPUのレジスタ値を表示し、直前の更新から変化した値を強調します。
class RegisterView(QWidget):
    def __init__(self, parent=None):
        super().__init__(parent)
        self.setStyleSheet("background-color: #121212; color: #BBBBBB;")

        self.layout = QVBoxLayout(self)
        self.layout.setContentsMargins(5, 5, 5, 5)

        self._register_labels: Dict[str, QLabel] = {}
        self._register_widths: Dict[str, int] = {}
        self._last_values: Dict[str, int] = {}
        self._cpu: Optional[AbstractCpu] = None

    # @intent:responsibility 表示対象のCPUを設定し、UIレイアウトを構築します。
    def set_cpu(self, cpu: AbstractCpu) -> None:
        self._cpu = cpu
        self._setup_ui()
        self.update_registers()

    def _setup_ui(self):
        while self.layout.count():
            item = self.layout.takeAt(0)
            if item.widget():
                item.widget().deleteLater()
        self._register_labels.clear()
        self._register_widths.clear()
        self._last_values.clear()

        for group in self._cpu.get_register_layout():
            group_box = QGroupBox(group.group_name)
            group_box.setStyleSheet("""
                QGroupBox {
                    font-weight: bold;
                    border: 1px solid #222;
                    border-radius: 4px;
                    margin-top: 20px;
                    color: #EEE;
                }
                QGroupBox::title {
                    subcontrol-origin: margin;
                    left: 10px;
                    padding: 0 5px;
                    color: #00AAAA;
                }
            """)
            group_layout = QFormLayout(group_box)
            group_layout.setLabelAlignment(Qt.AlignLeft)
            group_layout.setContentsMargins(10, 15, 10, 10)
            group_layout.setSpacing(3)

            for reg in group.registers:
                hex_width = (reg.width + 3) // 4
                self._register_widths[reg.name] = hex_width

                label_name = QLabel(f"{self._display_name(reg.name)}:")
                label_name.setStyleSheet("font-weight: bold; color: #BBBBBB;")
                label_value = QLabel(f"0x{'0' * hex_width}")
                label_value.setStyleSheet(monospace_style(VALUE_COLOR))
                label_value.setAlignment(Qt.AlignRight)

                group_layout.addRow(label_name, label_value)
                self._register_labels[reg.name] = label_value

            self.layout.addWidget(group_box)

        self.layout.addStretch()

    # @intent:utility_function "x10" を "x10 (a0)" のようにABI名付きで表示します。
    def _display_name(self, name: str) -> str:
        if name.startswith("x") and name[1:].isdigit():
            return f"{name} ({ABI_NAMES[int(name[1:])]})"
        return name

    # @intent:responsibility 現在のCPU状態を取得し、レジスタの表示値を更新します。
    def update_registers(self):
        if not self._cpu:
            return

        for name, value in self._cpu.get_register_map().items():
            label = self._register_labels.get(name)
            if label is None:
                continue
            width = self._register_widths[name]
            label.setText(f"0x{value:0{width}X}")
            changed = name in self._last_values and self._last_values[name] != value
            label.setStyleSheet(monospace_style(CHANGED_COLOR if changed else VALUE_COLOR))
            self._last_values[name] = value

    def value_text(self, name: str) -> str:
        return self._register_labels[name].text()
