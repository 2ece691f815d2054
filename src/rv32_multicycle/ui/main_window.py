# src/rv32_multicycle/ui/main_window.py
"""
メインウィンドウの実装。
SoC・デバッガのバックエンドと各表示ウィジェットを組み立て、実行制御を提供します。
"""
import sys
from typing import Optional

from PySide6.QtWidgets import (
    QMainWindow, QApplication, QDockWidget, QTabWidget, QToolBar, QLabel, QFileDialog, QMessageBox,
)
from PySide6.QtGui import QPalette, QColor, QAction, QCloseEvent
from PySide6.QtCore import Qt, QThread, Signal, Slot

from .register_view import RegisterView
from .memory_view import DataMemoryView
from .code_view import CodeView
from .fonts import get_monospace_font_family

# Backend Imports
from rv32_multicycle.arch.rv32i.soc import MulticycleSoc
from rv32_multicycle.config.loader import ConfigLoader
from rv32_multicycle.config.builder import SystemBuilder
from rv32_multicycle.loader.loader import IntelHexLoader, HexWordLoader
from rv32_multicycle.debugger.debugger import Debugger
from rv32_multicycle.core.snapshot import Snapshot
from rv32_multicycle.transport.bus import BusAccessType

# @intent:responsibility デバッガのrunメソッドをバックグラウンドで実行します。
class DebuggerThread(QThread):
    """
    デバッガのrun()をノンブロッキングで実行するためのスレッド。
    """
    breakpoint_hit = Signal(Snapshot)
    failed = Signal(str)

    def __init__(self, debugger: Debugger):
        super().__init__()
        self.debugger = debugger

    def run(self):
        try:
            self.debugger.run()
        except ValueError as e:
            # 不正命令（RAISEポリシー）やアクセス違反は停止理由としてUIに通知する
            self.failed.emit(str(e))
            return
        last_snapshot = self.debugger.get_last_snapshot()
        if last_snapshot:
            self.breakpoint_hit.emit(last_snapshot)


# @intent:responsibility アプリケーションのメインウィンドウを定義し、UIの主要なコンポーネントを組み立てます。
class MainWindow(QMainWindow):
    def __init__(self, soc: Optional[MulticycleSoc] = None, parent=None):
        super().__init__(parent)
        self.setWindowTitle("RV32I Multicycle Tracer")
        self.setGeometry(100, 100, 1200, 800)
        self.setDockNestingEnabled(True)

        self._set_dark_theme()
        self._create_toolbar()
        self._create_menus()
        self._create_navigation_pane()
        self._create_status_inspector()

        self.status_label = QLabel("", self)
        self.status_label.setAlignment(Qt.AlignCenter)
        self.setCentralWidget(self.status_label)

        self._attach_backend(soc or MulticycleSoc())
        self._update_ui_state(False) # 初期状態は停止中

    # @intent:responsibility SoCとデバッガを接続し、全ビューを初期表示に更新します。
    def _attach_backend(self, soc: MulticycleSoc):
        self.soc = soc
        self.debugger = Debugger(soc.cpu)
        self.debugger_thread = DebuggerThread(self.debugger)
        self.debugger_thread.breakpoint_hit.connect(self._update_ui_from_snapshot)
        self.debugger_thread.failed.connect(self._report_failure)

        self.register_view.set_cpu(soc.cpu)
        self.code_view.load_program(soc.cpu)
        self._refresh_views()

    def _create_menus(self):
        file_menu = self.menuBar().addMenu("File")

        self.load_config_action = QAction("Load System Config...", self)
        self.load_config_action.triggered.connect(self._load_system_config)
        file_menu.addAction(self.load_config_action)

        self.load_program_action = QAction("Load Program...", self)
        self.load_program_action.setShortcut("Ctrl+O")
        self.load_program_action.triggered.connect(self._load_program_file)
        file_menu.addAction(self.load_program_action)

    # @intent:responsibility 実行制御用のツールバーを作成します。
    def _create_toolbar(self):
        toolbar = QToolBar("Main Toolbar")
        self.addToolBar(toolbar)

        self.run_action = QAction("Run", self)
        self.run_action.triggered.connect(self._run_debugger)
        toolbar.addAction(self.run_action)

        self.stop_action = QAction("Stop", self)
        self.stop_action.triggered.connect(self._stop_debugger)
        toolbar.addAction(self.stop_action)

        self.step_cycle_action = QAction("Step Cycle", self)
        self.step_cycle_action.triggered.connect(self._step_cycle)
        toolbar.addAction(self.step_cycle_action)

        self.step_action = QAction("Step Instruction", self)
        self.step_action.triggered.connect(self._step_instruction)
        toolbar.addAction(self.step_action)

        self.step_back_action = QAction("Step Back", self)
        self.step_back_action.triggered.connect(self._step_back)
        toolbar.addAction(self.step_back_action)

        self.reset_action = QAction("Reset", self)
        self.reset_action.triggered.connect(self._reset)
        toolbar.addAction(self.reset_action)

    def _update_ui_state(self, is_running: bool):
        for action in (self.load_config_action, self.load_program_action, self.run_action,
                       self.step_cycle_action, self.step_action, self.step_back_action, self.reset_action):
            action.setEnabled(not is_running)
        self.stop_action.setEnabled(is_running)

    @Slot()
    def _run_debugger(self):
        self._update_ui_state(True)
        self.status_label.setText("Running...")
        self.debugger_thread.start()

    @Slot()
    def _stop_debugger(self):
        self.status_label.setText("Stopping...")
        self.debugger.stop()

    @Slot()
    def _step_cycle(self):
        try:
            self._update_ui_from_snapshot(self.debugger.step_cycle())
        except ValueError as e:
            self._report_failure(str(e))

    @Slot()
    def _step_instruction(self):
        try:
            self._update_ui_from_snapshot(self.debugger.step_instruction())
        except ValueError as e:
            self._report_failure(str(e))

    @Slot()
    def _step_back(self):
        self.debugger.step_back()
        self._refresh_views()

    @Slot()
    def _reset(self):
        self.debugger.reset()
        self._refresh_views()

    @Slot(str)
    def _report_failure(self, message: str):
        self._update_ui_state(False)
        self._refresh_views()
        self.status_label.setText(f"Stopped: {message}")

    # @intent:responsibility スナップショットの情報に基づいてUIを更新します。
    @Slot(Snapshot)
    def _update_ui_from_snapshot(self, snapshot: Snapshot):
        self._update_ui_state(False) # 停止状態に戻す

        data_accesses = snapshot.accesses(BusAccessType.READ) + snapshot.accesses(BusAccessType.WRITE)
        highlight = data_accesses[-1].address if data_accesses else None
        self._refresh_views(highlight)

        meta = snapshot.metadata
        text = f"{meta.phase} | cycle {meta.cycle_count} | retired {meta.instruction_count}"
        if meta.symbol_info:
            text += f" | {meta.symbol_info}"
        if meta.halted:
            text += " | HALTED"
        self.status_label.setText(text)

    def _refresh_views(self, highlight_address: Optional[int] = None):
        state = self.soc.get_state()
        self.register_view.update_registers()
        self.memory_view.update_memory(self.soc.bus, highlight_address)
        self.code_view.update_code(state.pc)
        self.status_label.setText(
            f"{state.control.value} | cycle {state.cycle} | retired {state.instret}"
        )

    @Slot()
    def _load_program_file(self):
        file_name, _ = QFileDialog.getOpenFileName(
            self, "Open Program", "", "Intel HEX (*.hex *.ihex);;Hex Words (*.mem *.txt);;All Files (*)"
        )
        if file_name:
            try:
                self.load_program_file(file_name)
                QMessageBox.information(self, "Load Program", f"Successfully loaded {file_name}")
            except (OSError, ValueError, IndexError) as e:
                QMessageBox.critical(self, "Error", f"Failed to load program: {e}")

    # @intent:responsibility 拡張子に応じたローダーでプログラムを命令メモリに配置し、コアをリセットします。
    def load_program_file(self, file_name: str):
        if file_name.lower().endswith((".hex", ".ihex")):
            self.soc.load_program([])
            IntelHexLoader().load_intel_hex(file_name, self.soc.bus.rom)
        else:
            self.soc.load_program(HexWordLoader().load_words(file_name))
        self.debugger.reset()
        self.code_view.load_program(self.soc.cpu)
        self._refresh_views()

    @Slot()
    def _load_system_config(self):
        file_name, _ = QFileDialog.getOpenFileName(
            self, "Open System Config", "", "YAML Files (*.yaml *.yml);;All Files (*)"
        )
        if file_name:
            try:
                self.load_system_config(file_name)
                QMessageBox.information(self, "System Config", f"Successfully loaded system config from {file_name}")
            except (OSError, ValueError, IndexError) as e:
                QMessageBox.critical(self, "Error", f"Failed to load system config: {e}")

    def load_system_config(self, file_name: str):
        config = ConfigLoader().load_from_file(file_name)
        self._attach_backend(SystemBuilder().build_system(config))

    def _create_navigation_pane(self):
        nav_dock = QDockWidget("Navigation", self)
        nav_dock.setAllowedAreas(Qt.LeftDockWidgetArea)
        tab_widget = QTabWidget()
        self.code_view = CodeView()
        tab_widget.addTab(self.code_view, "Program")
        self.memory_view = DataMemoryView()
        tab_widget.addTab(self.memory_view, "Data Memory")
        nav_dock.setWidget(tab_widget)
        self.addDockWidget(Qt.LeftDockWidgetArea, nav_dock)

    def _create_status_inspector(self):
        status_dock = QDockWidget("Status Inspector", self)
        status_dock.setAllowedAreas(Qt.RightDockWidgetArea)
        self.register_view = RegisterView()
        status_dock.setWidget(self.register_view)
        self.addDockWidget(Qt.RightDockWidgetArea, status_dock)

    # @intent:responsibility アプリケーションにダークテーマのスタイルシートを適用します。
    def _set_dark_theme(self):
        dark_palette = QPalette()
        dark_palette.setColor(QPalette.Window, QColor(29, 29, 29))
        dark_palette.setColor(QPalette.WindowText, QColor(224, 224, 224))
        dark_palette.setColor(QPalette.Base, QColor(30, 30, 30))
        dark_palette.setColor(QPalette.Text, QColor(224, 224, 224))
        dark_palette.setColor(QPalette.Button, QColor(53, 53, 53))
        dark_palette.setColor(QPalette.ButtonText, QColor(224, 224, 224))
        dark_palette.setColor(QPalette.Highlight, QColor(42, 130, 218))
        dark_palette.setColor(QPalette.HighlightedText, QColor(0, 0, 0))
        QApplication.setPalette(dark_palette)

        self.setStyleSheet(f"""
            QWidget {{ font-family: '{get_monospace_font_family()}', monospace; font-size: 10pt; }}
            QMainWindow, QToolBar {{ background-color: #1D1D1D; border: none; }}
            QDockWidget::title {{ text-align: left; background: #101010; padding: 4px; font-weight: bold; }}
            QTabWidget::pane {{ border-top: 2px solid #2A82DA; }}
            QTabBar::tab {{ background: #1E1E1E; padding: 8px 12px; min-width: 80px; }}
            QTabBar::tab:selected {{ background: #101010; border: 1px solid #2A82DA; }}
        """)

    # @intent:responsibility アプリケーション終了時に呼ばれ、バックグラウンドスレッドを安全に停止します。
    def closeEvent(self, event: QCloseEvent):
        if self.debugger_thread.isRunning():
            # 終了待ちの間にUI更新シグナルが届かないよう切断する
            self.debugger_thread.breakpoint_hit.disconnect(self._update_ui_from_snapshot)
            self.debugger.stop()
            self.debugger_thread.wait()
        event.accept()


if __name__ == '__main__':
    app = QApplication(sys.argv)
    main_win = MainWindow()
    main_win.show()
    sys.exit(app.exec())
