# src/rv32_multicycle/ui/app.py
"""
GUIアプリケーションのエントリポイント。
コマンドライン引数で指定されたシステム構成（YAML）があれば読み込んでから、メインウィンドウを起動します。
"""
import sys
from PySide6.QtWidgets import QApplication

from rv32_multicycle.config.loader import ConfigLoader
from rv32_multicycle.config.builder import SystemBuilder
from .main_window import MainWindow

# @intent:responsibility アプリケーションを起動し、メインウィンドウを表示します。
def main():
    app = QApplication(sys.argv)
    soc = None
    if len(sys.argv) > 1:
        soc = SystemBuilder().build_system(ConfigLoader().load_from_file(sys.argv[1]))
    main_win = MainWindow(soc)
    main_win.show()
    sys.exit(app.exec())

if __name__ == '__main__':
    main()
