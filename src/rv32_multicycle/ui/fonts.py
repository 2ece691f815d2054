"""
UIフォント管理モジュール。

レジスタ値やメモリダンプなど、桁を揃えて表示する箇所で使う等幅フォントを選択します。
"""
from PySide6.QtGui import QFont, QFontDatabase

PREFERRED_MONOSPACE_FONTS = ["Consolas", "Menlo", "Monaco", "DejaVu Sans Mono", "Courier New"]

# @intent:responsibility 現在のシステムで利用可能な最適な等幅フォントファミリー名を返します。
def get_monospace_font_family() -> str:
    available_families = QFontDatabase.families()
    for font in PREFERRED_MONOSPACE_FONTS:
        if font in available_families:
            return font
    # Qtのシステムデフォルトの等幅フォント
    return QFontDatabase.systemFont(QFontDatabase.FixedFont).family()

def get_monospace_font(size: int = 10) -> QFont:
    return QFont(get_monospace_font_family(), size)

# @intent:utility_function 値表示ラベル用のスタイルシート文字列を生成します。
def monospace_style(color: str) -> str:
    return f"font-family: '{get_monospace_font_family()}', monospace; color: {color};"
