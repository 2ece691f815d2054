# rv32_multicycle/core/state.py
"""
Core Layer (CPU状態)

このモジュールは、CPUの基本的な状態を保持するデータ構造を定義します。
"""
from dataclasses import dataclass

# @intent:responsibility 全アーキテクチャに共通するCPU状態（プログラムカウンタとクロック数）を保持します。
@dataclass
class CpuState:
    """
    CPUの基本状態を保持するデータクラス。
    レジスタファイルや制御ステートなど、アーキテクチャ固有の要素はサブクラスで追加されます。
    """
    pc: int = 0x00000000  # Program Counter
    cycle: int = 0  # リセット解除後に経過したクロックステップ数
    # @intent:rationale リセット後のPCは0番地から開始する。命令メモリの先頭にプログラムが置かれる前提。
    #                  cycleを状態に含めることで、デバッガの状態復元時にサイクル数も一緒に戻る。
