# src/rv32_multicycle/arch/rv32i/state.py
"""
RV32I マルチサイクルコア固有の状態定義。
"""
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional

from rv32_multicycle.core.state import CpuState
from rv32_multicycle.common.types import register_index
from rv32_multicycle.arch.rv32i.decoder import Instruction
from rv32_multicycle.arch.rv32i.regfile import RegisterFile

# @intent:responsibility 制御シーケンサのステートを定義します。
class ControlState(Enum):
    FETCH = "FETCH"
    FETCH_WAIT = "FETCH_WAIT"
    DECODE = "DECODE"
    EXECUTE = "EXECUTE"
    MEMORY = "MEMORY"
    MEMORY2 = "MEMORY2"
    WRITEBACK = "WRITEBACK"
    HALTED = "HALTED" # 不正命令によって停止した状態

# @intent:responsibility 1命令の処理中にステート間で受け渡す一時値を保持します。
# @intent:rationale FETCHで新しいScratchに置き換えるため、前の命令の値は次の命令に持ち越されない。
#                  WRITEBACK後も次のFETCHまでは保持され、リタイアした命令の表示に使われる。
@dataclass
class Scratch:
    pc: int = 0 # この命令自身のアドレス（FETCH時点のPC）
    instruction_word: int = 0
    instruction: Optional[Instruction] = None
    rs1_value: int = 0
    rs2_value: int = 0
    target: int = 0 # 分岐/ジャンプ先の候補
    alu_result: int = 0 # ALU結果、メモリアドレス、またはリンクアドレス
    mem_data: int = 0 # ロードして拡張済みの値
    next_pc: int = 0

# @intent:responsibility RV32Iコアの全アーキテクチャ状態と制御状態を保持します。
@dataclass
class Rv32iCpuState(CpuState):
    """
    PC、レジスタファイル、制御ステート、命令ごとのスクラッチ、
    およびメモリ読み出しポートの出力レジスタ（1クロックのレイテンシを表す）を保持します。
    """
    registers: RegisterFile = field(default_factory=RegisterFile)
    control: ControlState = ControlState.FETCH
    scratch: Scratch = field(default_factory=Scratch)
    imem_rdata: int = 0 # 命令メモリの読み出しデータレジスタ
    dmem_rdata: int = 0 # データメモリの読み出しデータレジスタ
    instret: int = 0 # リタイアした命令数

    @property
    def halted(self) -> bool:
        return self.control is ControlState.HALTED

    # @intent:responsibility 名前（"pc", "x5", "a0" など）でレジスタ値を取得します。ブレークポイント評価用。
    def get_register_value(self, name: str) -> int:
        if name.strip().lower() == "pc":
            return self.pc
        return self.registers.read(register_index(name))
