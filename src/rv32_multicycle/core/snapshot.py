# rv32_multicycle/core/snapshot.py
"""
実行状態の不変スナップショット

このモジュールは、1クロックステップ後のCPUとバスの状態を記録した不変のデータ構造を定義します。
UIへの情報提供と、デバッガの実行履歴（ステップバック）に用いる責務を負います。
"""
from dataclasses import dataclass, field
from typing import List, Optional

from rv32_multicycle.core.state import CpuState
from rv32_multicycle.transport.bus import BusAccessType, BusAccess


# @intent:responsibility 処理中の命令の表示用情報を記録します。
@dataclass(frozen=True) # 不変データ構造
class Operation:
    """
    命令の詳細（命令語のHEX、ニーモニック、オペランド）を記録するデータクラス。
    """
    opcode_hex: str # 例: "123450B7"
    mnemonic: str # 例: "lui"
    operands: List[str] = field(default_factory=list) # 例: ["x1", "0x12345"]
    cycle_count: int = 0 # 命令クラスの所要クロックステップ数
    length: int = 4 # 命令のバイト長

    @property
    def text(self) -> str:
        if self.operands:
            return f"{self.mnemonic} {', '.join(self.operands)}"
        return self.mnemonic

# @intent:responsibility 1クロックステップに関するメタデータを記録します。
@dataclass(frozen=True) # 不変データ構造
class Metadata:
    """
    累計サイクル数、リタイアした命令数、このステップで処理した制御ステートなど。
    """
    cycle_count: int
    instruction_count: int = 0
    phase: str = "" # このステップで実行された制御ステート名 (例: "EXECUTE")
    retired: bool = False # このステップで命令がリタイアしたか
    halted: bool = False
    symbol_info: Optional[str] = None # 例: "0x00000008: addi x3, x0, 42"

# @intent:responsibility ある一時点におけるCPUとバスの完全な状態を不変に記録します。
@dataclass(frozen=True) # 不変データ構造
class Snapshot:
    """
    ある一時点における、CPUとバスの完全な状態を記録した不変のデータ構造。
    state はステップ時点のコピーであり、以後のCPUの変化の影響を受けません。
    """
    state: CpuState
    operation: Optional[Operation]
    metadata: Metadata
    bus_activity: List[BusAccess] = field(default_factory=list)

    # @intent:responsibility 指定種別のバスアクセスだけを取り出します。
    def accesses(self, access_type: BusAccessType) -> List[BusAccess]:
        return [a for a in self.bus_activity if a.access_type == access_type]
