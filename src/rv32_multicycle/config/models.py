from dataclasses import dataclass, field
from typing import Dict, List

@dataclass
class MemoryRegion:
    start: int
    end: int
    type: str  # "ROM" (命令メモリ), "RAM" (データメモリ)
    label: str = ""

    @property
    def size_bytes(self) -> int:
        return self.end - self.start + 1

@dataclass
class CpuInitialState:
    registers: Dict[str, int] = field(default_factory=dict)  # "x5" / "a0" -> value
    data: Dict[int, int] = field(default_factory=dict)  # データメモリのワードインデックス -> value

@dataclass
class SystemConfig:
    architecture: str = "RV32I"
    memory_map: List[MemoryRegion] = field(default_factory=list)
    cycle_limit: int = 50
    fill_word: int = 0x00000013
    illegal_instruction: str = "halt"  # "halt", "raise"
    initial_state: CpuInitialState = field(default_factory=CpuInitialState)
    program: List[int] = field(default_factory=list)
