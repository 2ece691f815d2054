# src/rv32_multicycle/arch/rv32i/regfile.py
"""
RV32I 整数レジスタファイル。
"""
from typing import List, Tuple

NUM_REGISTERS = 32
MASK32 = 0xFFFFFFFF

# @intent:responsibility 32本の32bit汎用レジスタを保持します。x0は常に0として読み出されます。
class RegisterFile:
    """
    x0..x31 のレジスタファイル。
    x0 への書き込みは受け付けますが、観測可能な効果はありません。
    """
    def __init__(self):
        self._regs: List[int] = [0] * NUM_REGISTERS

    # @intent:pre-condition indexは0..31である必要があります。
    @staticmethod
    def _check_index(index: int) -> None:
        if not 0 <= index < NUM_REGISTERS:
            raise IndexError(f"Register index {index} out of range (0-31).")

    def read(self, index: int) -> int:
        self._check_index(index)
        if index == 0:
            return 0
        return self._regs[index]

    def write(self, index: int, value: int) -> None:
        self._check_index(index)
        if index == 0:
            return
        self._regs[index] = value & MASK32

    def reset(self) -> None:
        self._regs = [0] * NUM_REGISTERS

    # @intent:responsibility 全レジスタの値をタプルで返します（x0は常に0）。
    def values(self) -> Tuple[int, ...]:
        return (0,) + tuple(self._regs[1:])

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, RegisterFile):
            return NotImplemented
        return self.values() == other.values()

    def __repr__(self) -> str:
        nonzero = ", ".join(f"x{i}={v:#x}" for i, v in enumerate(self.values()) if v)
        return f"RegisterFile({nonzero})"
