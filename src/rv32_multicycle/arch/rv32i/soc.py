# src/rv32_multicycle/arch/rv32i/soc.py
"""
RV32I マルチサイクルSoC

コア、命令メモリ、データメモリを1つにまとめ、テストベンチ相当の操作
（プログラムのロード、リセット、クロックステップ、状態の観測とシード）を提供します。
"""
from typing import Optional, Sequence

from rv32_multicycle.core.snapshot import Snapshot
from rv32_multicycle.transport.bus import Bus, InstructionMemory, WordMemory
from rv32_multicycle.arch.rv32i.cpu import Rv32iCpu, IllegalInstructionPolicy
from rv32_multicycle.arch.rv32i.state import Rv32iCpuState

ROM_SIZE = 1024 # 命令メモリのワード数
RAM_SIZE = 1024 # データメモリのワード数
CYCLE_LIMIT = 50 # run() のデフォルトのクロック数
NOP = 0x00000013 # addi x0, x0, 0

# @intent:responsibility コアと2つのメモリを組み立て、ハーネス操作を提供します。
class MulticycleSoc:
    """
    RV32I マルチサイクルコアを内蔵したSoC。

    run() はリセットをアサートした1クロック、解除した1クロック、続いて cycles クロックを
    実行します。つまり合計 cycles + 1 回のステート遷移が行われます。
    """
    def __init__(self,
                 rom_words: int = ROM_SIZE,
                 ram_words: int = RAM_SIZE,
                 illegal_instruction_policy: IllegalInstructionPolicy = IllegalInstructionPolicy.HALT,
                 fill_word: int = NOP,
                 cycle_limit: int = CYCLE_LIMIT):
        self._fill_word = fill_word
        self._cycle_limit = cycle_limit
        self._rom = InstructionMemory(rom_words, fill=fill_word)
        self._ram = WordMemory(ram_words)
        self._bus = Bus(self._rom, self._ram)
        self._cpu = Rv32iCpu(self._bus, illegal_instruction_policy)

    @property
    def cpu(self) -> Rv32iCpu:
        return self._cpu

    @property
    def bus(self) -> Bus:
        return self._bus

    @property
    def cycle_limit(self) -> int:
        return self._cycle_limit

    @property
    def pc(self) -> int:
        return self._cpu.get_state().pc

    def get_state(self) -> Rv32iCpuState:
        return self._cpu.get_state()

    # @intent:responsibility 命令メモリ全体をNOPで埋め、先頭からプログラムを配置します。
    # @intent:pre-condition プログラムは命令メモリに収まる長さである必要があります。
    def load_program(self, words: Sequence[int]) -> None:
        if len(words) > self._rom.get_size():
            raise ValueError(
                f"Program of {len(words)} words does not fit in instruction memory of {self._rom.get_size()} words."
            )
        self._rom.fill(self._fill_word)
        self._rom.load_words(list(words))

    # @intent:responsibility コアを初期状態に戻し、リセット入力を解除します。データメモリは保持されます。
    def reset(self) -> None:
        self._cpu.set_reset(False)
        self._cpu.reset()

    # @intent:responsibility n クロック進め、最後のSnapshotを返します。
    def step(self, n: int = 1) -> Optional[Snapshot]:
        if n < 0:
            raise ValueError("Step count must not be negative.")
        snapshot = None
        for _ in range(n):
            snapshot = self._cpu.step()
        return snapshot

    # @intent:responsibility リセットシーケンスの後、指定クロック数だけ実行します。
    def run(self, cycles: Optional[int] = None) -> Snapshot:
        if cycles is None:
            cycles = self._cycle_limit
        self._cpu.set_reset(True)
        self._cpu.step()
        self._cpu.set_reset(False)
        snapshot = self._cpu.step()
        for _ in range(cycles):
            snapshot = self._cpu.step()
        return snapshot

    def read_register(self, index: int) -> int:
        return self._cpu.read_register(index)

    def poke_register(self, index: int, value: int) -> None:
        self._cpu.poke_register(index, value)

    def read_data_word(self, index: int) -> int:
        return self._bus.peek(index)

    def poke_data_word(self, index: int, value: int) -> None:
        self._bus.poke(index, value)
