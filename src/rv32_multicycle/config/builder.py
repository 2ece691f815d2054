import warnings

from rv32_multicycle.transport.bus import WORD_BYTES
from rv32_multicycle.common.types import register_index
from rv32_multicycle.arch.rv32i.cpu import IllegalInstructionPolicy
from rv32_multicycle.arch.rv32i.soc import MulticycleSoc, ROM_SIZE, RAM_SIZE
from .models import SystemConfig, CpuInitialState, MemoryRegion

# @intent:responsibility システム構成（Config）に基づいて、SoCを生成し、プログラムと初期状態を適用します。
class SystemBuilder:
    def build_system(self, config: SystemConfig) -> MulticycleSoc:
        if config.architecture != "RV32I":
            raise ValueError(f"Unsupported architecture: {config.architecture}")

        rom_words = ROM_SIZE
        ram_words = RAM_SIZE
        for region in config.memory_map:
            words = self._region_words(region)
            if region.type == "ROM":
                rom_words = words
            elif region.type == "RAM":
                ram_words = words
            else:
                warnings.warn(
                    f"Unknown device type '{region.type}' for range "
                    f"{region.start:08X}-{region.end:08X}, defaulting to RAM"
                )
                ram_words = words

        soc = MulticycleSoc(
            rom_words=rom_words,
            ram_words=ram_words,
            illegal_instruction_policy=IllegalInstructionPolicy(config.illegal_instruction),
            fill_word=config.fill_word,
            cycle_limit=config.cycle_limit,
        )
        # プログラム未指定の場合もROM全体は fill_word で埋まっている
        if config.program:
            soc.load_program(config.program)

        # 初期状態の適用
        self.apply_initial_state(soc, config.initial_state)

        return soc

    # @intent:responsibility メモリ領域の定義を検証し、ワード数を返します。
    def _region_words(self, region: MemoryRegion) -> int:
        if region.start != 0:
            raise ValueError(f"Memory region '{region.label or region.type}' must start at 0.")
        size = region.size_bytes
        if size <= 0 or size % WORD_BYTES != 0:
            raise ValueError(
                f"Memory region '{region.label or region.type}' size {size} is not a whole number of words."
            )
        return size // WORD_BYTES

    # @intent:responsibility Configで定義された初期状態をSoCに適用します。
    def apply_initial_state(self, soc: MulticycleSoc, config_state: CpuInitialState):
        """
        コアをリセットし、Configから指定されたレジスタ値とデータメモリの内容を適用します。
        """
        soc.reset()

        for reg_name, value in config_state.registers.items():
            soc.poke_register(register_index(reg_name), value)

        for index, value in config_state.data.items():
            soc.poke_data_word(index, value)
