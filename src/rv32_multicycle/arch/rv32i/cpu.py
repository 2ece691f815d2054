# src/rv32_multicycle/arch/rv32i/cpu.py
"""
RV32I マルチサイクルCPUエミュレーションの中心モジュール。

制御シーケンサは明示的なステート列挙（ControlState）とスクラッチ（Scratch）で表現され、
1クロックステップごとに1ステートだけ遷移します。

    FETCH -> FETCH_WAIT -> DECODE -> EXECUTE -> WRITEBACK               (5 ステップ)
                                              -> MEMORY -> WRITEBACK     (ストア: 6 ステップ)
                                              -> MEMORY -> MEMORY2 -> WRITEBACK (ロード: 7 ステップ)

命令メモリはFETCHでのみ、データメモリはMEMORY/MEMORY2でのみ、
レジスタファイルへの書き込みはWRITEBACKでのみ行われます。
"""
from enum import Enum
from typing import Callable, Dict, List, Optional, Tuple
import warnings

from rv32_multicycle.core.cpu import AbstractCpu
from rv32_multicycle.core.snapshot import Operation, Snapshot
from rv32_multicycle.common.types import RegisterLayoutInfo, RegisterInfo
from rv32_multicycle.transport.bus import Bus
from rv32_multicycle.arch.rv32i.alu import AluOp, alu, compare, sign_extend
from rv32_multicycle.arch.rv32i.decoder import (
    ALU_OPS, BRANCH_CONDS, LOAD_ACCESS, STORE_WIDTH,
    IllegalInstructionError, InstrFormat, OpKind, decode,
)
from rv32_multicycle.arch.rv32i.state import ControlState, Rv32iCpuState, Scratch
from rv32_multicycle.arch.rv32i import disassembler

MASK32 = 0xFFFFFFFF

# @intent:responsibility 不正命令がDECODEに到達した場合の振る舞いを定義します。
class IllegalInstructionPolicy(Enum):
    HALT = "halt"   # HALTED ステートへ遷移し、以後のクロックを無視する
    RAISE = "raise" # IllegalInstructionError を step() の呼び出し元へ送出する

# @intent:responsibility RV32I マルチサイクルCPUの制御シーケンサを提供します。
class Rv32iCpu(AbstractCpu):
    """
    RV32I マルチサイクルCPUをエミュレートするクラス。
    """
    def __init__(self, bus: Bus, illegal_instruction_policy: IllegalInstructionPolicy = IllegalInstructionPolicy.HALT):
        self._policy = illegal_instruction_policy
        super().__init__(bus)
        # @intent:map 制御ステートからステート処理メソッドへのディスパッチテーブル。
        self._handlers: Dict[ControlState, Callable[[], bool]] = {
            ControlState.FETCH: self._do_fetch,
            ControlState.FETCH_WAIT: self._do_fetch_wait,
            ControlState.DECODE: self._do_decode,
            ControlState.EXECUTE: self._do_execute,
            ControlState.MEMORY: self._do_memory,
            ControlState.MEMORY2: self._do_memory2,
            ControlState.WRITEBACK: self._do_writeback,
        }

    @property
    def illegal_instruction_policy(self) -> IllegalInstructionPolicy:
        return self._policy

    # @intent:responsibility RV32Iの初期状態（PC=0、全レジスタ0、FETCHから開始）を生成します。
    def _create_initial_state(self) -> Rv32iCpuState:
        return Rv32iCpuState()

    def get_state(self) -> Rv32iCpuState:
        return self._state

    def _current_phase(self) -> str:
        return self._state.control.value

    def _current_operation(self) -> Optional[Operation]:
        inst = self._state.scratch.instruction
        if inst is None:
            return None
        return disassembler.to_operation(inst)

    def _current_instruction_address(self) -> int:
        return self._state.scratch.pc

    def _instruction_count(self) -> int:
        return self._state.instret

    # @intent:responsibility 現在の制御ステートの処理を実行します。
    def _clock(self) -> bool:
        return self._handlers[self._state.control]()

    # @intent:responsibility HALTED中のクロックは何も変更せず、停止中であることを示すSnapshotを返します。
    def _handle_halt(self) -> Optional[Snapshot]:
        if not self._state.halted:
            return None
        self._state.cycle += 1
        return self._create_snapshot(ControlState.HALTED.value, retired=False, halted=True)

    # --- 制御ステート ---

    # @intent:responsibility 命令メモリにPCを提示します。読み出しデータは次のクロックで有効になります。
    def _do_fetch(self) -> bool:
        s = self._state
        s.imem_rdata = self._bus.fetch(s.pc)
        s.scratch = Scratch(pc=s.pc, next_pc=(s.pc + 4) & MASK32)
        s.control = ControlState.FETCH_WAIT
        return False

    # @intent:responsibility 有効になった命令語をスクラッチに取り込みます。
    def _do_fetch_wait(self) -> bool:
        s = self._state
        s.scratch.instruction_word = s.imem_rdata
        s.control = ControlState.DECODE
        return False

    # @intent:responsibility 命令をデコードし、ソースレジスタを読み、分岐/ジャンプ先の候補を計算します。
    def _do_decode(self) -> bool:
        s = self._state
        sc = s.scratch
        try:
            inst = decode(sc.instruction_word)
        except IllegalInstructionError as e:
            if self._policy is IllegalInstructionPolicy.RAISE:
                raise
            warnings.warn(f"{e} at pc={s.pc:#010x}; core halted.")
            s.control = ControlState.HALTED
            return False

        sc.instruction = inst
        sc.rs1_value = s.registers.read(inst.rs1)
        sc.rs2_value = s.registers.read(inst.rs2)
        if inst.kind is OpKind.JALR:
            sc.target = (sc.rs1_value + inst.imm) & MASK32 & ~0x1
        else:
            sc.target = (s.pc + inst.imm) & MASK32
        s.control = ControlState.EXECUTE
        return False

    # @intent:responsibility ALU演算、分岐判定、ジャンプのリンク値計算、実効アドレス計算を行います。
    def _do_execute(self) -> bool:
        s = self._state
        sc = s.scratch
        inst = sc.instruction
        kind = inst.kind

        if kind in ALU_OPS:
            operand_b = sc.rs2_value if inst.fmt is InstrFormat.R else inst.imm
            sc.alu_result = alu(ALU_OPS[kind], sc.rs1_value, operand_b)
        elif kind is OpKind.LUI:
            sc.alu_result = inst.imm
        elif kind is OpKind.AUIPC:
            sc.alu_result = alu(AluOp.ADD, s.pc, inst.imm)
        elif kind in (OpKind.JAL, OpKind.JALR):
            sc.alu_result = (s.pc + 4) & MASK32
            sc.next_pc = sc.target
        elif inst.is_branch:
            if compare(BRANCH_CONDS[kind], sc.rs1_value, sc.rs2_value):
                sc.next_pc = sc.target
        elif inst.is_load or inst.is_store:
            sc.alu_result = alu(AluOp.ADD, sc.rs1_value, inst.imm)
        # FENCE: 単一ハートの逐次実行では何もしない

        if inst.is_load or inst.is_store:
            s.control = ControlState.MEMORY
        else:
            s.control = ControlState.WRITEBACK
        return False

    # @intent:responsibility データメモリにアドレスを提示します。ストアは書き込み、ロードは読み出しを開始します。
    def _do_memory(self) -> bool:
        s = self._state
        sc = s.scratch
        inst = sc.instruction
        if inst.is_store:
            self._bus.write(sc.alu_result, STORE_WIDTH[inst.kind], sc.rs2_value)
            s.control = ControlState.WRITEBACK
        else:
            width, _ = LOAD_ACCESS[inst.kind]
            s.dmem_rdata = self._bus.read(sc.alu_result, width)
            s.control = ControlState.MEMORY2
        return False

    # @intent:responsibility ロードデータを取り込み、符号拡張またはゼロ拡張します。
    def _do_memory2(self) -> bool:
        s = self._state
        sc = s.scratch
        width, signed = LOAD_ACCESS[sc.instruction.kind]
        if signed:
            sc.mem_data = sign_extend(s.dmem_rdata, width * 8)
        else:
            sc.mem_data = s.dmem_rdata
        s.control = ControlState.WRITEBACK
        return False

    # @intent:responsibility 結果をrdへ書き戻し、PCを更新して命令をリタイアさせます。
    def _do_writeback(self) -> bool:
        s = self._state
        sc = s.scratch
        inst = sc.instruction
        if inst.writes_rd:
            value = sc.mem_data if inst.is_load else sc.alu_result
            s.registers.write(inst.rd, value)
        s.pc = sc.next_pc
        s.instret += 1
        s.control = ControlState.FETCH
        return True

    # --- ハーネス/デバッガ向けAPI ---

    def read_register(self, index: int) -> int:
        return self._state.registers.read(index)

    # @intent:responsibility 命令実行とは独立したデバッグ用のレジスタ書き込み経路です。
    def poke_register(self, index: int, value: int) -> None:
        self._state.registers.write(index, value)

    # @intent:responsibility UI表示用に、現在のレジスタ値を辞書形式で提供します。
    def get_register_map(self) -> Dict[str, int]:
        s = self._state
        reg_map = {"PC": s.pc}
        for i, value in enumerate(s.registers.values()):
            reg_map[f"x{i}"] = value
        return reg_map

    # @intent:responsibility UIのレジスタ表示レイアウト（8本ずつのグループ）を定義します。
    def get_register_layout(self) -> List[RegisterLayoutInfo]:
        layout = [RegisterLayoutInfo("Program Counter", [RegisterInfo("PC", 32)])]
        for base in range(0, 32, 8):
            layout.append(RegisterLayoutInfo(
                f"x{base}-x{base + 7}",
                [RegisterInfo(f"x{i}", 32) for i in range(base, base + 8)]
            ))
        return layout

    # @intent:responsibility 指定範囲の命令メモリを逆アセンブルします。
    def disassemble(self, start_addr: int, length: int) -> List[Tuple[int, str, str]]:
        return disassembler.disassemble(self._bus, start_addr, length)
