# tests/arch/rv32i/test_cpu.py
"""
RV32I マルチサイクル制御シーケンサの単体テスト。
ステート遷移の順序、ステップ数、書き戻しのタイミング、メモリの1クロックレイテンシを検証します。
"""
import pytest

from rv32_multicycle.arch.rv32i.cpu import Rv32iCpu, IllegalInstructionPolicy
from rv32_multicycle.arch.rv32i.decoder import IllegalInstructionError
from rv32_multicycle.arch.rv32i.state import ControlState, Rv32iCpuState
from rv32_multicycle.transport.bus import Bus, BusAccessType, InstructionMemory, MisalignedAccessError, WordMemory
import rv32i_encoding as enc

# @intent:test_suite 制御シーケンサの振る舞いの検証。

def make_cpu(program, policy=IllegalInstructionPolicy.HALT):
    rom = InstructionMemory(64, fill=enc.NOP)
    rom.load_words(program)
    bus = Bus(rom, WordMemory(64))
    return Rv32iCpu(bus, policy)

def phases(cpu, n):
    return [cpu.step().metadata.phase for _ in range(n)]


class TestStateSequence:
    # @intent:test_case_alu ALU命令は5ステップでリタイアすることを検証します。
    def test_alu_instruction_takes_five_steps(self):
        cpu = make_cpu([enc.addi(1, 0, 42)])
        assert phases(cpu, 5) == ["FETCH", "FETCH_WAIT", "DECODE", "EXECUTE", "WRITEBACK"]
        assert cpu.get_state().control is ControlState.FETCH
        assert cpu.get_state().pc == 4
        assert cpu.get_state().instret == 1

    def test_store_takes_six_steps(self):
        cpu = make_cpu([enc.sw(0, 0, 0)])
        assert phases(cpu, 6) == ["FETCH", "FETCH_WAIT", "DECODE", "EXECUTE", "MEMORY", "WRITEBACK"]
        assert cpu.get_state().pc == 4

    def test_load_takes_seven_steps(self):
        cpu = make_cpu([enc.lw(1, 0, 0)])
        assert phases(cpu, 7) == [
            "FETCH", "FETCH_WAIT", "DECODE", "EXECUTE", "MEMORY", "MEMORY2", "WRITEBACK"
        ]

    def test_branch_and_jump_take_five_steps(self):
        cpu = make_cpu([enc.beq(0, 0, 8), enc.NOP, enc.jal(0, -8)])
        snapshots = [cpu.step() for _ in range(5)]
        assert snapshots[-1].metadata.retired
        assert cpu.get_state().pc == 8
        snapshots = [cpu.step() for _ in range(5)]
        assert snapshots[-1].metadata.retired
        assert cpu.get_state().pc == 0

    def test_fence_is_a_five_step_no_op(self):
        cpu = make_cpu([enc.fence()])
        before = cpu.get_state().registers.values()
        assert phases(cpu, 5)[-1] == "WRITEBACK"
        assert cpu.get_state().registers.values() == before
        assert cpu.get_state().pc == 4

    # @intent:test_case_retired リタイアフラグはWRITEBACKのステップでのみ立つことを検証します。
    def test_retired_flag_only_on_writeback(self):
        cpu = make_cpu([enc.addi(1, 0, 1)])
        flags = [cpu.step().metadata.retired for _ in range(10)]
        assert flags == [False, False, False, False, True] * 2


class TestTiming:
    # @intent:test_case_writeback レジスタはWRITEBACKまで変化しないことを検証します。
    def test_register_written_only_at_writeback(self):
        cpu = make_cpu([enc.addi(1, 0, 42)])
        for _ in range(4):
            cpu.step()
            assert cpu.read_register(1) == 0
        cpu.step()
        assert cpu.read_register(1) == 42

    def test_pc_constant_until_writeback(self):
        cpu = make_cpu([enc.jal(0, 16)])
        for _ in range(4):
            cpu.step()
            assert cpu.get_state().pc == 0
        cpu.step()
        assert cpu.get_state().pc == 16

    # @intent:test_case_fetch_latency 命令語はFETCHで要求され、FETCH_WAITで取り込まれることを検証します。
    def test_fetch_latency(self):
        cpu = make_cpu([enc.addi(1, 0, 42)])
        fetch = cpu.step()
        assert [a.access_type for a in fetch.bus_activity] == [BusAccessType.FETCH]
        assert cpu.get_state().scratch.instruction_word == 0
        wait = cpu.step()
        assert wait.bus_activity == []
        assert cpu.get_state().scratch.instruction_word == enc.addi(1, 0, 42)

    # @intent:test_case_load_latency ロードデータはMEMORYで要求され、MEMORY2で拡張されることを検証します。
    def test_load_latency(self):
        cpu = make_cpu([enc.lb(2, 0, 0)])
        cpu.bus.poke(0, 0xAB)
        snapshots = [cpu.step() for _ in range(7)]
        memory, memory2 = snapshots[4], snapshots[5]
        assert [a.access_type for a in memory.bus_activity] == [BusAccessType.READ]
        assert memory2.bus_activity == []
        assert memory2.state.scratch.mem_data == 0xFFFFFFAB
        assert cpu.read_register(2) == 0xFFFFFFAB

    def test_store_written_in_memory_state(self):
        cpu = make_cpu([enc.addi(1, 0, 0x55), enc.sb(1, 0, 5)])
        for _ in range(5):
            cpu.step()
        snapshots = [cpu.step() for _ in range(6)]
        (write,) = snapshots[4].accesses(BusAccessType.WRITE)
        assert write.address == 5
        assert write.width == 1
        assert cpu.bus.peek(1) == 0x5500

    def test_operation_available_after_decode(self):
        cpu = make_cpu([enc.addi(1, 0, 42)])
        assert cpu.step().operation is None
        assert cpu.step().operation is None
        decode = cpu.step()
        assert decode.operation.text == "addi x1, x0, 42"
        assert decode.metadata.symbol_info == "0x00000000: addi x1, x0, 42"

    # @intent:test_case_symbol_info 完了時のSnapshotが、更新後のPCではなく命令自身のアドレスを示すことを検証します。
    def test_retiring_snapshot_reports_instruction_address(self):
        cpu = make_cpu([enc.jal(1, 8), enc.addi(2, 0, 99), enc.addi(3, 0, 42)])
        snapshots = [cpu.step() for _ in range(5)]
        writeback = snapshots[-1]
        assert writeback.metadata.retired
        assert writeback.state.pc == 8
        assert writeback.metadata.symbol_info == "0x00000000: jal x1, 8"

        snapshots = [cpu.step() for _ in range(5)]
        assert snapshots[-1].metadata.symbol_info == "0x00000008: addi x3, x0, 42"
        assert snapshots[-1].state.pc == 12


class TestSemantics:
    def test_x0_destination_is_discarded(self):
        cpu = make_cpu([enc.addi(0, 0, 5)])
        for _ in range(5):
            cpu.step()
        assert cpu.read_register(0) == 0

    # @intent:test_case_jalr JALRの分岐先は最下位ビットがクリアされることを検証します。
    def test_jalr_clears_lsb(self):
        cpu = make_cpu([enc.addi(1, 0, 13), enc.jalr(2, 1, 0)])
        for _ in range(10):
            cpu.step()
        assert cpu.get_state().pc == 12
        assert cpu.read_register(2) == 8

    def test_jalr_with_rd_equal_rs1_uses_old_value(self):
        cpu = make_cpu([enc.addi(1, 0, 16), enc.jalr(1, 1, 4)])
        for _ in range(10):
            cpu.step()
        assert cpu.get_state().pc == 20
        assert cpu.read_register(1) == 8

    def test_not_taken_branch_falls_through(self):
        cpu = make_cpu([enc.bne(0, 0, 16)])
        for _ in range(5):
            cpu.step()
        assert cpu.get_state().pc == 4

    def test_backward_branch(self):
        cpu = make_cpu([enc.NOP, enc.beq(0, 0, -4)])
        for _ in range(10):
            cpu.step()
        assert cpu.get_state().pc == 0

    def test_auipc_uses_instruction_address(self):
        cpu = make_cpu([enc.NOP, enc.auipc(5, 2)])
        for _ in range(10):
            cpu.step()
        assert cpu.read_register(5) == 0x2004

    def test_negative_load_offset(self):
        cpu = make_cpu([enc.addi(1, 0, 8), enc.lw(2, 1, -4)])
        cpu.bus.poke(1, 0xCAFEF00D)
        for _ in range(12):
            cpu.step()
        assert cpu.read_register(2) == 0xCAFEF00D

    def test_store_of_load_is_idempotent(self):
        cpu = make_cpu([enc.lh(1, 0, 2), enc.sh(1, 0, 2)])
        cpu.bus.poke(0, 0x89ABCDEF)
        for _ in range(13):
            cpu.step()
        assert cpu.bus.peek(0) == 0x89ABCDEF


class TestIllegalInstruction:
    # @intent:test_case_halt HALTポリシーでは不正命令でHALTEDに入り、以後のクロックは何もしないことを検証します。
    def test_halt_policy(self):
        cpu = make_cpu([enc.addi(1, 0, 7), 0xFFFFFFFF, enc.addi(2, 0, 9)])
        for _ in range(7):
            cpu.step()
        with pytest.warns(UserWarning, match="Illegal instruction"):
            snapshot = cpu.step()
        assert snapshot.metadata.phase == "DECODE"
        state = cpu.get_state()
        assert state.control is ControlState.HALTED
        assert state.halted
        assert state.pc == 4

        registers = state.registers.values()
        for _ in range(10):
            snapshot = cpu.step()
            assert snapshot.metadata.halted is True
            assert snapshot.bus_activity == []
        assert cpu.get_state().pc == 4
        assert cpu.get_state().registers.values() == registers
        assert cpu.read_register(2) == 0
        assert cpu.get_state().cycle == 18

    # @intent:test_case_raise RAISEポリシーでは例外が送出され、制御ステートがDECODEに留まることを検証します。
    def test_raise_policy(self):
        cpu = make_cpu([0x00000000], policy=IllegalInstructionPolicy.RAISE)
        cpu.step()
        cpu.step()
        with pytest.raises(IllegalInstructionError):
            cpu.step()
        assert cpu.get_state().control is ControlState.DECODE
        assert cpu.get_state().pc == 0
        with pytest.raises(IllegalInstructionError):
            cpu.step()

    def test_reset_leaves_halted_state(self):
        cpu = make_cpu([0xFFFFFFFF])
        with pytest.warns(UserWarning):
            for _ in range(3):
                cpu.step()
        assert cpu.get_state().halted
        cpu.reset()
        assert cpu.get_state().control is ControlState.FETCH

    def test_policy_property(self):
        assert make_cpu([]).illegal_instruction_policy is IllegalInstructionPolicy.HALT


class TestMisalignedAccess:
    # @intent:test_case_misaligned 非整列のデータアクセスは状態を変えずに例外を送出することを検証します。
    def test_misaligned_load_raises_without_state_change(self):
        cpu = make_cpu([enc.lw(1, 0, 2)])
        for _ in range(4):
            cpu.step()
        with pytest.raises(MisalignedAccessError):
            cpu.step()
        assert cpu.get_state().control is ControlState.MEMORY
        assert cpu.read_register(1) == 0

    def test_word_crossing_store_raises(self):
        cpu = make_cpu([enc.addi(1, 0, -1), enc.sh(1, 0, 3)])
        for _ in range(9):
            cpu.step()
        with pytest.raises(MisalignedAccessError):
            cpu.step()
        assert cpu.bus.peek(0) == 0

    def test_misaligned_jump_target_faults_on_fetch(self):
        cpu = make_cpu([enc.jal(0, 2)])
        for _ in range(5):
            cpu.step()
        assert cpu.get_state().pc == 2
        with pytest.raises(MisalignedAccessError):
            cpu.step()
        assert cpu.get_state().control is ControlState.FETCH


class TestDebugInterface:
    def test_register_map_and_layout(self):
        cpu = make_cpu([])
        cpu.poke_register(10, 0x1234)
        reg_map = cpu.get_register_map()
        assert reg_map["PC"] == 0
        assert reg_map["x10"] == 0x1234
        assert len(reg_map) == 33
        layout = cpu.get_register_layout()
        assert layout[0].registers[0].name == "PC"
        assert [g.group_name for g in layout[1:]] == ["x0-x7", "x8-x15", "x16-x23", "x24-x31"]

    def test_poke_register_masks_and_ignores_x0(self):
        cpu = make_cpu([])
        cpu.poke_register(0, 5)
        cpu.poke_register(3, -1)
        assert cpu.read_register(0) == 0
        assert cpu.read_register(3) == 0xFFFFFFFF
        with pytest.raises(IndexError):
            cpu.poke_register(32, 0)

    def test_get_register_value_by_name(self):
        cpu = make_cpu([])
        cpu.poke_register(10, 99)
        state: Rv32iCpuState = cpu.get_state()
        assert state.get_register_value("a0") == 99
        assert state.get_register_value("x10") == 99
        assert state.get_register_value("PC") == 0
        with pytest.raises(ValueError):
            state.get_register_value("r99")

    def test_disassemble(self):
        cpu = make_cpu([enc.addi(1, 0, 42)])
        assert cpu.disassemble(0, 8)[0][2] == "addi x1, x0, 42"
