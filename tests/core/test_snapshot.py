# tests/core/test_snapshot.py
"""
rv32_multicycle.core.snapshotモジュールの単体テスト。
"""
import pytest
from dataclasses import FrozenInstanceError

from rv32_multicycle.core.state import CpuState
from rv32_multicycle.core.snapshot import Operation, Metadata, Snapshot
from rv32_multicycle.transport.bus import BusAccess, BusAccessType

# @intent:test_suite Snapshot関連データ構造の不変性と補助プロパティを検証します。

class TestOperation:
    def test_text_with_operands(self):
        op = Operation(opcode_hex="02A00093", mnemonic="addi", operands=["x1", "x0", "42"])
        assert op.text == "addi x1, x0, 42"

    def test_text_without_operands(self):
        assert Operation(opcode_hex="0FF0000F", mnemonic="fence").text == "fence"

    def test_operation_is_frozen(self):
        op = Operation(opcode_hex="00000013", mnemonic="addi")
        with pytest.raises(FrozenInstanceError):
            op.mnemonic = "sub"

    def test_defaults(self):
        op = Operation(opcode_hex="00000013", mnemonic="addi")
        assert op.operands == []
        assert op.length == 4


class TestSnapshot:
    # @intent:test_case_filter accesses()が指定種別のバスアクセスのみを返すことを検証します。
    def test_accesses_filters_by_type(self):
        activity = [
            BusAccess(0x0, 0x13, BusAccessType.FETCH),
            BusAccess(0x4, 0xAB, BusAccessType.WRITE, width=1, previous_data=0),
            BusAccess(0x8, 0x1, BusAccessType.READ),
        ]
        snapshot = Snapshot(state=CpuState(), operation=None, metadata=Metadata(cycle_count=3), bus_activity=activity)
        writes = snapshot.accesses(BusAccessType.WRITE)
        assert len(writes) == 1
        assert writes[0].address == 0x4
        assert writes[0].previous_data == 0

    def test_metadata_defaults(self):
        meta = Metadata(cycle_count=7)
        assert meta.instruction_count == 0
        assert meta.retired is False
        assert meta.halted is False
        assert meta.symbol_info is None

    def test_snapshot_is_frozen(self):
        snapshot = Snapshot(state=CpuState(), operation=None, metadata=Metadata(cycle_count=0))
        with pytest.raises(FrozenInstanceError):
            snapshot.operation = None
