# tests/loader/test_loader.py
"""
rv32_multicycle.loader.loaderモジュールの単体テスト。
"""
import pytest

from rv32_multicycle.loader.loader import IntelHexLoader, HexWordLoader, NOP
from rv32_multicycle.transport.bus import InstructionMemory

# @intent:test_suite Intel HEX とワード列テキストの読み込みを検証します。

def record(address, record_type, data):
    body = [len(data), (address >> 8) & 0xFF, address & 0xFF, record_type] + list(data)
    checksum = (-sum(body)) & 0xFF
    return ":" + "".join(f"{b:02X}" for b in body) + f"{checksum:02X}"


class TestIntelHexLoader:
    @pytest.fixture
    def rom(self):
        return InstructionMemory(16, fill=NOP)

    # @intent:test_case_little_endian データバイトがリトルエンディアンで命令語に詰められることを検証します。
    def test_load_packs_little_endian(self, tmp_path, rom):
        path = tmp_path / "prog.hex"
        path.write_text("\n".join([
            record(0x0000, 0x00, [0xB7, 0x50, 0x34, 0x12, 0x93, 0x00, 0xA0, 0x02]),
            record(0x0000, 0x01, []),
        ]))
        IntelHexLoader().load_intel_hex(str(path), rom)
        assert rom.peek(0) == 0x123450B7
        assert rom.peek(1) == 0x02A00093
        assert rom.peek(2) == NOP

    def test_partial_word_preserves_other_bytes(self, rom):
        IntelHexLoader().load_lines([record(0x0005, 0x00, [0xAA])], rom)
        assert rom.peek(1) == (NOP & ~0xFF00) | 0xAA00

    def test_extended_linear_address(self, rom):
        lines = [
            record(0x0000, 0x04, [0x00, 0x00]),
            record(0x0008, 0x00, [0x01, 0x02, 0x03, 0x04]),
            record(0x0000, 0x02, [0x00, 0x01]), # セグメント 0x10
            record(0x0000, 0x00, [0xFF, 0x00, 0x00, 0x00]),
            record(0x0000, 0x05, [0x00, 0x00, 0x00, 0x00]),
        ]
        IntelHexLoader().load_lines(lines, rom)
        assert rom.peek(2) == 0x04030201
        assert rom.peek(4) == 0x000000FF

    def test_stops_at_eof_record(self, rom):
        lines = [record(0, 0x01, []), record(0, 0x00, [0x00, 0x00, 0x00, 0x00])]
        IntelHexLoader().load_lines(lines, rom)
        assert rom.peek(0) == NOP

    def test_ignores_comments_and_blank_lines(self, rom):
        lines = ["", "garbage", record(0, 0x00, [0x13, 0x01, 0x00, 0x00]) + " ; first word"]
        IntelHexLoader().load_lines(lines, rom)
        assert rom.peek(0) == 0x113

    def test_checksum_mismatch(self, rom):
        bad = record(0, 0x00, [0x01])[:-2] + "00"
        with pytest.raises(ValueError, match="Checksum mismatch on line 1"):
            IntelHexLoader().load_lines([bad], rom)

    def test_too_short(self, rom):
        with pytest.raises(ValueError, match="Too short"):
            IntelHexLoader().load_lines([":0000"], rom)

    def test_length_mismatch(self, rom):
        with pytest.raises(ValueError, match="line 1"):
            IntelHexLoader().load_lines([":0400000001AB"], rom)

    def test_unknown_record_type(self, rom):
        with pytest.raises(ValueError, match="Unknown Intel HEX record type 06 on line 1"):
            IntelHexLoader().load_lines([record(0, 0x06, [])], rom)

    def test_out_of_range(self, rom):
        with pytest.raises(ValueError, match="exceeds memory"):
            IntelHexLoader().load_lines([record(0x003E, 0x00, [0x01, 0x02, 0x03, 0x04])], rom)


class TestHexWordLoader:
    def test_load_words(self, tmp_path):
        path = tmp_path / "prog.mem"
        path.write_text(
            "// fibonacci prologue\n"
            "00100093\n"
            "00102023  # sw x1, 0(x0)\n"
            "\n"
            "00102223 00a00513\n"
        )
        assert HexWordLoader().load_words(str(path)) == [0x00100093, 0x00102023, 0x00102223, 0x00A00513]

    # @intent:test_case_address_jump @addr による配置先の変更と、間の空きがNOPで埋まることを検証します。
    def test_address_jump_fills_gap(self):
        words = HexWordLoader().parse_lines(["02A00093", "@3", "123450B7"])
        assert words == [0x02A00093, NOP, NOP, 0x123450B7]

    def test_custom_fill(self):
        assert HexWordLoader().parse_lines(["@1 00000001"], fill=0) == [0, 1]

    def test_empty(self):
        assert HexWordLoader().parse_lines(["// nothing", ""]) == []

    def test_invalid_token(self):
        with pytest.raises(ValueError, match="line 2"):
            HexWordLoader().parse_lines(["00000013", "xyz"])

    def test_value_too_wide(self):
        with pytest.raises(ValueError, match="32 bits"):
            HexWordLoader().parse_lines(["100000000"])

    def test_negative_value_rejected(self):
        with pytest.raises(ValueError, match="line 1"):
            HexWordLoader().parse_lines(["-1"])

    def test_negative_address_rejected(self):
        with pytest.raises(ValueError, match="Negative word index on line 2"):
            HexWordLoader().parse_lines(["00000013", "@-4 00000001"])
