# tests/ui/test_main_window.py
"""
MainWindowとバックエンド（SoC・デバッガ）の結合を検証するテスト。
ファイルダイアログを介さない公開メソッドを直接呼び出します。
"""
import textwrap

import pytest

from rv32_multicycle.arch.rv32i.soc import MulticycleSoc
from rv32_multicycle.ui.main_window import MainWindow
import rv32i_encoding as enc


@pytest.fixture
def window(qapp):
    win = MainWindow(MulticycleSoc(rom_words=32, ram_words=16))
    yield win
    win.close()


def _intel_hex_record(address, record_type, data):
    body = [len(data), (address >> 8) & 0xFF, address & 0xFF, record_type] + list(data)
    checksum = (-sum(body)) & 0xFF
    return ":" + "".join(f"{b:02X}" for b in body) + f"{checksum:02X}"


class TestMainWindow:
    def test_initial_state(self, window):
        assert window.run_action.isEnabled()
        assert not window.stop_action.isEnabled()
        assert window.status_label.text() == "FETCH | cycle 0 | retired 0"
        assert window.code_view.highlighted_row == 0

    def test_step_instruction_updates_views(self, window):
        window.soc.load_program([enc.addi(5, 0, 7), enc.sw(5, 0, 0)])
        window.debugger.reset()
        window._step_instruction()
        assert window.register_view.value_text("x5") == "0x00000007"
        assert window.status_label.text().startswith("WRITEBACK | cycle 5 | retired 1")
        assert window.code_view.highlighted_row == 1

        window._step_instruction()
        assert window.memory_view.text().splitlines()[0].startswith("00000000: 00000007")

        window._step_back()
        assert window.soc.read_data_word(0) == 7
        window._reset()
        assert window.soc.read_register(5) == 0
        assert window.status_label.text() == "FETCH | cycle 0 | retired 0"

    def test_step_cycle_reports_raised_error(self, qapp):
        from rv32_multicycle.arch.rv32i.cpu import IllegalInstructionPolicy
        soc = MulticycleSoc(rom_words=8, ram_words=8,
                            illegal_instruction_policy=IllegalInstructionPolicy.RAISE)
        soc.load_program([0x00000000])
        win = MainWindow(soc)
        for _ in range(3):
            win._step_cycle()
        assert win.status_label.text().startswith("Stopped:")
        win.close()

    def test_load_hex_word_program(self, window, tmp_path):
        program = tmp_path / "prog.mem"
        program.write_text(f"{enc.addi(1, 0, 3):08x}\n{enc.addi(2, 1, 4):08x}\n")
        window.load_program_file(str(program))
        assert window.code_view.table.item(1, 2).text() == "addi x2, x1, 4"
        window._step_instruction()
        window._step_instruction()
        assert window.soc.read_register(2) == 7

    def test_load_intel_hex_program(self, window, tmp_path):
        word = enc.addi(3, 0, 9)
        program = tmp_path / "prog.hex"
        program.write_text("\n".join([
            _intel_hex_record(0, 0x00, word.to_bytes(4, "little")),
            _intel_hex_record(0, 0x01, []),
        ]) + "\n")
        window.load_program_file(str(program))
        assert window.code_view.table.item(0, 2).text() == "addi x3, x0, 9"
        assert window.code_view.table.item(1, 2).text() == "addi x0, x0, 0"

    def test_load_system_config(self, window, tmp_path):
        config = tmp_path / "system.yaml"
        config.write_text(textwrap.dedent(f"""\
            memory_map:
              - {{start: 0x0, end: 0x3F, type: ROM, label: Program}}
              - {{start: 0x0, end: 0x1F, type: RAM, label: Data}}
            program:
              - {enc.addi(4, 4, 1):#010x}
            initial_state:
              registers:
                x4: 41
        """))
        window.load_system_config(str(config))
        assert window.soc.bus.rom.get_size() == 16
        assert window.register_view.value_text("x4") == "0x00000029"
        window._step_instruction()
        assert window.register_view.value_text("x4") == "0x0000002A"
