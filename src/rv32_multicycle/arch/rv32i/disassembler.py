# src/rv32_multicycle/arch/rv32i/disassembler.py
"""
RV32I Disassembler

命令メモリ上の命令語をデコーダで解析し、アセンブリ表記に変換します。
バスアクセスログを汚さないよう、命令メモリはpeek（ログなし読み込み）で参照します。
"""
from typing import List, Tuple

from rv32_multicycle.transport.bus import Bus
from rv32_multicycle.core.snapshot import Operation
from rv32_multicycle.arch.rv32i.alu import to_signed
from rv32_multicycle.arch.rv32i.decoder import (
    Instruction, InstrFormat, OpKind, IllegalInstructionError, decode,
)

# @intent:utility_function 命令記述子からオペランド文字列のリストを生成します。
def format_operands(inst: Instruction) -> List[str]:
    rd, rs1, rs2 = f"x{inst.rd}", f"x{inst.rs1}", f"x{inst.rs2}"
    imm = to_signed(inst.imm)

    if inst.kind is OpKind.FENCE:
        return []
    if inst.fmt is InstrFormat.R:
        return [rd, rs1, rs2]
    if inst.fmt is InstrFormat.U:
        return [rd, f"{inst.imm >> 12:#x}"]
    if inst.fmt is InstrFormat.J:
        return [rd, str(imm)]
    if inst.fmt is InstrFormat.B:
        return [rs1, rs2, str(imm)]
    if inst.fmt is InstrFormat.S:
        return [rs2, f"{imm}({rs1})"]
    # I形式: ロードとJALRは base+offset 表記
    if inst.is_load or inst.kind is OpKind.JALR:
        return [rd, f"{imm}({rs1})"]
    return [rd, rs1, str(imm)]

# @intent:responsibility 命令記述子を表示用のOperationに変換します。
def to_operation(inst: Instruction) -> Operation:
    return Operation(
        opcode_hex=f"{inst.word:08X}",
        mnemonic=inst.mnemonic,
        operands=format_operands(inst),
        cycle_count=inst.cycle_count,
    )

# @intent:responsibility 1命令語をアセンブリ表記の文字列にします。不正命令は .word 表記になります。
def disassemble_word(word: int) -> str:
    try:
        return to_operation(decode(word)).text
    except IllegalInstructionError:
        return f".word {word:#010x}"

# @intent:responsibility 指定されたメモリ範囲を逆アセンブルし、表示用データを生成します。
def disassemble(bus: Bus, start_addr: int, length: int) -> List[Tuple[int, str, str]]:
    """
    指定された範囲（バイトアドレス、バイト長）の命令メモリを逆アセンブルします。

    Returns:
        List of (address, hex_word, assembly) tuples.
    """
    result = []
    rom_bytes = bus.rom.get_byte_size()
    current_addr = start_addr & ~0x3
    end_addr = min(start_addr + length, rom_bytes)

    while current_addr < end_addr:
        word = bus.peek_instruction(current_addr >> 2)
        result.append((current_addr, f"{word:08X}", disassemble_word(word)))
        current_addr += 4

    return result
