# src/rv32_multicycle/arch/rv32i/decoder.py
"""
RV32I 命令デコーダ。

32bitの命令語を、命令形式・レジスタ番号・符号拡張済み即値・演算種別を持つ
不変の命令記述子（Instruction）へ変換する純粋関数を提供します。
"""
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Dict, Tuple

from rv32_multicycle.arch.rv32i.alu import AluOp, BranchCond, sign_extend

MASK32 = 0xFFFFFFFF

# @intent:constant RV32I のメジャーオペコード (bits 6:0)。
OP_LUI = 0b0110111
OP_AUIPC = 0b0010111
OP_JAL = 0b1101111
OP_JALR = 0b1100111
OP_BRANCH = 0b1100011
OP_LOAD = 0b0000011
OP_STORE = 0b0100011
OP_IMM = 0b0010011
OP_REG = 0b0110011
OP_FENCE = 0b0001111

FUNCT7_ALT = 0b0100000  # bit30: SUB / SRA / SRAI

# @intent:responsibility 命令エンコーディングの形式を定義します。
class InstrFormat(Enum):
    R = "R"
    I = "I"
    S = "S"
    B = "B"
    U = "U"
    J = "J"

# @intent:responsibility デコード結果として解決される具体的な命令種別を定義します。
class OpKind(Enum):
    LUI = "LUI"
    AUIPC = "AUIPC"
    JAL = "JAL"
    JALR = "JALR"
    BEQ = "BEQ"
    BNE = "BNE"
    BLT = "BLT"
    BGE = "BGE"
    BLTU = "BLTU"
    BGEU = "BGEU"
    LB = "LB"
    LH = "LH"
    LW = "LW"
    LBU = "LBU"
    LHU = "LHU"
    SB = "SB"
    SH = "SH"
    SW = "SW"
    ADDI = "ADDI"
    SLTI = "SLTI"
    SLTIU = "SLTIU"
    XORI = "XORI"
    ORI = "ORI"
    ANDI = "ANDI"
    SLLI = "SLLI"
    SRLI = "SRLI"
    SRAI = "SRAI"
    ADD = "ADD"
    SUB = "SUB"
    SLL = "SLL"
    SLT = "SLT"
    SLTU = "SLTU"
    XOR = "XOR"
    SRL = "SRL"
    SRA = "SRA"
    OR = "OR"
    AND = "AND"
    FENCE = "FENCE"

# @intent:responsibility 解決できないビットパターンを表す例外。
class IllegalInstructionError(ValueError):
    def __init__(self, word: int, reason: str):
        super().__init__(f"Illegal instruction {word:#010x}: {reason}")
        self.word = word

# @intent:map オペコードから命令形式へのマッピングテーブル。
FORMAT_MAP: Dict[int, InstrFormat] = {
    OP_LUI: InstrFormat.U,
    OP_AUIPC: InstrFormat.U,
    OP_JAL: InstrFormat.J,
    OP_JALR: InstrFormat.I,
    OP_BRANCH: InstrFormat.B,
    OP_LOAD: InstrFormat.I,
    OP_STORE: InstrFormat.S,
    OP_IMM: InstrFormat.I,
    OP_REG: InstrFormat.R,
    OP_FENCE: InstrFormat.I,
}

# @intent:map funct3 を持たないオペコード。
FIXED_MAP: Dict[int, OpKind] = {
    OP_LUI: OpKind.LUI,
    OP_AUIPC: OpKind.AUIPC,
    OP_JAL: OpKind.JAL,
}

# @intent:map funct3 だけで種別が決まる命令。
FUNCT3_MAP: Dict[int, Dict[int, OpKind]] = {
    OP_JALR: {0b000: OpKind.JALR},
    OP_BRANCH: {
        0b000: OpKind.BEQ, 0b001: OpKind.BNE, 0b100: OpKind.BLT,
        0b101: OpKind.BGE, 0b110: OpKind.BLTU, 0b111: OpKind.BGEU,
    },
    OP_LOAD: {
        0b000: OpKind.LB, 0b001: OpKind.LH, 0b010: OpKind.LW,
        0b100: OpKind.LBU, 0b101: OpKind.LHU,
    },
    OP_STORE: {0b000: OpKind.SB, 0b001: OpKind.SH, 0b010: OpKind.SW},
    OP_IMM: {
        0b000: OpKind.ADDI, 0b010: OpKind.SLTI, 0b011: OpKind.SLTIU,
        0b100: OpKind.XORI, 0b110: OpKind.ORI, 0b111: OpKind.ANDI,
    },
    OP_FENCE: {0b000: OpKind.FENCE},
}

# @intent:map funct3 と funct7 の組で種別が決まる命令（R形式と即値シフト）。
FUNCT7_MAP: Dict[int, Dict[Tuple[int, int], OpKind]] = {
    OP_IMM: {
        (0b001, 0): OpKind.SLLI,
        (0b101, 0): OpKind.SRLI,
        (0b101, FUNCT7_ALT): OpKind.SRAI,
    },
    OP_REG: {
        (0b000, 0): OpKind.ADD, (0b000, FUNCT7_ALT): OpKind.SUB,
        (0b001, 0): OpKind.SLL, (0b010, 0): OpKind.SLT,
        (0b011, 0): OpKind.SLTU, (0b100, 0): OpKind.XOR,
        (0b101, 0): OpKind.SRL, (0b101, FUNCT7_ALT): OpKind.SRA,
        (0b110, 0): OpKind.OR, (0b111, 0): OpKind.AND,
    },
}

# @intent:map 命令種別から ALU 演算へのマッピング（算術論理命令のみ）。
ALU_OPS: Dict[OpKind, AluOp] = {
    OpKind.ADD: AluOp.ADD, OpKind.ADDI: AluOp.ADD,
    OpKind.SUB: AluOp.SUB,
    OpKind.AND: AluOp.AND, OpKind.ANDI: AluOp.AND,
    OpKind.OR: AluOp.OR, OpKind.ORI: AluOp.OR,
    OpKind.XOR: AluOp.XOR, OpKind.XORI: AluOp.XOR,
    OpKind.SLL: AluOp.SLL, OpKind.SLLI: AluOp.SLL,
    OpKind.SRL: AluOp.SRL, OpKind.SRLI: AluOp.SRL,
    OpKind.SRA: AluOp.SRA, OpKind.SRAI: AluOp.SRA,
    OpKind.SLT: AluOp.SLT, OpKind.SLTI: AluOp.SLT,
    OpKind.SLTU: AluOp.SLTU, OpKind.SLTIU: AluOp.SLTU,
}

# @intent:map 分岐命令から比較条件へのマッピング。
BRANCH_CONDS: Dict[OpKind, BranchCond] = {
    OpKind.BEQ: BranchCond.EQ, OpKind.BNE: BranchCond.NE,
    OpKind.BLT: BranchCond.LT, OpKind.BGE: BranchCond.GE,
    OpKind.BLTU: BranchCond.LTU, OpKind.BGEU: BranchCond.GEU,
}

# @intent:map ロード命令の (アクセス幅, 符号拡張するか)。
LOAD_ACCESS: Dict[OpKind, Tuple[int, bool]] = {
    OpKind.LB: (1, True), OpKind.LH: (2, True), OpKind.LW: (4, False),
    OpKind.LBU: (1, False), OpKind.LHU: (2, False),
}

# @intent:map ストア命令のアクセス幅。
STORE_WIDTH: Dict[OpKind, int] = {OpKind.SB: 1, OpKind.SH: 2, OpKind.SW: 4}

SHIFT_IMM_KINDS = (OpKind.SLLI, OpKind.SRLI, OpKind.SRAI)

# @intent:constant 命令クラスごとの所要ステップ数。
CYCLES_DEFAULT = 5
CYCLES_STORE = 6
CYCLES_LOAD = 7


def _imm_i(word: int) -> int:
    return sign_extend(word >> 20, 12)

def _imm_s(word: int) -> int:
    return sign_extend(((word >> 25) << 5) | ((word >> 7) & 0x1F), 12)

def _imm_b(word: int) -> int:
    value = (((word >> 31) & 0x1) << 12) | (((word >> 7) & 0x1) << 11) \
        | (((word >> 25) & 0x3F) << 5) | (((word >> 8) & 0xF) << 1)
    return sign_extend(value, 13)

def _imm_u(word: int) -> int:
    return word & 0xFFFFF000

def _imm_j(word: int) -> int:
    value = (((word >> 31) & 0x1) << 20) | (word & 0x000FF000) \
        | (((word >> 20) & 0x1) << 11) | (((word >> 21) & 0x3FF) << 1)
    return sign_extend(value, 21)

# @intent:map 命令形式から即値生成関数へのマッピング。R形式は即値を持たない。
IMMEDIATE_MAP: Dict[InstrFormat, Callable[[int], int]] = {
    InstrFormat.R: lambda word: 0,
    InstrFormat.I: _imm_i,
    InstrFormat.S: _imm_s,
    InstrFormat.B: _imm_b,
    InstrFormat.U: _imm_u,
    InstrFormat.J: _imm_j,
}

# @intent:responsibility デコード済み命令の不変記述子。
@dataclass(frozen=True)
class Instruction:
    """
    命令語から取り出したフィールドと、解決済みの命令種別を保持します。
    imm は32bitへ符号拡張済みの符号なし表現です（即値シフトではシフト量）。
    """
    word: int
    kind: OpKind
    fmt: InstrFormat
    opcode: int
    funct3: int
    funct7: int
    rd: int
    rs1: int
    rs2: int
    imm: int

    @property
    def mnemonic(self) -> str:
        return self.kind.value.lower()

    @property
    def is_load(self) -> bool:
        return self.kind in LOAD_ACCESS

    @property
    def is_store(self) -> bool:
        return self.kind in STORE_WIDTH

    @property
    def is_branch(self) -> bool:
        return self.kind in BRANCH_CONDS

    # @intent:responsibility rd への書き戻しを行う命令かどうか。ストア、分岐、FENCEは書き戻さない。
    @property
    def writes_rd(self) -> bool:
        return not (self.is_store or self.is_branch or self.kind is OpKind.FENCE)

    # @intent:responsibility この命令がFETCHからWRITEBACKまでに消費するクロックステップ数。
    @property
    def cycle_count(self) -> int:
        if self.is_load:
            return CYCLES_LOAD
        if self.is_store:
            return CYCLES_STORE
        return CYCLES_DEFAULT

# @intent:responsibility (opcode, funct3, funct7) から命令種別を解決します。
def _resolve_kind(word: int, opcode: int, funct3: int, funct7: int) -> OpKind:
    if opcode in FIXED_MAP:
        return FIXED_MAP[opcode]
    kind = FUNCT7_MAP.get(opcode, {}).get((funct3, funct7))
    if kind is not None:
        return kind
    kind = FUNCT3_MAP.get(opcode, {}).get(funct3)
    if kind is not None:
        return kind
    raise IllegalInstructionError(
        word, f"no operation for opcode={opcode:07b} funct3={funct3:03b} funct7={funct7:07b}"
    )

# @intent:responsibility 32bit命令語をデコードし、Instructionを返します。
# @intent:post-condition 未定義のビットパターンの場合はIllegalInstructionErrorを送出します。
def decode(word: int) -> Instruction:
    """
    命令語をデコードします。副作用はありません。
    """
    word &= MASK32
    opcode = word & 0x7F
    fmt = FORMAT_MAP.get(opcode)
    if fmt is None:
        raise IllegalInstructionError(word, f"unknown opcode {opcode:07b}")

    funct3 = (word >> 12) & 0x7
    funct7 = (word >> 25) & 0x7F
    rd = (word >> 7) & 0x1F
    rs1 = (word >> 15) & 0x1F
    rs2 = (word >> 20) & 0x1F

    kind = _resolve_kind(word, opcode, funct3, funct7)
    imm = rs2 if kind in SHIFT_IMM_KINDS else IMMEDIATE_MAP[fmt](word)

    return Instruction(
        word=word, kind=kind, fmt=fmt, opcode=opcode, funct3=funct3, funct7=funct7,
        rd=rd, rs1=rs1, rs2=rs2, imm=imm
    )
