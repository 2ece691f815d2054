# src/rv32_multicycle/arch/rv32i/alu.py
"""
算術論理演算ユニットと分岐比較器。

どちらも状態を持たない組み合わせ回路として、純粋関数で実装します。
"""
from enum import Enum

MASK32 = 0xFFFFFFFF

# @intent:responsibility ALUの演算種別を定義します。ADDはADD/ADDI/アドレス計算などで共有されます。
class AluOp(Enum):
    ADD = "ADD"
    SUB = "SUB"
    AND = "AND"
    OR = "OR"
    XOR = "XOR"
    SLL = "SLL"
    SRL = "SRL"
    SRA = "SRA"
    SLT = "SLT"
    SLTU = "SLTU"

# @intent:responsibility 分岐命令が使う比較条件を定義します。
class BranchCond(Enum):
    EQ = "EQ"
    NE = "NE"
    LT = "LT"
    GE = "GE"
    LTU = "LTU"
    GEU = "GEU"

# @intent:utility_function 32bit値を2の補数の符号付き整数として解釈します。
def to_signed(value: int) -> int:
    value &= MASK32
    return value - (1 << 32) if value & 0x80000000 else value

# @intent:utility_function 指定ビット幅の値を32bitへ符号拡張します。
def sign_extend(value: int, bits: int) -> int:
    sign = 1 << (bits - 1)
    value &= (1 << bits) - 1
    return ((value ^ sign) - sign) & MASK32

# @intent:responsibility ALU演算を実行し、32bitに切り詰めた結果を返します。
def alu(op: AluOp, a: int, b: int) -> int:
    """
    op に応じて a, b の演算結果を返します。シフト量は b の下位5bitです。
    """
    a &= MASK32
    b &= MASK32
    shamt = b & 0x1F
    if op is AluOp.ADD:
        result = a + b
    elif op is AluOp.SUB:
        result = a - b
    elif op is AluOp.AND:
        result = a & b
    elif op is AluOp.OR:
        result = a | b
    elif op is AluOp.XOR:
        result = a ^ b
    elif op is AluOp.SLL:
        result = a << shamt
    elif op is AluOp.SRL:
        result = a >> shamt
    elif op is AluOp.SRA:
        result = to_signed(a) >> shamt
    elif op is AluOp.SLT:
        result = 1 if to_signed(a) < to_signed(b) else 0
    elif op is AluOp.SLTU:
        result = 1 if a < b else 0
    else:
        raise ValueError(f"Unsupported ALU operation: {op}")
    return result & MASK32

# @intent:responsibility 分岐条件を評価し、分岐成立ならTrueを返します。
def compare(cond: BranchCond, a: int, b: int) -> bool:
    a &= MASK32
    b &= MASK32
    if cond is BranchCond.EQ:
        return a == b
    if cond is BranchCond.NE:
        return a != b
    if cond is BranchCond.LT:
        return to_signed(a) < to_signed(b)
    if cond is BranchCond.GE:
        return to_signed(a) >= to_signed(b)
    if cond is BranchCond.LTU:
        return a < b
    if cond is BranchCond.GEU:
        return a >= b
    raise ValueError(f"Unsupported branch condition: {cond}")
