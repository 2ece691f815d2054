"""
共通の型定義を提供するモジュール。
UIやデバッガなど複数のレイヤーで共有される型エイリアスと定数を定義します。
"""
from typing import Dict, List, NamedTuple

# @intent:data_structure 単一のレジスタの表示定義。UIが動的にフィールドを生成するために使用される。
class RegisterInfo(NamedTuple):
    name: str
    width: int  # ビット幅 (32 固定だが、UI側は幅から桁数を決める)

# @intent:data_structure レジスタグループの表示定義。関連するレジスタ（例: "x0-x7"）をまとめる。
class RegisterLayoutInfo(NamedTuple):
    group_name: str
    registers: List[RegisterInfo]

# @intent:constant RV32I 整数レジスタの ABI 名。インデックスがそのままレジスタ番号に対応します。
ABI_NAMES: List[str] = [
    "zero", "ra", "sp", "gp", "tp", "t0", "t1", "t2",
    "s0", "s1", "a0", "a1", "a2", "a3", "a4", "a5",
    "a6", "a7", "s2", "s3", "s4", "s5", "s6", "s7",
    "s8", "s9", "s10", "s11", "t3", "t4", "t5", "t6",
]

# @intent:map レジスタ名（x0..x31, ABI名, fp）からレジスタ番号への逆引き表。
REGISTER_INDEX: Dict[str, int] = {f"x{i}": i for i in range(32)}
REGISTER_INDEX.update({name: i for i, name in enumerate(ABI_NAMES)})
REGISTER_INDEX["fp"] = 8


# @intent:utility_function レジスタ名をレジスタ番号に変換します。未知の名前はValueErrorとします。
def register_index(name: str) -> int:
    key = name.strip().lower()
    if key not in REGISTER_INDEX:
        raise ValueError(f"Unknown register name: {name}")
    return REGISTER_INDEX[key]
