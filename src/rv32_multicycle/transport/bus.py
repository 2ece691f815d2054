# rv32_multicycle/transport/bus.py
"""
Transport Layer (メモリとバス)

このモジュールは、命令メモリとデータメモリという2つの独立したワード配列と、
コアからそれらへのアクセスを仲介し記録するバスを定義します。
"""
from abc import ABC, abstractmethod
from typing import List, Optional, Sequence, Tuple
from dataclasses import dataclass
from enum import Enum
import warnings

MASK32 = 0xFFFFFFFF
WORD_BYTES = 4

# @intent:responsibility バスアクセスを記録するためのタイプを定義します。
class BusAccessType(Enum):
    FETCH = "FETCH"   # 命令メモリからの読み出し
    READ = "READ"     # データメモリからの読み出し
    WRITE = "WRITE"   # データメモリへの書き込み

# @intent:responsibility 個々のバスアクセス操作を記録します。
@dataclass(frozen=True) # 不変データ構造
class BusAccess:
    """
    バス上で行われた単一のアクセスを記録するデータクラス。
    WRITEの場合、previous_dataには書き込み前の対象ワード全体が入ります（ステップバックでの復元用）。
    """
    address: int
    data: int
    access_type: BusAccessType
    width: int = WORD_BYTES
    previous_data: Optional[int] = None

# @intent:responsibility ワード境界をまたぐアクセス、または整列されていないワードアクセスを表します。
class MisalignedAccessError(ValueError):
    pass

# @intent:responsibility メモリデバイスの抽象インターフェースを定義します。
class Device(ABC):
    """
    バスに接続されるデバイスの抽象基底クラス。
    アドレスはデバイス内のバイトアドレス、幅は 1/2/4 バイトです。
    """
    @abstractmethod
    def read(self, address: int, width: int) -> int:
        """
        指定されたバイトアドレスから width バイトを読み出します（符号拡張なし）。
        """
        pass

    @abstractmethod
    def write(self, address: int, width: int, data: int) -> None:
        """
        指定されたバイトアドレスに width バイトを書き込みます。
        """
        pass

# @intent:responsibility リトルエンディアンのワード配列としてメモリを提供します。
class WordMemory(Device):
    """
    32bitワードの固定長配列。バイトアドレスはワードインデックスとワード内オフセットに分解されます。
    アドレスは容量（ワード数 x 4 バイト）を法として解決されます。
    """
    # @intent:pre-condition size_wordsは正の整数である必要があります。
    def __init__(self, size_words: int, fill: int = 0):
        if not isinstance(size_words, int) or size_words <= 0:
            raise ValueError("Memory size must be a positive number of words.")
        self._size = size_words
        self._words: List[int] = [fill & MASK32] * size_words

    def get_size(self) -> int:
        return self._size

    def get_byte_size(self) -> int:
        return self._size * WORD_BYTES

    # @intent:responsibility バイトアドレスを (ワードインデックス, ワード内オフセット) に分解します。
    # @intent:pre-condition アクセスは1つの整列ワード内に収まる必要があります。
    def resolve(self, address: int, width: int) -> Tuple[int, int]:
        if width not in (1, 2, 4):
            raise ValueError(f"Invalid access width: {width}")
        address %= self.get_byte_size()
        offset = address & 0x3
        if width == WORD_BYTES and offset != 0:
            raise MisalignedAccessError(f"Word access at {address:#010x} is not 4-byte aligned.")
        if offset + width > WORD_BYTES:
            raise MisalignedAccessError(
                f"{width}-byte access at {address:#010x} crosses a word boundary."
            )
        return address >> 2, offset

    def read(self, address: int, width: int) -> int:
        index, offset = self.resolve(address, width)
        shift = offset * 8
        mask = (1 << (width * 8)) - 1
        return (self._words[index] >> shift) & mask

    # @intent:responsibility 対象バイトのみを置き換えるリードモディファイライトを行います。
    def write(self, address: int, width: int, data: int) -> None:
        index, offset = self.resolve(address, width)
        shift = offset * 8
        mask = ((1 << (width * 8)) - 1) << shift
        word = self._words[index]
        self._words[index] = (word & ~mask & MASK32) | ((data << shift) & mask)

    def read_word(self, address: int) -> int:
        return self.read(address, 4)

    def read_half(self, address: int) -> int:
        return self.read(address, 2)

    def read_byte(self, address: int) -> int:
        return self.read(address, 1)

    def write_word(self, address: int, data: int) -> None:
        self.write(address, 4, data)

    def write_half(self, address: int, data: int) -> None:
        self.write(address, 2, data)

    def write_byte(self, address: int, data: int) -> None:
        self.write(address, 1, data)

    # @intent:responsibility ワードインデックスで直接読み出します（インスペクタ用）。
    def peek(self, index: int) -> int:
        if not 0 <= index < self._size:
            raise IndexError(f"Word index {index} out of bounds for memory of {self._size} words.")
        return self._words[index]

    # @intent:responsibility ワードインデックスで直接書き込みます（テスト用のシード、デバッガの復元用）。
    def poke(self, index: int, data: int) -> None:
        if not 0 <= index < self._size:
            raise IndexError(f"Word index {index} out of bounds for memory of {self._size} words.")
        self._words[index] = data & MASK32

    def fill(self, data: int) -> None:
        self._words = [data & MASK32] * self._size

    # @intent:responsibility 指定インデックスからワード列を配置します。
    def load_words(self, words: Sequence[int], start_index: int = 0) -> None:
        if start_index < 0 or start_index + len(words) > self._size:
            raise IndexError(
                f"{len(words)} words at index {start_index} do not fit in memory of {self._size} words."
            )
        for i, word in enumerate(words):
            self._words[start_index + i] = word & MASK32

# @intent:responsibility 実行中は読み込み専用となる命令メモリを提供します。
class InstructionMemory(WordMemory):
    """
    命令ストア。コアからの書き込みは無視され、警告が出されます。
    プログラムのロードは load_words / poke のバックドア経由で行います。
    """
    # @intent:rationale 実機の命令ROMへの書き込みは無効。例外ではなく警告にとどめ、実行を継続させる。
    def write(self, address: int, width: int, data: int) -> None:
        self.resolve(address, width)
        warnings.warn(f"Ignored write to instruction memory at {address:#010x}.")

# @intent:responsibility コアと2つのメモリを接続し、全アクセスを記録するバス。
# @intent:rationale バスの全てのアクセスを記録し、Snapshotに含めることでシステムの観測可能性を高めます。
class Bus:
    """
    命令メモリ（FETCHポート）とデータメモリ（READ/WRITEポート）へのアクセスを仲介するバス。
    読み出し結果は呼び出し側（コア）のポートレジスタに保持され、次のクロックで有効になります。
    """
    def __init__(self, rom: InstructionMemory, ram: WordMemory):
        if not isinstance(rom, WordMemory) or not isinstance(ram, WordMemory):
            raise TypeError("Bus requires WordMemory devices for both instruction and data ports.")
        self._rom = rom
        self._ram = ram
        self._bus_activity_log: List[BusAccess] = []

    @property
    def rom(self) -> InstructionMemory:
        return self._rom

    @property
    def ram(self) -> WordMemory:
        return self._ram

    def _log_access(self, access: BusAccess) -> None:
        self._bus_activity_log.append(access)

    # @intent:responsibility 記録されたバスアクティビティログを取得し、クリアします。
    def get_and_clear_activity_log(self) -> List[BusAccess]:
        log = self._bus_activity_log
        self._bus_activity_log = []
        return log

    # @intent:responsibility 命令メモリから1ワードを読み出します。
    def fetch(self, address: int) -> int:
        data = self._rom.read_word(address)
        self._log_access(BusAccess(address=address, data=data, access_type=BusAccessType.FETCH))
        return data

    # @intent:responsibility データメモリから width バイトを読み出します（符号拡張はコア側の責務）。
    def read(self, address: int, width: int) -> int:
        data = self._ram.read(address, width)
        self._log_access(BusAccess(address=address, data=data, access_type=BusAccessType.READ, width=width))
        return data

    # @intent:responsibility データメモリへ width バイトを書き込み、書き込み前のワードを記録します。
    def write(self, address: int, width: int, data: int) -> None:
        index, _ = self._ram.resolve(address, width)
        previous = self._ram.peek(index)
        masked = data & ((1 << (width * 8)) - 1)
        self._ram.write(address, width, masked)
        self._log_access(BusAccess(
            address=address, data=masked, access_type=BusAccessType.WRITE,
            width=width, previous_data=previous
        ))

    # @intent:responsibility ログを記録せずにデータメモリのワードを読み出します（UIなどのインスペクタ用）。
    def peek(self, index: int) -> int:
        return self._ram.peek(index)

    # @intent:responsibility ログを記録せずに命令メモリのワードを読み出します（逆アセンブラ用）。
    def peek_instruction(self, index: int) -> int:
        return self._rom.peek(index)

    # @intent:responsibility ログを記録せずにデータメモリのワードを書き換えます。
    def poke(self, index: int, data: int) -> None:
        self._ram.poke(index, data)
