# rv32_multicycle/loader/loader.py
"""
プログラムローダーモジュール。
Intel HEX 形式と、1行1ワードの16進テキスト形式（$readmemh 形式）のロードをサポートします。
"""
from typing import Dict, Iterable, List

from rv32_multicycle.transport.bus import WordMemory, MASK32

NOP = 0x00000013

# @intent:utility_function ワードメモリの1バイトをログなしのバックドア経由で書き換えます。
def _poke_byte(memory: WordMemory, address: int, byte_data: int) -> None:
    index = address >> 2
    shift = (address & 0x3) * 8
    word = memory.peek(index)
    memory.poke(index, (word & ~(0xFF << shift) & MASK32) | ((byte_data & 0xFF) << shift))

class IntelHexLoader:
    """
    Intel HEX形式のファイルを解析し、データをワードメモリ（通常は命令メモリ）にロードするローダー。
    バイトはリトルエンディアンでワードに詰められます。
    """
    def load_intel_hex(self, file_path: str, memory: WordMemory) -> None:
        with open(file_path, 'r') as f:
            self.load_lines(f, memory)

    def load_lines(self, lines: Iterable[str], memory: WordMemory) -> None:
        current_extended_linear_address = 0x0000

        for line_num, line in enumerate(lines, 1):
            line = line.strip()
            if not line or not line.startswith(':'):
                continue

            comment_start = line.find(';')
            if comment_start != -1:
                line = line[:comment_start].strip()

            if len(line) < 11:
                raise ValueError(f"Invalid Intel HEX record format on line {line_num}: Too short - {line}")

            try:
                data_length = int(line[1:3], 16)
                address_field = int(line[3:7], 16)
                record_type = int(line[7:9], 16)
                data_part_str = line[9:-2]
                checksum_field = int(line[-2:], 16)

                if len(data_part_str) != data_length * 2:
                    raise ValueError(f"Data length mismatch on line {line_num}")

                data_bytes = [int(data_part_str[i*2:(i*2)+2], 16) for i in range(data_length)]
                checksum_sum = data_length + (address_field >> 8) + (address_field & 0xFF) + record_type + sum(data_bytes)
                calculated_checksum = (~checksum_sum + 1) & 0xFF
            except (ValueError, IndexError) as e:
                raise ValueError(f"Error parsing Intel HEX line {line_num}: {line} - {e}") from e

            if calculated_checksum != checksum_field:
                raise ValueError(f"Checksum mismatch on line {line_num}: Calculated {calculated_checksum:02X}, Expected {checksum_field:02X}")

            if record_type == 0x00:
                load_address = (current_extended_linear_address + address_field) & MASK32
                if load_address + data_length > memory.get_byte_size():
                    raise ValueError(
                        f"Intel HEX data on line {line_num} at {load_address:#010x} exceeds memory of {memory.get_byte_size()} bytes"
                    )
                for i, byte_data in enumerate(data_bytes):
                    _poke_byte(memory, load_address + i, byte_data)
            elif record_type == 0x01:
                break
            elif record_type == 0x04:
                current_extended_linear_address = int(data_part_str, 16) << 16
            elif record_type == 0x02:
                current_extended_linear_address = int(data_part_str, 16) << 4
            elif record_type == 0x03 or record_type == 0x05:
                pass # 開始アドレスはリセット後PC=0固定のため無視
            else:
                raise ValueError(f"Unknown Intel HEX record type {record_type:02X} on line {line_num}")

class HexWordLoader:
    """
    1行に1つの32bit 16進ワードを記述したテキストを読み込むローダー。
    `//` と `#` 以降はコメント、`@<hex>` で配置先のワードインデックスを変更します。
    """
    def load_words(self, file_path: str, fill: int = NOP) -> List[int]:
        with open(file_path, 'r') as f:
            return self.parse_lines(f, fill)

    # @intent:responsibility テキスト行を解析し、インデックス0から始まる密なワード列を返します。
    # @intent:rationale 間に空きがある場合は fill で埋める（命令メモリの未使用部分と同じNOP）。
    def parse_lines(self, lines: Iterable[str], fill: int = NOP) -> List[int]:
        placed: Dict[int, int] = {}
        index = 0

        for line_num, line in enumerate(lines, 1):
            for marker in ("//", "#"):
                pos = line.find(marker)
                if pos != -1:
                    line = line[:pos]
            for token in line.split():
                is_address = token.startswith('@')
                try:
                    value = int(token[1:] if is_address else token, 16)
                except ValueError as e:
                    raise ValueError(f"Invalid hex word on line {line_num}: {token}") from e
                if is_address:
                    if value < 0:
                        raise ValueError(f"Negative word index on line {line_num}: {token}")
                    index = value
                    continue
                if not 0 <= value <= MASK32:
                    raise ValueError(f"Value on line {line_num} does not fit in 32 bits: {token}")
                placed[index] = value
                index += 1

        if not placed:
            return []
        words = [fill & MASK32] * (max(placed) + 1)
        for i, value in placed.items():
            words[i] = value
        return words
