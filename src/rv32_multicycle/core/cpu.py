# rv32_multicycle/core/cpu.py
"""
Core Layer (抽象CPU)

このモジュールは、CPUの状態管理とクロック駆動に関する抽象化を提供します。
各クロックステップで制御ステートが1つ遷移するマルチサイクル実行を前提とし、
ステートごとの具体的な振る舞いはアーキテクチャ層に委譲されます。
"""
from abc import ABC, abstractmethod
from typing import Optional, List, Dict, Tuple
import copy

from rv32_multicycle.transport.bus import Bus
from rv32_multicycle.core.snapshot import Snapshot, Operation, Metadata
from rv32_multicycle.core.state import CpuState
from rv32_multicycle.common.types import RegisterLayoutInfo

# @intent:responsibility 抽象CPUの基本機能とインターフェースを定義します。
class AbstractCpu(ABC):
    """
    全てのCPUエミュレーションの基底となる抽象クラス。
    Busとのインターフェース、リセット入力、状態管理、クロックステップの抽象化を提供します。
    """
    # @intent:responsibility CPUの状態とバスへの参照を初期化します。
    # @intent:pre-condition `bus`は有効なBusオブジェクトである必要があります。
    def __init__(self, bus: Bus):
        self._bus = bus
        self._state: CpuState = self._create_initial_state()
        self._reset_asserted: bool = False
        # @intent:rationale Stateオブジェクトの直接操作を避けるため、protectedな命名規則を採用。
        #                  外部からのアクセスは`get_state()`メソッドを介して行う。

    # @intent:responsibility デバッガがメモリ書き込みを巻き戻すために接続先のバスを公開します。
    @property
    def bus(self) -> Bus:
        return self._bus

    # @intent:responsibility 初期状態のCpuStateオブジェクトを生成します。
    @abstractmethod
    def _create_initial_state(self) -> CpuState:
        """
        CPUの初期状態を生成して返します。
        具体的なCPUアーキテクチャはこのメソッドを実装し、
        そのアーキテクチャに特化したCpuStateのサブクラスを返します。
        """
        pass

    # @intent:responsibility CPUをリセットし、初期状態に戻します。
    def reset(self) -> None:
        """
        PC、レジスタ、制御ステートを含む全ての状態を初期値に戻します。
        メモリの内容はリセットの対象外です。
        """
        self._state = self._create_initial_state()

    # @intent:responsibility リセット入力の状態を設定します。
    def set_reset(self, asserted: bool) -> None:
        """
        リセット入力がアサートされている間、step()は状態を初期状態に保持し続けます。
        """
        self._reset_asserted = asserted

    def is_reset_asserted(self) -> bool:
        return self._reset_asserted

    # @intent:responsibility 現在のCPUの状態を返します。
    def get_state(self) -> CpuState:
        return self._state

    # @intent:responsibility 外部から与えられた状態（Snapshotの記録など）をCPUに復元します。
    # @intent:rationale 呼び出し元が保持する状態オブジェクトとの共有を避けるため、深いコピーを取る。
    def restore_state(self, state: CpuState) -> None:
        self._state = copy.deepcopy(state)

    # @intent:responsibility 現在の制御ステートのフェーズ名を返します。
    @abstractmethod
    def _current_phase(self) -> str:
        pass

    # @intent:responsibility 現在の制御ステートに対応する処理を1つ実行し、次のステートへ遷移します。
    # @intent:return このステップで命令がリタイアした場合True。
    @abstractmethod
    def _clock(self) -> bool:
        pass

    # @intent:responsibility 処理中の命令の表示用情報を返します。デコード前はNone。
    @abstractmethod
    def _current_operation(self) -> Optional[Operation]:
        pass

    # @intent:responsibility 処理中の命令が置かれているアドレスを返します。
    # @intent:rationale 命令の完了時にはPCが次の命令へ進んでいるため、アーキテクチャ側で命令自身のアドレスを保持する。
    def _current_instruction_address(self) -> int:
        return self._state.pc

    # @intent:responsibility これまでにリタイアした命令数を返します。
    def _instruction_count(self) -> int:
        return 0

    # @intent:responsibility CPUを1クロック進め、その結果のスナップショットを返します。
    # @intent:rationale Template Methodパターンを採用し、共通の実行フロー
    #                  （ログクリア→リセット判定→HALT判定→ステート処理→Snapshot生成）を定義します。
    def step(self) -> Snapshot:
        """
        1クロックステップを実行し、その時点でのCPUとバスの状態を含むSnapshotを返します。
        ステート処理中に例外が発生した場合、制御ステートは遷移しません。
        """
        # 1. 前処理: 前サイクルまでの残存ログを破棄
        self._bus.get_and_clear_activity_log()

        # 2. リセット入力
        if self._reset_asserted:
            self.reset()
            return self._create_snapshot("RESET", retired=False)

        # 3. HALT判定 (Hook)
        halt_snapshot = self._handle_halt()
        if halt_snapshot:
            return halt_snapshot

        # 4. ステート処理
        phase = self._current_phase()
        retired = self._clock()
        self._state.cycle += 1

        # 5. 後処理 & Snapshot生成
        return self._create_snapshot(phase, retired)

    # @intent:responsibility HALT状態の場合の処理を行います。
    # @intent:return HALT中であればその状態のSnapshot、そうでなければNone。
    def _handle_halt(self) -> Optional[Snapshot]:
        """
        HALT状態の場合の処理。デフォルトは何もしない（Noneを返す）。
        """
        return None

    # @intent:responsibility スナップショットを生成します。
    def _create_snapshot(self, phase: str, retired: bool, halted: bool = False) -> Snapshot:
        """
        実行結果からSnapshotオブジェクトを生成する共通ロジック。
        """
        bus_activity = self._bus.get_and_clear_activity_log()
        operation = self._current_operation()
        symbol_info = f"{self._current_instruction_address():#010x}: {operation.text}" if operation else None

        return Snapshot(
            # 以後のステップで状態が書き換わってもSnapshotが変化しないよう、コピーを記録する
            state=copy.deepcopy(self._state),
            operation=operation,
            metadata=Metadata(
                cycle_count=self._state.cycle,
                instruction_count=self._instruction_count(),
                phase=phase,
                retired=retired,
                halted=halted,
                symbol_info=symbol_info,
            ),
            bus_activity=bus_activity
        )

    @abstractmethod
    def get_register_map(self) -> Dict[str, int]:
        """
        現在のレジスタ値を辞書形式で返す。
        UIがCPUの内部構造を知らなくても値を表示できるようにするために使用される。
        """
        pass

    @abstractmethod
    def get_register_layout(self) -> List[RegisterLayoutInfo]:
        """
        レジスタをUI上でどのように配置・グループ化すべきかの定義を返す。
        """
        pass

    @abstractmethod
    def disassemble(self, start_addr: int, length: int) -> List[Tuple[int, str, str]]:
        """
        指定されたメモリ範囲を逆アセンブルし、(address, hex_bytes, mnemonic) のタプルリストを返す。
        """
        pass
