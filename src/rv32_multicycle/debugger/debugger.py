# rv32_multicycle/debugger/debugger.py
"""
デバッガモジュール。

コアエンジンの実行をクロック単位または命令単位で制御し、ユーザーが指定した条件
（ブレークポイント）で実行を中断させる責務を負います。
"""
from dataclasses import dataclass
from enum import Enum
from collections import deque
from typing import Deque, List, Optional
import time
import copy

from rv32_multicycle.arch.rv32i.cpu import Rv32iCpu
from rv32_multicycle.arch.rv32i.state import ControlState, Rv32iCpuState
from rv32_multicycle.core.snapshot import Snapshot
from rv32_multicycle.transport.bus import BusAccess, BusAccessType

HISTORY_LIMIT = 100000 # 保持する履歴の最大クロック数

# @intent:responsibility ブレークポイントの条件タイプを定義します。
class BreakpointConditionType(Enum):
    PC_MATCH = "PC_MATCH"               # 指定アドレスの命令をフェッチしようとしている
    MEMORY_READ = "MEMORY_READ"         # データメモリの特定のアドレスが読み込まれた
    MEMORY_WRITE = "MEMORY_WRITE"       # データメモリの特定のアドレスに書き込まれた
    REGISTER_VALUE = "REGISTER_VALUE"   # 特定のレジスタが特定の値になった
    REGISTER_CHANGE = "REGISTER_CHANGE" # 特定のレジスタの値が変化した
    CONTROL_STATE = "CONTROL_STATE"     # 制御シーケンサが特定のステートに入った

# @intent:responsibility ブレークポイントをトリガーする条件を定義します。
@dataclass(frozen=True)
class BreakpointCondition:
    """
    ブレークポイントがヒットするための条件を定義するデータクラス。
    """
    condition_type: BreakpointConditionType
    value: Optional[int] = None           # PC_MATCH, REGISTER_VALUEで使用
    address: Optional[int] = None         # MEMORY_READ, MEMORY_WRITEで使用（バイトアドレス）
    register_name: Optional[str] = None   # REGISTER_VALUE, REGISTER_CHANGEで使用（"x5", "a0", "pc"）
    state: Optional[ControlState] = None  # CONTROL_STATEで使用
    enabled: bool = True                  # 有効/無効状態

    # @intent:rationale ブレークポイント条件は、一度設定したら変更されないため、不変にします（frozen=True）。

# @intent:utility_function バスアクセスが指定バイトアドレスを含むかどうかを判定します。
def _access_covers(access: BusAccess, address: int) -> bool:
    return access.address <= address < access.address + access.width

# @intent:responsibility コアエンジンの実行制御とブレークポイント管理を行います。
class Debugger:
    """
    CPUの実行を制御し、ブレークポイントの管理を行うクラス。
    1回のstep_cycle()が1クロック（1ステート遷移）に対応し、履歴もクロック単位で保持されます。
    """
    def __init__(self, cpu: Rv32iCpu, history_limit: int = HISTORY_LIMIT):
        self._cpu = cpu
        self._breakpoints: List[BreakpointCondition] = []
        self._running: bool = False
        self._previous_state: Rv32iCpuState = copy.deepcopy(self._cpu.get_state())
        self._last_snapshot: Optional[Snapshot] = None
        # @intent:responsibility 実行履歴を保持し、タイムトラベルデバッグをサポートします。
        # @intent:rationale 長時間のrun()でメモリが増え続けないよう、古いクロックから破棄する。
        self._history: Deque[Snapshot] = deque(maxlen=history_limit)
        # @intent:responsibility 履歴が尽きた時に戻るための初期状態を保持します。
        self._initial_state: Rv32iCpuState = copy.deepcopy(self._cpu.get_state())

    @property
    def is_running(self) -> bool:
        return self._running

    def add_breakpoint(self, condition: BreakpointCondition) -> None:
        """
        ブレークポイント条件を追加します。
        """
        if condition not in self._breakpoints:
            self._breakpoints.append(condition)

    def update_breakpoint(self, old_condition: BreakpointCondition, new_condition: BreakpointCondition) -> None:
        if old_condition in self._breakpoints:
            idx = self._breakpoints.index(old_condition)
            self._breakpoints[idx] = new_condition

    def remove_breakpoint(self, condition: BreakpointCondition) -> None:
        if condition in self._breakpoints:
            self._breakpoints.remove(condition)

    def get_breakpoints(self) -> List[BreakpointCondition]:
        return list(self._breakpoints)

    def get_history(self) -> List[Snapshot]:
        return list(self._history)

    def get_last_snapshot(self) -> Optional[Snapshot]:
        return self._last_snapshot

    # @intent:responsibility コアをリセットし、履歴を破棄して現在の状態を新しい起点にします。
    def reset(self) -> None:
        self._cpu.reset()
        self._history.clear()
        self._last_snapshot = None
        self._initial_state = copy.deepcopy(self._cpu.get_state())
        self._previous_state = copy.deepcopy(self._initial_state)

    # @intent:responsibility 次にフェッチされる命令のアドレスがPCブレークポイントに一致するかを判定します。
    def _check_pc_breakpoints(self, state: Rv32iCpuState) -> bool:
        if state.control is not ControlState.FETCH:
            return False
        for bp in self._breakpoints:
            if bp.enabled and bp.condition_type == BreakpointConditionType.PC_MATCH and bp.value == state.pc:
                return True
        return False

    def _check_other_breakpoints(self, snapshot: Snapshot) -> bool:
        """
        Snapshotに基づいてPC_MATCH以外のブレークポイントをチェックします。
        """
        current_state = snapshot.state

        for bp in self._breakpoints:
            if not bp.enabled:
                continue

            if bp.condition_type == BreakpointConditionType.MEMORY_READ:
                for access in snapshot.accesses(BusAccessType.READ):
                    if _access_covers(access, bp.address):
                        return True
            elif bp.condition_type == BreakpointConditionType.MEMORY_WRITE:
                for access in snapshot.accesses(BusAccessType.WRITE):
                    if _access_covers(access, bp.address):
                        return True
            elif bp.condition_type == BreakpointConditionType.REGISTER_VALUE:
                if bp.register_name:
                    if current_state.get_register_value(bp.register_name) == (bp.value & 0xFFFFFFFF):
                        return True
            elif bp.condition_type == BreakpointConditionType.REGISTER_CHANGE:
                if bp.register_name and self._previous_state:
                    if current_state.get_register_value(bp.register_name) != \
                            self._previous_state.get_register_value(bp.register_name):
                        return True
            elif bp.condition_type == BreakpointConditionType.CONTROL_STATE:
                if current_state.control is bp.state:
                    return True
        return False

    # @intent:responsibility CPUを1クロック進め、履歴に記録します。
    def step_cycle(self) -> Snapshot:
        self._previous_state = copy.deepcopy(self._cpu.get_state())
        snapshot = self._cpu.step()
        self._last_snapshot = snapshot

        # 履歴に追加。上限に達している場合、破棄される最古のクロック直後の状態が巻き戻しの起点になる
        if len(self._history) == self._history.maxlen:
            self._initial_state = self._history[0].state
        self._history.append(snapshot)

        return snapshot

    # @intent:responsibility 命令が1つリタイアする（またはコアが停止する）までクロックを進めます。
    def step_instruction(self) -> Snapshot:
        """
        CPUを1命令分実行し、最後のクロックのSnapshotを返します。
        REGISTER_CHANGEの比較対象は命令開始前の状態になります。
        """
        start_state = copy.deepcopy(self._cpu.get_state())
        while True:
            snapshot = self.step_cycle()
            if snapshot.metadata.retired or snapshot.metadata.halted:
                break
        self._previous_state = start_state
        return snapshot

    def step_back(self) -> Optional[Snapshot]:
        """
        実行履歴を1クロック戻り、CPUとデータメモリの状態を復元します。
        """
        if not self._history:
            return None

        # 1. 履歴から最新のスナップショットを取り出し、削除する
        snapshot_to_revert = self._history.pop()

        # 2. メモリ書き込みの取り消し (Undo)
        bus = self._cpu.bus
        for access in reversed(snapshot_to_revert.bus_activity):
            if access.access_type == BusAccessType.WRITE and access.previous_data is not None:
                index, _ = bus.ram.resolve(access.address, access.width)
                bus.poke(index, access.previous_data)

        # 3. CPU状態の復元
        if self._history:
            # 1つ前のスナップショットがあれば、その時点の状態に復元
            previous_snapshot = self._history[-1]
            self._cpu.restore_state(previous_snapshot.state)
            self._last_snapshot = previous_snapshot
            return previous_snapshot
        else:
            # 履歴が尽きた場合は初期状態に復元
            self._cpu.restore_state(self._initial_state)
            self._last_snapshot = None
            return None

    def run(self, max_cycles: Optional[int] = None) -> None:
        """
        ブレークポイント、コアの停止、stop()、またはクロック数の上限まで実行を継続します。
        開始時点のPCブレークポイントは無視されます（同じ場所で止まり続けないように）。
        """
        self._running = True
        cycles = 0
        first = True
        try:
            while self._running:
                time.sleep(0)

                if max_cycles is not None and cycles >= max_cycles:
                    return

                state = self._cpu.get_state()
                if not first and self._check_pc_breakpoints(state):
                    print(f"Breakpoint hit at PC: {state.pc:#010x}")
                    return
                first = False

                snapshot = self.step_cycle()
                cycles += 1

                if snapshot.metadata.halted:
                    print(f"Core halted at PC: {snapshot.state.pc:#010x}")
                    return

                if self._check_other_breakpoints(snapshot):
                    print(f"Breakpoint hit at PC: {snapshot.state.pc:#010x} ({snapshot.state.control.value})")
                    return
        finally:
            self._running = False

    def run_back(self) -> None:
        """
        CPUの実行を逆方向（過去）へ連続的に戻します。
        """
        self._running = True
        try:
            while self._running:
                time.sleep(0)

                # 1ステップ戻る
                snapshot = self.step_back()

                # 履歴が尽きたら停止
                if snapshot is None:
                    print("Reached start of history.")
                    return

                # 復元された状態に対してブレークポイントをチェック
                if self._check_pc_breakpoints(snapshot.state):
                    print(f"Reverse Breakpoint hit at PC: {snapshot.state.pc:#010x}")
                    return

                # 戻った時点のSnapshot（＝そのクロック実行直後の状態）で評価する
                if self._check_other_breakpoints(snapshot):
                    print(f"Reverse Breakpoint hit at PC: {snapshot.state.pc:#010x}")
                    return
        finally:
            self._running = False

    def stop(self) -> None:
        self._running = False
