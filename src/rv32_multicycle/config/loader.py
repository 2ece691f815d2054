import yaml
from typing import Dict, Any
from .models import SystemConfig, MemoryRegion, CpuInitialState

class ConfigLoader:
    def load_from_file(self, path: str) -> SystemConfig:
        with open(path, 'r') as f:
            data = yaml.safe_load(f)
        return self.load_from_dict(data or {})

    def load_from_string(self, text: str) -> SystemConfig:
        return self.load_from_dict(yaml.safe_load(text) or {})

    def load_from_dict(self, data: Dict[str, Any]) -> SystemConfig:
        if not isinstance(data, dict):
            raise ValueError("Configuration root must be a mapping.")
        return self._parse_config(data)

    def _parse_config(self, data: Dict[str, Any]) -> SystemConfig:
        arch = str(data.get("architecture", "RV32I")).upper()

        # Parse Memory Map
        memory_map = []
        for region_data in data.get("memory_map", []):
            start = self._parse_int(region_data.get("start"))
            end = self._parse_int(region_data.get("end"))
            rtype = str(region_data.get("type", "RAM")).upper()
            label = region_data.get("label", "")

            memory_map.append(MemoryRegion(
                start=start,
                end=end,
                type=rtype,
                label=label
            ))

        # Parse Initial State
        initial_state_data = data.get("initial_state", {}) or {}
        registers = {
            str(name): self._parse_int(value)
            for name, value in (initial_state_data.get("registers", {}) or {}).items()
        }
        data_words = {
            self._parse_int(index): self._parse_int(value)
            for index, value in (initial_state_data.get("data", {}) or {}).items()
        }
        initial_state = CpuInitialState(registers=registers, data=data_words)

        program = [self._parse_int(word) for word in data.get("program", []) or []]

        policy = str(data.get("illegal_instruction", "halt")).lower()
        if policy not in ("halt", "raise"):
            raise ValueError(f"Unknown illegal_instruction policy: {policy}")

        return SystemConfig(
            architecture=arch,
            memory_map=memory_map,
            cycle_limit=self._parse_int(data.get("cycle_limit", 50)),
            fill_word=self._parse_int(data.get("fill_word", 0x00000013)),
            illegal_instruction=policy,
            initial_state=initial_state,
            program=program
        )

    def _parse_int(self, value: Any) -> int:
        if isinstance(value, bool):
            raise ValueError(f"Invalid integer format: {value}")
        if isinstance(value, int):
            return value
        if isinstance(value, str):
            value = value.strip()
            if value.lower().startswith("0x"):
                return int(value, 16)
            if value.lower().startswith("-0x"):
                return -int(value[1:], 16)
            return int(value)
        raise ValueError(f"Invalid integer format: {value}")
