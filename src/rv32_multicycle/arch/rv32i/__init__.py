# src/rv32_multicycle/arch/rv32i/__init__.py
"""
RV32I Multicycle Architecture Package
"""
from .cpu import Rv32iCpu, IllegalInstructionPolicy
from .state import Rv32iCpuState, ControlState
from .soc import MulticycleSoc
