"""
Operations package - Application service layer between entry points and the backup core.

This package provides the Operations facade that wires settings, store,
producer and orchestrator together, centralizes error mapping, and handles
output formatting while keeping the CLI and Lambda handler thin and testable.
"""
from .facade import Operations, OpsConfig
from .mappers import exit_code_for, run_and_exit

__all__ = ["Operations", "OpsConfig", "exit_code_for", "run_and_exit"]
