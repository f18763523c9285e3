"""
Strategy Vault - Purchase-Gated Trading Strategy Execution

Sells trading strategies as encrypted payloads: a purchase grants the buyer
and the executor identity read access, and the execution orchestrator runs
owned strategies on a remote executor and reports task status.
"""

__version__ = "0.1.0"
__author__ = "Strategy Vault Team"
