"""
Strategy definitions, builder and registry.
"""
from .builder import StrategyBuilder
from .catalog import StrategyRegistry, default_registry, register_strategy
from .definition import PAYLOAD_VERSION, StrategyDefinition, ValidationRules, validate_config
from .models import (
    ExecutionMode,
    OperationType,
    RiskLevel,
    StrategyConfig,
    StrategyOperation,
    ValidationResult,
)

__all__ = [
    "PAYLOAD_VERSION",
    "ExecutionMode",
    "OperationType",
    "RiskLevel",
    "StrategyBuilder",
    "StrategyConfig",
    "StrategyDefinition",
    "StrategyOperation",
    "StrategyRegistry",
    "ValidationResult",
    "ValidationRules",
    "default_registry",
    "register_strategy",
    "validate_config",
]
