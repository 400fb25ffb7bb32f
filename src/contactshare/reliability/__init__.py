"""
Reliability module initialization
"""

from .timeout_manager import (
    TimeoutCategory,
    TimeoutConfig,
    OperationTimeoutError,
    TimeoutManager,
    get_timeout_manager,
)

__all__ = [
    "TimeoutCategory",
    "TimeoutConfig",
    "OperationTimeoutError",
    "TimeoutManager",
    "get_timeout_manager",
]
