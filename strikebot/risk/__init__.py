# Risk limits and exit management
from .exit_policy import ExitConfig, ExitInstruction, ExitPolicy
from .manager import RiskCheckResult, RiskLimits, RiskManager

__all__ = [
    "ExitConfig",
    "ExitInstruction",
    "ExitPolicy",
    "RiskCheckResult",
    "RiskLimits",
    "RiskManager",
]
