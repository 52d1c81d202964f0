from .decision import DecisionConfig, make_trade_decision, size_multiplier

__all__ = ["DecisionConfig", "make_trade_decision", "size_multiplier"]
