"""Credit scoring: per-category calculators and the score engine."""

from onchaincred.scoring.engine import CreditScoreEngine, aggregate

__all__ = ["CreditScoreEngine", "aggregate"]
