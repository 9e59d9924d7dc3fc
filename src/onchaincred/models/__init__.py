"""Data models: credit events, score components, and score bundles."""

from onchaincred.models.events import (
    AttestationDetails,
    CanonicalEvents,
    CreditEvent,
    EventCategory,
    LendingAction,
    LendingDetails,
    RiskDetails,
    RiskType,
    StakingAction,
    StakingDetails,
    TransactionDetails,
)
from onchaincred.models.score import CreditScore, ScoreComponent

__all__ = [
    "AttestationDetails",
    "CanonicalEvents",
    "CreditEvent",
    "CreditScore",
    "EventCategory",
    "LendingAction",
    "LendingDetails",
    "RiskDetails",
    "RiskType",
    "ScoreComponent",
    "StakingAction",
    "StakingDetails",
    "TransactionDetails",
]
