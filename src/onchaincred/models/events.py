"""Credit event data models.

Events arrive from the external indexer already normalised into five
behavioural categories. Each category reads a different subset of the
indexer's metadata, so every event carries a typed details variant:

- lending      -> LendingDetails(action, on_time)
- staking      -> StakingDetails(action, duration)
- risk         -> RiskDetails(risk_type)
- attestation  -> AttestationDetails(attester)
- transaction  -> TransactionDetails()

The raw metadata mapping is preserved read-only for provenance, but the
scoring functions only ever read the typed details.

Events are immutable. The scoring core never mutates them.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Mapping, Optional, Union


class EventCategory(str, enum.Enum):
    """Behavioural category assigned by the indexer."""
    TRANSACTION = "transaction"
    STAKING = "staking"
    LENDING = "lending"
    ATTESTATION = "attestation"
    RISK = "risk"


class LendingAction(str, enum.Enum):
    BORROW = "borrow"
    REPAY = "repay"


class StakingAction(str, enum.Enum):
    STAKE = "stake"
    UNSTAKE = "unstake"


class RiskType(str, enum.Enum):
    LATE_PAYMENT = "late_payment"
    HIGH_LEVERAGE = "high_leverage"
    SUSPICIOUS_ACTIVITY = "suspicious_activity"


@dataclass(frozen=True)
class LendingDetails:
    action: Optional[LendingAction] = None
    on_time: bool = False


@dataclass(frozen=True)
class StakingDetails:
    action: Optional[StakingAction] = None
    duration: float = 0.0  # seconds


@dataclass(frozen=True)
class RiskDetails:
    risk_type: Optional[RiskType] = None


@dataclass(frozen=True)
class AttestationDetails:
    attester: Optional[str] = None


@dataclass(frozen=True)
class TransactionDetails:
    pass


EventDetails = Union[
    LendingDetails,
    StakingDetails,
    RiskDetails,
    AttestationDetails,
    TransactionDetails,
]

_DETAILS_BY_CATEGORY: dict[EventCategory, type] = {
    EventCategory.LENDING: LendingDetails,
    EventCategory.STAKING: StakingDetails,
    EventCategory.RISK: RiskDetails,
    EventCategory.ATTESTATION: AttestationDetails,
    EventCategory.TRANSACTION: TransactionDetails,
}


def _enum_or_none(enum_cls: type[enum.Enum], raw: Any) -> Any:
    """Map a raw metadata string onto an enum member; unknown values -> None."""
    if raw is None:
        return None
    try:
        return enum_cls(raw)
    except ValueError:
        return None


def details_from_metadata(
    category: EventCategory,
    metadata: Mapping[str, Any],
) -> EventDetails:
    """Build the typed details variant for a category from indexer metadata.

    Metadata keys follow the indexer's wire format (camelCase):
    ``action``, ``onTime``, ``duration``, ``riskType``, ``attester``.
    Unrecognised action or risk-type strings become ``None`` so that the
    event is still scoreable (it simply contributes nothing).
    """
    if category == EventCategory.LENDING:
        return LendingDetails(
            action=_enum_or_none(LendingAction, metadata.get("action")),
            on_time=bool(metadata.get("onTime", False)),
        )
    if category == EventCategory.STAKING:
        return StakingDetails(
            action=_enum_or_none(StakingAction, metadata.get("action")),
            duration=float(metadata.get("duration") or 0),
        )
    if category == EventCategory.RISK:
        return RiskDetails(
            risk_type=_enum_or_none(RiskType, metadata.get("riskType")),
        )
    if category == EventCategory.ATTESTATION:
        return AttestationDetails(attester=metadata.get("attester"))
    return TransactionDetails()


@dataclass(frozen=True)
class CreditEvent:
    """One observed behavioural fact about a wallet.

    ``weight`` is a category-local multiplier reserved for future formulas;
    the default scoring functions do not read it.
    """
    category: EventCategory
    timestamp: int
    value: float
    weight: float = 1.0
    details: Optional[EventDetails] = None
    metadata: Mapping[str, Any] = field(default_factory=dict, compare=False)

    def __post_init__(self) -> None:
        if self.value < 0:
            raise ValueError(f"Event value must be non-negative, got {self.value}")
        object.__setattr__(self, "metadata", MappingProxyType(dict(self.metadata)))
        expected = _DETAILS_BY_CATEGORY[self.category]
        if self.details is None:
            object.__setattr__(
                self, "details", details_from_metadata(self.category, self.metadata),
            )
        elif not isinstance(self.details, expected):
            raise TypeError(
                f"{self.category.value} event requires {expected.__name__}, "
                f"got {type(self.details).__name__}"
            )

    @classmethod
    def from_dict(cls, raw: Mapping[str, Any]) -> CreditEvent:
        """Parse one event from the indexer's JSON shape.

        Accepts either ``category`` or the indexer's ``type`` key.
        Raises ValueError for an unknown category.
        """
        category_raw = raw.get("category", raw.get("type"))
        try:
            category = EventCategory(category_raw)
        except ValueError:
            raise ValueError(f"Unknown event category: {category_raw!r}") from None

        return cls(
            category=category,
            timestamp=int(raw["timestamp"]),
            value=float(raw.get("value", 0)),
            weight=float(raw.get("weight", 1.0)),
            metadata=dict(raw.get("metadata") or {}),
        )


@dataclass(frozen=True)
class CanonicalEvents:
    """The indexer's output for one wallet: its events plus a snapshot time.

    ``timestamp`` is the scoring reference time. It is the "now" used for
    recency windows and the timestamp committed in the signed bundle.
    """
    user_address: str
    events: tuple[CreditEvent, ...]
    timestamp: int

    def __post_init__(self) -> None:
        object.__setattr__(self, "events", tuple(self.events))

    def of_category(self, category: EventCategory) -> list[CreditEvent]:
        return [e for e in self.events if e.category == category]

    @classmethod
    def from_dict(cls, raw: Mapping[str, Any]) -> CanonicalEvents:
        return cls(
            user_address=raw["userAddress"],
            events=tuple(CreditEvent.from_dict(e) for e in raw.get("events", [])),
            timestamp=int(raw["timestamp"]),
        )
