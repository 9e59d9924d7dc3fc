"""Score component and signed score bundle models.

A scoring run produces five ScoreComponents and one CreditScore bundle.
Both are immutable snapshots. The bundle is the unit handed to external
consumers: the anchor registry reads (user, merkle_root, timestamp,
signature) and proof verifiers read individual leaves.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Any, Mapping

from onchaincred.models.events import EventCategory


@dataclass(frozen=True)
class ScoreComponent:
    """One named, weighted sub-score.

    ``reason`` is chosen solely from the bucket ``score`` falls into.
    ``weight`` is the category's fractional share of the total and is
    informational; aggregation sums raw sub-scores.
    """
    name: str
    category: EventCategory
    score: float
    weight: float
    reason: str
    max_score: int

    @property
    def leaf_score(self) -> int:
        """Integer committed as ``uint256`` in the Merkle leaf (floored)."""
        return int(math.floor(self.score))

    @property
    def is_penalty(self) -> bool:
        return self.category == EventCategory.RISK

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "category": self.category.value,
            "score": self.score,
            "weight": self.weight,
            "reason": self.reason,
            "maxScore": self.max_score,
        }

    @classmethod
    def from_dict(cls, raw: Mapping[str, Any]) -> ScoreComponent:
        return cls(
            name=raw["name"],
            category=EventCategory(raw["category"]),
            score=float(raw["score"]),
            weight=float(raw["weight"]),
            reason=raw["reason"],
            max_score=int(raw["maxScore"]),
        )


@dataclass(frozen=True)
class CreditScore:
    """Signed score bundle for one wallet at one snapshot time.

    ``proof_leaves`` holds every leaf (in component order) so that any
    single component can be proven against ``merkle_root`` later.
    """
    total_score: float
    components: tuple[ScoreComponent, ...]
    timestamp: int
    user_address: str
    merkle_root: str
    proof_leaves: tuple[str, ...]
    indexer_signature: str

    def __post_init__(self) -> None:
        object.__setattr__(self, "components", tuple(self.components))
        object.__setattr__(self, "proof_leaves", tuple(self.proof_leaves))

    def component(self, category: EventCategory) -> ScoreComponent:
        for c in self.components:
            if c.category == category:
                return c
        raise KeyError(category.value)

    def to_dict(self) -> dict[str, Any]:
        """Wire shape for persistence and transmission (camelCase keys)."""
        return {
            "totalScore": self.total_score,
            "components": [c.to_dict() for c in self.components],
            "timestamp": self.timestamp,
            "userAddress": self.user_address,
            "merkleRoot": self.merkle_root,
            "proofLeaves": list(self.proof_leaves),
            "indexerSignature": self.indexer_signature,
        }

    @classmethod
    def from_dict(cls, raw: Mapping[str, Any]) -> CreditScore:
        return cls(
            total_score=float(raw["totalScore"]),
            components=tuple(ScoreComponent.from_dict(c) for c in raw["components"]),
            timestamp=int(raw["timestamp"]),
            user_address=raw["userAddress"],
            merkle_root=raw["merkleRoot"],
            proof_leaves=tuple(raw["proofLeaves"]),
            indexer_signature=raw["indexerSignature"],
        )
