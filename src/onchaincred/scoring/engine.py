"""Credit score engine: events in, signed score bundle out.

Pipeline for one wallet:

    CanonicalEvents -> five ScoreComponents -> total score
                    -> Merkle leaves -> root
    (user, root, timestamp) -> signature
    -> CreditScore bundle

Aggregation:
    total = clamp(repayment + staking + activity + attestation - risk, 0, 1000)

Risk is the only subtractive term. Clamping happens once, on the total.

The engine is key-free. The signing capability is passed into
``compute_score`` for the one call that needs it and is never stored.
"""

from __future__ import annotations

import logging
from typing import Optional, Sequence

from onchaincred.crypto.merkle import MerkleTree
from onchaincred.crypto.signer import BundleSigner, SigningCapability
from onchaincred.models.events import CanonicalEvents, EventCategory
from onchaincred.models.score import CreditScore, ScoreComponent
from onchaincred.policy.resolver import PolicyResolver
from onchaincred.scoring.components import compute_component

logger = logging.getLogger(__name__)

# Component order is part of the commitment: leaf i is component i.
COMPONENT_ORDER = (
    EventCategory.LENDING,
    EventCategory.STAKING,
    EventCategory.TRANSACTION,
    EventCategory.ATTESTATION,
    EventCategory.RISK,
)


def aggregate(components: Sequence[ScoreComponent], max_total: float = 1000) -> float:
    """Combine sub-scores into the clamped total."""
    total = 0.0
    for component in components:
        if component.is_penalty:
            total -= component.score
        else:
            total += component.score
    return max(0.0, min(total, float(max_total)))


class CreditScoreEngine:
    """Computes deterministic credit scores and their commitments.

    Usage:
        engine = CreditScoreEngine(PolicyResolver.default())
        bundle = engine.compute_score(events, LocalKeySigner(key))
    """

    def __init__(
        self,
        resolver: PolicyResolver,
        tree: Optional[MerkleTree] = None,
        signer: Optional[BundleSigner] = None,
    ) -> None:
        self._resolver = resolver
        self._tree = tree or MerkleTree()
        self._signer = signer or BundleSigner()

    @property
    def tree(self) -> MerkleTree:
        return self._tree

    def compute_components(self, canonical: CanonicalEvents) -> list[ScoreComponent]:
        """Score every category, in commitment order."""
        components: list[ScoreComponent] = []
        for category in COMPONENT_ORDER:
            result = compute_component(
                category, canonical.events, self._resolver, canonical.timestamp,
            )
            components.append(ScoreComponent(
                name=self._resolver.category_name(category),
                category=category,
                score=result.score,
                weight=self._resolver.category_weight(category),
                reason=result.reason,
                max_score=self._resolver.category_ceiling(category),
            ))
        return components

    def total_score(self, components: Sequence[ScoreComponent]) -> float:
        return aggregate(components, self._resolver.max_total_score())

    def compute_score(
        self,
        canonical: CanonicalEvents,
        capability: SigningCapability,
    ) -> CreditScore:
        """Run the full pipeline and return the signed bundle.

        Raises SigningFailure if the capability fails. Nothing is retried.
        """
        components = self.compute_components(canonical)
        total = self.total_score(components)

        leaves = self._tree.build_leaves(components, canonical.user_address)
        root = self._tree.generate_root(leaves)

        signature = self._signer.sign(
            canonical.user_address, root, canonical.timestamp, capability,
        )

        logger.info(
            "Scored %s: total=%.2f root=%s events=%d",
            canonical.user_address, total, root, len(canonical.events),
        )
        return CreditScore(
            total_score=total,
            components=tuple(components),
            timestamp=canonical.timestamp,
            user_address=canonical.user_address,
            merkle_root=root,
            proof_leaves=tuple(leaves),
            indexer_signature=signature,
        )
