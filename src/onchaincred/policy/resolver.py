"""Policy resolver: loads and validates the scoring policy.

All scoring constants (category weights and ceilings, per-term caps, risk
penalties, recency windows, reason buckets) live in
``onchaincred/config/scoring_params.json``, shipped as package data.
Scoring code never hard-codes them; it asks the resolver.

Invariants checked at load time:
- Every EventCategory has a category entry.
- Category weights sum to 1.0.
- Category ceilings sum to max_total_score (risk included, it is the
  only subtractive term).
- Reason thresholds are ordered so that top-down evaluation is correct.
"""

from __future__ import annotations

import json
import logging
from importlib import resources
from pathlib import Path
from typing import Any, Mapping

from onchaincred.models.events import EventCategory, RiskType

logger = logging.getLogger(__name__)

PARAMS_FILE = "scoring_params.json"

SECONDS_PER_DAY = 24 * 60 * 60


class PolicyResolver:
    """Read-only view over the scoring policy.

    Usage:
        resolver = PolicyResolver.from_config_dir(Path("config"))
        resolver.category_ceiling(EventCategory.LENDING)   # 400
    """

    def __init__(self, params: Mapping[str, Any]) -> None:
        self._params = params
        self._validate()

    @classmethod
    def from_config_dir(cls, config_dir: Path) -> PolicyResolver:
        path = Path(config_dir) / PARAMS_FILE
        params = json.loads(path.read_text(encoding="utf-8"))
        logger.debug("Loaded scoring policy %s from %s", params.get("version"), path)
        return cls(params)

    @classmethod
    def default(cls) -> PolicyResolver:
        """Policy bundled with the package, independent of the working tree."""
        packaged = resources.files("onchaincred") / "config" / PARAMS_FILE
        return cls(json.loads(packaged.read_text(encoding="utf-8")))

    # ------------------------------------------------------------------
    # Categories
    # ------------------------------------------------------------------

    def max_total_score(self) -> int:
        return int(self._params["max_total_score"])

    def category_name(self, category: EventCategory) -> str:
        return self._category(category)["name"]

    def category_weight(self, category: EventCategory) -> float:
        return float(self._category(category)["weight"])

    def category_ceiling(self, category: EventCategory) -> int:
        return int(self._category(category)["max_score"])

    def category_weights(self) -> dict[EventCategory, float]:
        return {c: self.category_weight(c) for c in EventCategory}

    def category_ceilings(self) -> dict[EventCategory, int]:
        return {c: self.category_ceiling(c) for c in EventCategory}

    def reason_buckets(self, category: EventCategory) -> dict[str, Any]:
        """Return ``{"mode", "thresholds", "fallback"}`` for a category."""
        return dict(self._category(category)["reasons"])

    # ------------------------------------------------------------------
    # Formula parameters
    # ------------------------------------------------------------------

    def repayment_params(self) -> dict[str, float]:
        return {k: float(v) for k, v in self._params["repayment"].items()}

    def staking_params(self) -> dict[str, float]:
        return {k: float(v) for k, v in self._params["staking"].items()}

    def activity_params(self) -> dict[str, float]:
        return {k: float(v) for k, v in self._params["activity"].items()}

    def activity_windows(self) -> tuple[int, int]:
        """Return (recent, medium) window lengths in seconds."""
        p = self._params["activity"]
        return (
            int(p["recent_window_days"]) * SECONDS_PER_DAY,
            int(p["medium_window_days"]) * SECONDS_PER_DAY,
        )

    def attestation_points(self) -> float:
        return float(self._params["attestation"]["points_per_attestation"])

    def risk_penalties(self) -> dict[RiskType, float]:
        raw = self._params["risk"]["penalties"]
        return {RiskType(k): float(v) for k, v in raw.items()}

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _category(self, category: EventCategory) -> Mapping[str, Any]:
        return self._params["categories"][category.value]

    def _validate(self) -> None:
        categories = self._params.get("categories", {})
        missing = [c.value for c in EventCategory if c.value not in categories]
        if missing:
            raise ValueError(f"Scoring policy missing categories: {missing}")

        weight_sum = sum(float(categories[c.value]["weight"]) for c in EventCategory)
        if abs(weight_sum - 1.0) > 1e-9:
            raise ValueError(f"Category weights must sum to 1.0, got {weight_sum}")

        ceiling_sum = sum(int(categories[c.value]["max_score"]) for c in EventCategory)
        if ceiling_sum != self.max_total_score():
            raise ValueError(
                f"Category ceilings sum to {ceiling_sum}, "
                f"expected max_total_score {self.max_total_score()}"
            )

        for c in EventCategory:
            reasons = categories[c.value]["reasons"]
            bounds = [t[0] for t in reasons["thresholds"]]
            if reasons["mode"] == "at_least":
                ordered = bounds == sorted(bounds, reverse=True)
            elif reasons["mode"] == "at_most":
                ordered = bounds == sorted(bounds)
            else:
                raise ValueError(f"{c.value}: unknown reason mode {reasons['mode']!r}")
            if not ordered:
                raise ValueError(f"{c.value}: reason thresholds out of order: {bounds}")
