"""Per-category score calculators.

Each calculator is a pure function from credit events to a bounded
sub-score plus a reason string:

    Repayment    min(repaid/borrowed * 300, 300) + onTime/payments * 100   <= 400
    Staking      min(staked/10 * 150, 150) + min(avgDuration/year * 100, 100)  <= 250
    Activity     min(recent*10 + medium*5, 100) + min(volume/100 * 100, 100)   <= 200
    Attestation  min(count * 20, 100)                                        <= 100
    Risk         min(sum of per-type penalties, 50)                          <= 50

All constants come from the PolicyResolver. No calculator raises on empty
input; absence of activity scores 0 with the lowest-bucket reason.
Calculators filter by category themselves, so each can be handed the
full event list.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping, NamedTuple, Sequence

from onchaincred.models.events import (
    CreditEvent,
    EventCategory,
    LendingAction,
    StakingAction,
)
from onchaincred.policy.resolver import PolicyResolver


class ComponentResult(NamedTuple):
    score: float
    reason: str


@dataclass(frozen=True)
class ReasonTable:
    """Ordered (bound, text) buckets evaluated top-down.

    ``at_least``: first bucket with score >= bound wins.
    ``at_most``:  first bucket with score <= bound wins.
    Scores matching no bucket get ``fallback``.
    """
    mode: str
    thresholds: tuple[tuple[float, str], ...]
    fallback: str

    @classmethod
    def from_policy(cls, buckets: Mapping[str, Any]) -> ReasonTable:
        return cls(
            mode=buckets["mode"],
            thresholds=tuple((float(b), str(t)) for b, t in buckets["thresholds"]),
            fallback=buckets["fallback"],
        )

    def reason_for(self, score: float) -> str:
        for bound, text in self.thresholds:
            if self.mode == "at_least" and score >= bound:
                return text
            if self.mode == "at_most" and score <= bound:
                return text
        return self.fallback

    def lowest(self) -> str:
        """Reason text for a zero score."""
        return self.reason_for(0.0)


def _of(events: Sequence[CreditEvent], category: EventCategory) -> list[CreditEvent]:
    return [e for e in events if e.category == category]


def _result(
    category: EventCategory,
    score: float,
    resolver: PolicyResolver,
) -> ComponentResult:
    score = max(0.0, min(score, float(resolver.category_ceiling(category))))
    table = ReasonTable.from_policy(resolver.reason_buckets(category))
    return ComponentResult(score=score, reason=table.reason_for(score))


def repayment_score(
    events: Sequence[CreditEvent],
    resolver: PolicyResolver,
) -> ComponentResult:
    """Score lending history by repaid ratio and on-time share.

    Repayments of value 0 carry no timeliness signal and are not counted
    as payments.
    """
    params = resolver.repayment_params()
    lending = _of(events, EventCategory.LENDING)

    total_borrowed = 0.0
    total_repaid = 0.0
    on_time = 0
    payments = 0
    for event in lending:
        if event.details.action == LendingAction.BORROW:
            total_borrowed += event.value
        elif event.details.action == LendingAction.REPAY:
            total_repaid += event.value
            if event.value > 0:
                payments += 1
                if event.details.on_time:
                    on_time += 1

    if total_borrowed == 0:
        return _result(EventCategory.LENDING, 0.0, resolver)

    ratio_points = params["ratio_points"]
    score = min((total_repaid / total_borrowed) * ratio_points, ratio_points)
    if payments > 0:
        score += (on_time / payments) * params["on_time_points"]

    return _result(EventCategory.LENDING, score, resolver)


def staking_score(
    events: Sequence[CreditEvent],
    resolver: PolicyResolver,
) -> ComponentResult:
    """Score staked amount and average stake duration.

    The average duration is taken over every staking event, so unstake
    events dilute it.
    """
    params = resolver.staking_params()
    staking = _of(events, EventCategory.STAKING)
    if not staking:
        return _result(EventCategory.STAKING, 0.0, resolver)

    total_staked = 0.0
    total_duration = 0.0
    for event in staking:
        if event.details.action == StakingAction.STAKE:
            total_staked += event.value
            total_duration += event.details.duration
    average_duration = total_duration / len(staking)

    amount_points = params["amount_points"]
    duration_points = params["duration_points"]
    amount_score = min((total_staked / params["amount_scale"]) * amount_points, amount_points)
    duration_score = min(
        (average_duration / params["duration_scale_seconds"]) * duration_points,
        duration_points,
    )
    return _result(EventCategory.STAKING, amount_score + duration_score, resolver)


def activity_score(
    events: Sequence[CreditEvent],
    resolver: PolicyResolver,
    now: int,
) -> ComponentResult:
    """Score transaction frequency (recency-weighted) and volume.

    ``now`` is the snapshot timestamp, never wall-clock time.
    """
    params = resolver.activity_params()
    recent_window, medium_window = resolver.activity_windows()
    transactions = _of(events, EventCategory.TRANSACTION)
    if not transactions:
        return _result(EventCategory.TRANSACTION, 0.0, resolver)

    recent_cutoff = now - recent_window
    medium_cutoff = now - medium_window
    recent = 0
    medium = 0
    total_volume = 0.0
    for event in transactions:
        total_volume += event.value
        if event.timestamp >= recent_cutoff:
            recent += 1
        elif event.timestamp >= medium_cutoff:
            medium += 1

    frequency_score = min(
        recent * params["recent_points"] + medium * params["medium_points"],
        params["frequency_cap"],
    )
    volume_points = params["volume_points"]
    volume_score = min((total_volume / params["volume_scale"]) * volume_points, volume_points)
    return _result(EventCategory.TRANSACTION, frequency_score + volume_score, resolver)


def attestation_score(
    events: Sequence[CreditEvent],
    resolver: PolicyResolver,
) -> ComponentResult:
    count = len(_of(events, EventCategory.ATTESTATION))
    return _result(
        EventCategory.ATTESTATION, count * resolver.attestation_points(), resolver,
    )


def risk_score(
    events: Sequence[CreditEvent],
    resolver: PolicyResolver,
) -> ComponentResult:
    """Sum per-type penalties. Unknown risk types contribute nothing."""
    penalties = resolver.risk_penalties()
    total = sum(
        penalties.get(e.details.risk_type, 0.0)
        for e in _of(events, EventCategory.RISK)
    )
    return _result(EventCategory.RISK, total, resolver)


def compute_component(
    category: EventCategory,
    events: Sequence[CreditEvent],
    resolver: PolicyResolver,
    now: int,
) -> ComponentResult:
    """Dispatch to the calculator for ``category``."""
    if category == EventCategory.LENDING:
        return repayment_score(events, resolver)
    if category == EventCategory.STAKING:
        return staking_score(events, resolver)
    if category == EventCategory.TRANSACTION:
        return activity_score(events, resolver, now)
    if category == EventCategory.ATTESTATION:
        return attestation_score(events, resolver)
    return risk_score(events, resolver)
