"""Reward pool arithmetic.

All amounts are integers in the token's base units (wei). Division is floor
division and whatever does not divide evenly stays in the pool: it is never
rounded up and never handed to an arbitrary winner, so the sum of all
allocations can not exceed the pool.

Slots are 0-based here: slot 0 is the first finisher to claim a place.
"""
from dataclasses import dataclass
from typing import Iterable, List, Optional, Tuple

from app.core.constants import PERCENT_DENOMINATOR


@dataclass(frozen=True)
class RewardTier:
    tier: int
    winner_count: int
    percentage: int
    name: str = ""

    def to_dict(self) -> dict:
        return {
            "tier": self.tier,
            "name": self.name,
            "winner_count": self.winner_count,
            "percentage": self.percentage,
        }


@dataclass(frozen=True)
class SlotReward:
    amount: int
    tier: int
    rank_in_pool: int  # 1-based position inside the tier


@dataclass(frozen=True)
class TierAllocation:
    tier: RewardTier
    pool_amount: int
    per_winner: int

    @property
    def distributed(self) -> int:
        return self.per_winner * self.tier.winner_count


@dataclass(frozen=True)
class PayoutSchedule:
    total: int
    allocations: List[TierAllocation]

    @property
    def distributed(self) -> int:
        return sum(allocation.distributed for allocation in self.allocations)

    @property
    def retained(self) -> int:
        """Undistributed remainder; kept in the pool, not paid out."""
        return self.total - self.distributed


def reward_per_winner(total: int, winner_limit: int) -> int:
    """Flat split of the pool: floor(total / winner_limit)."""
    if winner_limit <= 0:
        raise ValueError("winner_limit must be positive")
    if total < 0:
        raise ValueError("reward pool can not be negative")
    return total // winner_limit


def retained_remainder(total: int, winner_limit: int) -> int:
    """What a flat split leaves in the pool."""
    return total - reward_per_winner(total, winner_limit) * winner_limit


def tier_pool_amount(total: int, percentage: int) -> int:
    """floor(total * percentage / 100)."""
    return total * percentage // PERCENT_DENOMINATOR


def default_tiers(winner_limit: int) -> List[RewardTier]:
    """One tier holding every slot at 100%: a flat split."""
    return [RewardTier(tier=1, winner_count=winner_limit, percentage=100, name="Winners")]


def parse_tiers(raw: Optional[Iterable[dict]]) -> List[RewardTier]:
    """Build tiers from their stored JSON form, keeping rank order."""
    tiers = []
    for item in raw or []:
        tiers.append(RewardTier(
            tier=int(item["tier"]),
            winner_count=int(item["winner_count"]),
            percentage=int(item["percentage"]),
            name=item.get("name") or "",
        ))
    return tiers


def validate_tiers(tiers: List[RewardTier], winner_limit: int) -> None:
    """
    Check a payout schedule against the quiz's slot limit.

    Raises:
        ValueError: If tiers leave slots uncovered or promise more than 100%
    """
    if not tiers:
        raise ValueError("At least one reward tier is required")

    numbers = [tier.tier for tier in tiers]
    if len(set(numbers)) != len(numbers):
        raise ValueError("Reward tier numbers must be unique")

    for tier in tiers:
        if tier.winner_count < 1:
            raise ValueError(f"Tier {tier.tier} must have at least one winner")
        if not 1 <= tier.percentage <= PERCENT_DENOMINATOR:
            raise ValueError(f"Tier {tier.tier} percentage must be between 1 and 100")

    if sum(tier.winner_count for tier in tiers) != winner_limit:
        raise ValueError("Tier winner counts must add up to the winner limit")

    if sum(tier.percentage for tier in tiers) > PERCENT_DENOMINATOR:
        raise ValueError("Tier percentages can not exceed 100 in total")


def tier_for_slot(tiers: List[RewardTier], slot_index: int) -> Tuple[RewardTier, int]:
    """
    Find the tier covering a 0-based slot.

    Tiers cover consecutive slot ranges in order: slots [0, t1.count) belong
    to the first tier, the next t2.count slots to the second, and so on.

    Returns:
        (tier, rank_in_pool) with rank_in_pool 1-based
    """
    if slot_index < 0:
        raise ValueError("slot_index can not be negative")

    start = 0
    for tier in tiers:
        if slot_index < start + tier.winner_count:
            return tier, slot_index - start + 1
        start += tier.winner_count

    raise ValueError(f"Slot {slot_index} is not covered by any reward tier")


def reward_for_slot(total: int, tiers: List[RewardTier], slot_index: int) -> SlotReward:
    """Reward owed to the finisher holding the given 0-based slot."""
    tier, rank_in_pool = tier_for_slot(tiers, slot_index)
    per_winner = tier_pool_amount(total, tier.percentage) // tier.winner_count
    return SlotReward(amount=per_winner, tier=tier.tier, rank_in_pool=rank_in_pool)


def payout_schedule(total: int, tiers: List[RewardTier]) -> PayoutSchedule:
    """Per-tier pools and per-winner shares for a full quiz."""
    allocations = []
    for tier in tiers:
        pool = tier_pool_amount(total, tier.percentage)
        allocations.append(TierAllocation(tier=tier, pool_amount=pool, per_winner=pool // tier.winner_count))
    return PayoutSchedule(total=total, allocations=allocations)
