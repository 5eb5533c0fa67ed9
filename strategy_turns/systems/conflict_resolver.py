"""Conflict resolver - decides who prevails in a contested region."""

from __future__ import annotations
import random
from typing import Optional
from pydantic import BaseModel

from strategy_turns.models.nation import Nation
from strategy_turns.models.region import Region


class ClaimantScore(BaseModel):
    """One participant's strength in a contest."""
    nation_id: str
    score: float
    power: float
    aggression_bonus: float
    paranoia_penalty: float
    luck: int


class ConflictResult(BaseModel):
    """Outcome of a single regional contest."""
    winner_id: str  # Battle winner, not necessarily the region's owner afterwards
    loser_id: str
    region_id: str
    new_owner_id: Optional[str]
    new_control_level: int
    conquered: bool
    log: str
    scores: list[ClaimantScore]


class ConflictResolver:
    """Scores claimants and applies the outcome to a region's control level.

    Resolution is fully determined by the region, the claimants and the seed,
    so every observer of a resolved turn sees the same result.
    """

    AGGRESSION_WEIGHT = 0.5
    PARANOIA_WEIGHT = 0.2
    DEFENDER_CONSOLIDATION = 10
    MIN_DAMAGE = 10

    def score(self, nation: Nation, rng: random.Random) -> ClaimantScore:
        power = nation.power
        aggression_bonus = nation.aggression * self.AGGRESSION_WEIGHT
        paranoia_penalty = nation.paranoia * self.PARANOIA_WEIGHT
        luck = rng.randint(1, 20)
        return ClaimantScore(
            nation_id=nation.id,
            score=power + aggression_bonus - paranoia_penalty + luck,
            power=power,
            aggression_bonus=aggression_bonus,
            paranoia_penalty=paranoia_penalty,
            luck=luck,
        )

    def resolve_region_conflict(self, region: Region, claimants: list[Nation], seed: str) -> ConflictResult:
        """Resolve a contest between claimants (the owner, if any, among them)."""
        if not claimants:
            raise ValueError(f"No claimants for region {region.id}")

        rng = random.Random(seed)
        scores = [self.score(nation, rng) for nation in claimants]
        scores.sort(key=lambda s: s.score, reverse=True)

        winner = scores[0]
        runner_up = scores[1] if len(scores) > 1 else None
        owner_id = region.owner_nation_id

        if winner.nation_id == owner_id:
            control = min(100, region.control_level + self.DEFENDER_CONSOLIDATION)
            return ConflictResult(
                winner_id=winner.nation_id,
                loser_id=runner_up.nation_id if runner_up else "wilderness",
                region_id=region.id,
                new_owner_id=owner_id,
                new_control_level=control,
                conquered=False,
                log=f"Defender {winner.nation_id} repelled attack. Control increased to {control}.",
                scores=scores,
            )

        diff = winner.score - (runner_up.score if runner_up else 0)
        damage = max(self.MIN_DAMAGE, int(diff // 2))
        control = region.control_level - damage

        if control <= 0:
            control = min(100, abs(control))
            return ConflictResult(
                winner_id=winner.nation_id,
                loser_id=runner_up.nation_id if runner_up else "wilderness",
                region_id=region.id,
                new_owner_id=winner.nation_id,
                new_control_level=control,
                conquered=True,
                log=f"Attacker {winner.nation_id} conquered region from {owner_id or 'wilderness'}!",
                scores=scores,
            )

        return ConflictResult(
            winner_id=winner.nation_id,
            loser_id=runner_up.nation_id if runner_up else "wilderness",
            region_id=region.id,
            new_owner_id=owner_id,
            new_control_level=control,
            conquered=False,
            log=f"Attacker {winner.nation_id} won battle but failed to conquer. Control reduced to {control}.",
            scores=scores,
        )
