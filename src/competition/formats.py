"""
Round robin (group play) bracket generation.
"""
import logging
import math
from itertools import combinations
from typing import List, Optional, Sequence

from .bracket import build_match
from .models import (
    BracketFormat,
    BracketRound,
    BracketStructure,
    BracketType,
    PlacementDestination,
    SeedSource,
)

logger = logging.getLogger(__name__)


def split_into_groups(team_ids: Sequence[str], groups: int = 1) -> List[List[str]]:
    """Split teams into contiguous groups of ceil(n / groups) teams."""
    if groups <= 1 or not team_ids:
        return [list(team_ids)]
    per_group = math.ceil(len(team_ids) / groups)
    return [list(team_ids[start:start + per_group]) for start in range(0, len(team_ids), per_group)]


def generate_round_robin(team_ids: Sequence[str], groups: Optional[int] = None) -> BracketStructure:
    """
    Generate round robin group play.

    Every pair of teams in a group plays once. All matches are ready
    immediately and route both teams to placement 0; final positions come
    from standings, not from the bracket.
    """
    rounds = []
    match_number = 0
    seed_of = {team_id: index + 1 for index, team_id in enumerate(team_ids)}

    for group_number, group in enumerate(split_into_groups(team_ids, groups or 1), start=1):
        round_id = f'group-{group_number}'
        matches = []
        for team_a, team_b in combinations(group, 2):
            match_number += 1
            matches.append(build_match(
                f'match-{match_number}', round_id,
                SeedSource(seed_of[team_a]), SeedSource(seed_of[team_b]),
                PlacementDestination(0), PlacementDestination(0),
                team_a_id=team_a, team_b_id=team_b,
            ))
        rounds.append(BracketRound(round_id, group_number, BracketType.UPPER, tuple(matches)))

    logger.debug(f'Generated round robin: {len(team_ids)} teams, {match_number} matches')
    return BracketStructure(format=BracketFormat.ROUND_ROBIN, upper=tuple(rounds))
