"""
Triple elimination bracket for the 12-team Kickoff.

Three arms, each producing its own qualifier and no grand final:
- Alpha (upper): 0 losses
- Beta (middle): 1 loss
- Omega (lower): 2 losses

Seeds 1-4 skip upper round 1 and wait in upper round 2. Seeds 5-12 play
upper round 1. The shape is fixed at 16 slots.
"""
import logging
from typing import Optional, Sequence

from .bracket import apply_seeding, build_match, update_match_statuses
from .models import (
    BracketFormat,
    BracketRound,
    BracketStructure,
    BracketType,
    EliminatedDestination,
    LoserSource,
    MatchDestination,
    PlacementDestination,
    SeedSource,
    WinnerSource,
)

logger = logging.getLogger(__name__)

BRACKET_SIZE = 16
NUM_BYES = 4
EXPECTED_TEAMS = 12


def _to(match_id: str) -> MatchDestination:
    return MatchDestination(match_id)


def _upper_rounds(seeded_teams):
    ur1 = []
    for i in range(4):
        seed_a = NUM_BYES + i * 2 + 1
        seed_b = NUM_BYES + i * 2 + 2
        ur1.append(build_match(
            f'ur1-m{i + 1}', 'upper-r1', SeedSource(seed_a), SeedSource(seed_b),
            _to(f'ur2-m{i + 1}'), _to(f'mr1-m{i + 1}'),
            team_a_id=seeded_teams[seed_a - 1], team_b_id=seeded_teams[seed_b - 1],
        ))

    # Bye seeds are already seated in team A
    ur2 = [
        build_match(
            f'ur2-m{i + 1}', 'upper-r2', SeedSource(i + 1), WinnerSource(f'ur1-m{i + 1}'),
            _to(f'ur3-m{i // 2 + 1}'), _to(f'mr1-m{i + 1}'),
            team_a_id=seeded_teams[i],
        )
        for i in range(4)
    ]

    ur3 = [
        build_match(
            f'ur3-m{i + 1}', 'upper-r3',
            WinnerSource(f'ur2-m{i * 2 + 1}'), WinnerSource(f'ur2-m{i * 2 + 2}'),
            _to('upper-final'), _to(f'mr3-m{i + 1}'),
        )
        for i in range(2)
    ]

    upper_final = build_match(
        'upper-final', 'upper-final', WinnerSource('ur3-m1'), WinnerSource('ur3-m2'),
        PlacementDestination(1), _to('middle-final'),
    )

    return (
        BracketRound('upper-r1', 1, BracketType.UPPER, tuple(ur1)),
        BracketRound('upper-r2', 2, BracketType.UPPER, tuple(ur2)),
        BracketRound('upper-r3', 3, BracketType.UPPER, tuple(ur3)),
        BracketRound('upper-final', 4, BracketType.UPPER, (upper_final,)),
    )


def _middle_rounds():
    # Upper round 1 and round 2 losers of the same index meet in middle round 1
    mr1 = [
        build_match(
            f'mr1-m{i + 1}', 'middle-r1',
            LoserSource(f'ur1-m{i + 1}'), LoserSource(f'ur2-m{i + 1}'),
            _to(f'mr2-m{i // 2 + 1}'), _to(f'lr1-m{i // 2 + 1}'),
        )
        for i in range(4)
    ]
    mr2 = [
        build_match(
            f'mr2-m{i + 1}', 'middle-r2',
            WinnerSource(f'mr1-m{i * 2 + 1}'), WinnerSource(f'mr1-m{i * 2 + 2}'),
            _to(f'mr3-m{i + 1}'), _to(f'lr2-m{i + 1}'),
        )
        for i in range(2)
    ]
    mr3 = [
        build_match(
            f'mr3-m{i + 1}', 'middle-r3',
            LoserSource(f'ur3-m{i + 1}'), WinnerSource(f'mr2-m{i + 1}'),
            _to('mr4'), _to(f'lr3-m{i + 1}'),
        )
        for i in range(2)
    ]
    mr4 = build_match(
        'mr4', 'middle-r4', WinnerSource('mr3-m1'), WinnerSource('mr3-m2'),
        _to('middle-final'), _to('lr5'),
    )
    middle_final = build_match(
        'middle-final', 'middle-final', WinnerSource('mr4'), LoserSource('upper-final'),
        PlacementDestination(2), _to('lower-final'),
    )

    return (
        BracketRound('middle-r1', 1, BracketType.MIDDLE, tuple(mr1)),
        BracketRound('middle-r2', 2, BracketType.MIDDLE, tuple(mr2)),
        BracketRound('middle-r3', 3, BracketType.MIDDLE, tuple(mr3)),
        BracketRound('middle-r4', 4, BracketType.MIDDLE, (mr4,)),
        BracketRound('middle-final', 5, BracketType.MIDDLE, (middle_final,)),
    )


def _lower_rounds():
    eliminated = EliminatedDestination()
    lr1 = [
        build_match(
            f'lr1-m{i + 1}', 'lower-r1',
            LoserSource(f'mr1-m{i * 2 + 1}'), LoserSource(f'mr1-m{i * 2 + 2}'),
            _to(f'lr2-m{i + 1}'), eliminated,
        )
        for i in range(2)
    ]
    lr2 = [
        build_match(
            f'lr2-m{i + 1}', 'lower-r2',
            LoserSource(f'mr2-m{i + 1}'), WinnerSource(f'lr1-m{i + 1}'),
            _to(f'lr3-m{i + 1}'), eliminated,
        )
        for i in range(2)
    ]
    lr3 = [
        build_match(
            f'lr3-m{i + 1}', 'lower-r3',
            LoserSource(f'mr3-m{i + 1}'), WinnerSource(f'lr2-m{i + 1}'),
            _to('lr4'), eliminated,
        )
        for i in range(2)
    ]
    lr4 = build_match('lr4', 'lower-r4', WinnerSource('lr3-m1'), WinnerSource('lr3-m2'),
                      _to('lr5'), eliminated)
    lr5 = build_match('lr5', 'lower-r5', LoserSource('mr4'), WinnerSource('lr4'),
                      _to('lower-final'), eliminated)
    lower_final = build_match(
        'lower-final', 'lower-final', LoserSource('middle-final'), WinnerSource('lr5'),
        PlacementDestination(3), PlacementDestination(4),
    )

    return (
        BracketRound('lower-r1', 1, BracketType.LOWER, tuple(lr1)),
        BracketRound('lower-r2', 2, BracketType.LOWER, tuple(lr2)),
        BracketRound('lower-r3', 3, BracketType.LOWER, tuple(lr3)),
        BracketRound('lower-r4', 4, BracketType.LOWER, (lr4,)),
        BracketRound('lower-r5', 5, BracketType.LOWER, (lr5,)),
        BracketRound('lower-final', 6, BracketType.LOWER, (lower_final,)),
    )


def generate_triple_elimination(team_ids: Sequence[str],
                                seeding: Optional[Sequence[int]] = None) -> BracketStructure:
    """
    Generate the Kickoff triple elimination bracket.

    Upper final winner places 1st (Alpha), middle final winner 2nd (Beta),
    lower final winner 3rd (Omega) and lower final loser 4th.
    """
    if len(team_ids) != EXPECTED_TEAMS:
        logger.warning(f'Triple elimination expects {EXPECTED_TEAMS} teams, got {len(team_ids)}')

    seeded_teams = apply_seeding(team_ids, seeding, BRACKET_SIZE)
    bracket = BracketStructure(
        format=BracketFormat.TRIPLE_ELIM,
        upper=_upper_rounds(seeded_teams),
        middle=_middle_rounds(),
        lower=_lower_rounds(),
    )
    return update_match_statuses(bracket)
