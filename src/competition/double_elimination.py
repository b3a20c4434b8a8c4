"""
Double elimination bracket generation.

In double elimination:
- Teams must lose twice to be eliminated
- Upper bracket: teams that haven't lost yet
- Lower bracket: teams that have lost once
- Grand Final: upper bracket champion vs lower bracket champion

Lower round 1 pairs the upper round 1 losers. After that the lower bracket
alternates combined rounds (upper losers dropping in against lower winners)
and internal rounds (lower winners against each other), ending with a
combined round against the upper final's loser.
"""
import logging
from typing import Optional, Sequence

from .bracket import (
    GRAND_FINAL_ID,
    apply_seeding,
    build_match,
    calculate_bracket_size,
    calculate_rounds,
    get_match_number,
    process_byes,
)
from .elimination import build_upper_rounds
from .models import (
    BracketFormat,
    BracketRound,
    BracketStructure,
    BracketType,
    ChampionDestination,
    Destination,
    EliminatedDestination,
    LoserSource,
    MatchDestination,
    PlacementDestination,
    WinnerSource,
)

logger = logging.getLogger(__name__)


def calculate_lower_bracket_rounds(bracket_size: int) -> int:
    """
    Calculate number of rounds in the lower bracket.
    For N teams in the upper bracket (power of 2):
    - Upper bracket has log2(N) rounds
    - Lower bracket has 2 * (log2(N) - 1) rounds
    """
    if bracket_size < 2:
        return 0
    return 2 * (calculate_rounds(bracket_size) - 1)


def _lower_match_id(round_number: int, index: int) -> str:
    return f'lower-r{round_number}-m{index + 1}'


def generate_double_elimination(team_ids: Sequence[str],
                                seeding: Optional[Sequence[int]] = None) -> BracketStructure:
    """
    Generate a double elimination bracket with a grand final.

    The loser of upper round r (r > 1) drops into lower round 2(r-1), so the
    upper final's loser meets the last internal round's winner in the final
    lower round. A two-team bracket has no lower bracket: the upper final's
    loser goes straight to the grand final.
    """
    num_upper_rounds = calculate_rounds(len(team_ids))
    bracket_size = calculate_bracket_size(len(team_ids))
    num_lower_rounds = calculate_lower_bracket_rounds(bracket_size)
    seeded_teams = apply_seeding(team_ids, seeding, bracket_size)
    upper_final_id = f'match-{bracket_size - 1}'

    def loser_destination_for(round_number: int, position: int) -> Destination:
        if num_lower_rounds == 0:
            return MatchDestination(GRAND_FINAL_ID)
        if round_number == 1:
            return MatchDestination(_lower_match_id(1, position // 2))
        return MatchDestination(_lower_match_id(2 * (round_number - 1), position))

    upper = build_upper_rounds(seeded_teams, num_upper_rounds, loser_destination_for,
                               MatchDestination(GRAND_FINAL_ID))

    lower = []
    match_count = 0
    for round_number in range(1, num_lower_rounds + 1):
        round_id = f'lower-r{round_number}'
        if round_number == 1:
            match_count = bracket_size // 4
        elif round_number % 2 == 1:
            match_count = match_count // 2

        matches = []
        for index in range(match_count):
            if round_number == 1:
                source_a = LoserSource(f'match-{get_match_number(1, 2 * index, bracket_size)}')
                source_b = LoserSource(f'match-{get_match_number(1, 2 * index + 1, bracket_size)}')
            elif round_number % 2 == 0:
                upper_round = round_number // 2 + 1
                source_a = LoserSource(f'match-{get_match_number(upper_round, index, bracket_size)}')
                source_b = WinnerSource(_lower_match_id(round_number - 1, index))
            else:
                source_a = WinnerSource(_lower_match_id(round_number - 1, 2 * index))
                source_b = WinnerSource(_lower_match_id(round_number - 1, 2 * index + 1))

            if round_number == num_lower_rounds:
                winner_destination = MatchDestination(GRAND_FINAL_ID)
            elif round_number % 2 == 1:
                winner_destination = MatchDestination(_lower_match_id(round_number + 1, index))
            else:
                winner_destination = MatchDestination(_lower_match_id(round_number + 1, index // 2))

            matches.append(build_match(
                _lower_match_id(round_number, index), round_id, source_a, source_b,
                winner_destination, EliminatedDestination(),
            ))

        lower.append(BracketRound(round_id, round_number, BracketType.LOWER, tuple(matches)))

    if num_lower_rounds:
        lower_champion_source = WinnerSource(_lower_match_id(num_lower_rounds, 0))
    else:
        lower_champion_source = LoserSource(upper_final_id)

    grandfinal = build_match(
        GRAND_FINAL_ID, GRAND_FINAL_ID,
        WinnerSource(upper_final_id), lower_champion_source,
        ChampionDestination(), PlacementDestination(2),
    )

    logger.debug(
        f'Generated double elimination: {len(team_ids)} teams, '
        f'{num_upper_rounds} upper rounds, {num_lower_rounds} lower rounds'
    )

    bracket = BracketStructure(
        format=BracketFormat.DOUBLE_ELIM,
        upper=upper,
        lower=tuple(lower),
        grandfinal=grandfinal,
    )
    return process_byes(bracket)
