"""
Single elimination bracket generation.
"""
import logging
from typing import List, Optional, Sequence, Tuple

from .bracket import (
    LoserRouting,
    apply_seeding,
    build_match,
    calculate_bracket_size,
    calculate_rounds,
    get_match_number,
    process_byes,
)
from .models import (
    BracketFormat,
    BracketRound,
    BracketStructure,
    BracketType,
    ByeSource,
    ChampionDestination,
    Destination,
    EliminatedDestination,
    MatchDestination,
    PlacementDestination,
    SeedSource,
    WinnerSource,
)

logger = logging.getLogger(__name__)


def build_upper_rounds(seeded_teams: List[Optional[str]], num_rounds: int,
                       loser_destination_for: LoserRouting,
                       final_winner_destination: Destination) -> Tuple[BracketRound, ...]:
    """
    Build the knockout rounds shared by single and double elimination.

    Round 1 pairs slot 2k+1 against slot 2k+2; an empty slot becomes a bye.
    Each later match takes the winners of the two matches beneath it.
    ``loser_destination_for(round_number, position)`` routes every loser.
    """
    bracket_size = len(seeded_teams)
    rounds = []

    for round_number in range(1, num_rounds + 1):
        num_matches = bracket_size // (2 ** round_number)
        round_id = f'upper-r{round_number}'
        matches = []

        for position in range(num_matches):
            match_id = f'match-{get_match_number(round_number, position, bracket_size)}'
            team_a = team_b = None

            if round_number == 1:
                seed_a, seed_b = 2 * position + 1, 2 * position + 2
                team_a = seeded_teams[seed_a - 1]
                team_b = seeded_teams[seed_b - 1]
                source_a = SeedSource(seed_a) if team_a else ByeSource()
                source_b = SeedSource(seed_b) if team_b else ByeSource()
            else:
                source_a = WinnerSource(f'match-{get_match_number(round_number - 1, 2 * position, bracket_size)}')
                source_b = WinnerSource(f'match-{get_match_number(round_number - 1, 2 * position + 1, bracket_size)}')

            if round_number == num_rounds:
                winner_destination = final_winner_destination
            else:
                next_match = get_match_number(round_number + 1, position // 2, bracket_size)
                winner_destination = MatchDestination(f'match-{next_match}')

            matches.append(build_match(
                match_id, round_id, source_a, source_b,
                winner_destination, loser_destination_for(round_number, position),
                team_a_id=team_a, team_b_id=team_b,
            ))

        rounds.append(BracketRound(round_id, round_number, BracketType.UPPER, tuple(matches)))

    return tuple(rounds)


def generate_single_elimination(team_ids: Sequence[str],
                                seeding: Optional[Sequence[int]] = None) -> BracketStructure:
    """
    Generate a single elimination bracket.

    The final's winner is the champion and its loser takes second place.
    Every other loser is eliminated. Byes are advanced before returning.
    """
    num_rounds = calculate_rounds(len(team_ids))
    bracket_size = calculate_bracket_size(len(team_ids))
    seeded_teams = apply_seeding(team_ids, seeding, bracket_size)

    def loser_destination_for(round_number: int, position: int) -> Destination:
        if round_number == num_rounds:
            return PlacementDestination(2)
        return EliminatedDestination()

    upper = build_upper_rounds(seeded_teams, num_rounds, loser_destination_for, ChampionDestination())
    logger.debug(f'Generated single elimination: {len(team_ids)} teams, {num_rounds} rounds')

    return process_byes(BracketStructure(format=BracketFormat.SINGLE_ELIM, upper=upper))
