"""
Swiss stage: record-based pairing with qualification and elimination
thresholds.

Round 1 pairs teams from different regions. Later rounds group active teams
by win-loss record and pair within each group, avoiding rematches where an
alternative exists. A team stops playing once it reaches the win or loss
threshold.
"""
import logging
from collections import defaultdict
from dataclasses import replace
from typing import Dict, List, Optional, Sequence, Tuple

from .models import (
    BracketMatch,
    MatchResult,
    MatchStatus,
    PlacementDestination,
    SeedSource,
    SwissRound,
    SwissStage,
    SwissTeamRecord,
    SwissTeamStatus,
)

logger = logging.getLogger(__name__)

UNKNOWN_REGION = 'Unknown'


def _swiss_match(tournament_id: str, round_number: int, index: int,
                 team_a: str, seed_a: int, team_b: str, seed_b: int) -> BracketMatch:
    return BracketMatch(
        match_id=f'{tournament_id}-swiss-r{round_number}-m{index}',
        round_id=f'{tournament_id}-swiss-r{round_number}',
        team_a_source=SeedSource(seed_a),
        team_b_source=SeedSource(seed_b),
        team_a_id=team_a,
        team_b_id=team_b,
        status=MatchStatus.READY,
        # Placement comes from Swiss standings
        winner_destination=PlacementDestination(0),
        loser_destination=PlacementDestination(0),
    )


def generate_swiss_round1_pairings(team_ids: Sequence[str], team_regions: Dict[str, str],
                                   tournament_id: str) -> Tuple[BracketMatch, ...]:
    """
    Pair round 1 across regions.

    Walking teams in order, each unpaired team takes the first later
    unpaired team from a different region. Teams left over (uneven region
    sizes) are paired among themselves in order.
    """
    matches = []
    used = set()

    for i, team_a in enumerate(team_ids):
        if team_a in used:
            continue
        region_a = team_regions.get(team_a, UNKNOWN_REGION)
        for j in range(i + 1, len(team_ids)):
            team_b = team_ids[j]
            if team_b in used or team_regions.get(team_b, UNKNOWN_REGION) == region_a:
                continue
            used.update((team_a, team_b))
            matches.append(_swiss_match(tournament_id, 1, len(matches) + 1, team_a, i + 1, team_b, j + 1))
            break

    remaining = [team_id for team_id in team_ids if team_id not in used]
    if remaining:
        logger.debug(f'No cross-region opponent for {remaining}, pairing them in order')
    for k in range(0, len(remaining) - 1, 2):
        team_a, team_b = remaining[k], remaining[k + 1]
        matches.append(_swiss_match(
            tournament_id, 1, len(matches) + 1,
            team_a, team_ids.index(team_a) + 1, team_b, team_ids.index(team_b) + 1,
        ))

    return tuple(matches)


def initialize_swiss_stage(team_ids: Sequence[str], team_regions: Dict[str, str], tournament_id: str,
                           total_rounds: int = 3, wins_to_qualify: int = 2,
                           losses_to_eliminate: int = 2) -> SwissStage:
    """Create a Swiss stage with every team at 0-0 and round 1 paired."""
    standings = tuple(
        SwissTeamRecord(team_id=team_id, seed=index + 1)
        for index, team_id in enumerate(team_ids)
    )
    round1_matches = generate_swiss_round1_pairings(team_ids, team_regions, tournament_id)
    round1 = SwissRound(round_number=1, matches=round1_matches, completed=not round1_matches)
    logger.info(f'Initialized Swiss stage for {tournament_id}: {len(team_ids)} teams, {total_rounds} rounds')
    return SwissStage(
        rounds=(round1,),
        standings=standings,
        current_round=1,
        total_rounds=total_rounds,
        wins_to_qualify=wins_to_qualify,
        losses_to_eliminate=losses_to_eliminate,
    )


def _pair_records(active: List[SwissTeamRecord]) -> List[Tuple[SwissTeamRecord, SwissTeamRecord]]:
    """Pair active teams by record, then pair whoever is left across groups."""
    by_record = defaultdict(list)
    for team in active:
        by_record[(team.wins, team.losses)].append(team)

    pairs = []
    paired = set()

    # Best record first: most wins, then fewest losses
    for record in sorted(by_record, key=lambda r: (-r[0], r[1])):
        group = sorted((t for t in by_record[record] if t.team_id not in paired), key=lambda t: t.seed)
        for i, team_a in enumerate(group):
            if team_a.team_id in paired:
                continue
            # Top remaining seed against bottom remaining seed
            for j in range(len(group) - 1, i, -1):
                team_b = group[j]
                if team_b.team_id in paired or team_b.team_id in team_a.opponent_ids:
                    continue
                paired.update((team_a.team_id, team_b.team_id))
                pairs.append((team_a, team_b))
                break

    remaining = sorted((t for t in active if t.team_id not in paired), key=lambda t: t.seed)
    i = 0
    while i + 1 < len(remaining):
        team_a = remaining[i]
        if remaining[i + 1].team_id in team_a.opponent_ids:
            for j in range(i + 2, len(remaining)):
                if remaining[j].team_id not in team_a.opponent_ids:
                    remaining.insert(i + 1, remaining.pop(j))
                    break
        team_b = remaining[i + 1]
        if team_b.team_id in team_a.opponent_ids:
            logger.debug(f'Rematch unavoidable: {team_a.team_id} vs {team_b.team_id}')
        pairs.append((team_a, team_b))
        i += 2

    return pairs


def generate_next_swiss_round(stage: SwissStage, tournament_id: str) -> SwissStage:
    """
    Pair the next round from current records.

    Returns the stage unchanged once every round has been generated, when
    fewer than two teams are still active, or while the current round has
    unplayed matches.
    """
    next_round = stage.current_round + 1
    if next_round > stage.total_rounds:
        return stage

    if not is_swiss_round_complete(stage):
        logger.warning(f'Swiss round {stage.current_round} of {tournament_id} is not complete')
        return stage

    active = [team for team in stage.standings if team.status == SwissTeamStatus.ACTIVE]
    if len(active) < 2:
        return stage

    matches = tuple(
        _swiss_match(tournament_id, next_round, index, team_a.team_id, team_a.seed, team_b.team_id, team_b.seed)
        for index, (team_a, team_b) in enumerate(_pair_records(active), start=1)
    )
    logger.info(f'Generated Swiss round {next_round} for {tournament_id}: {len(matches)} matches')

    return replace(
        stage,
        rounds=stage.rounds + (SwissRound(round_number=next_round, matches=matches),),
        current_round=next_round,
    )


def _find_swiss_match(stage: SwissStage, match_id: str) -> Optional[Tuple[int, int]]:
    for round_index, swiss_round in enumerate(stage.rounds):
        for match_index, match in enumerate(swiss_round.matches):
            if match.match_id == match_id:
                return round_index, match_index
    return None


def complete_swiss_match(stage: SwissStage, match_id: str, result: MatchResult) -> SwissStage:
    """
    Record a Swiss result and update both teams' records.

    The match's round differential (absolute map score margin) is added to
    the winner and subtracted from the loser. Teams reaching the win or loss
    threshold are qualified or eliminated immediately.
    """
    location = _find_swiss_match(stage, match_id)
    if location is None:
        logger.error(f'Swiss match not found: {match_id}')
        return stage

    round_index, match_index = location
    swiss_round = stage.rounds[round_index]
    match = swiss_round.matches[match_index]

    if match.status == MatchStatus.COMPLETED:
        logger.warning(f'Swiss match {match_id} is already completed')
        return stage
    if {result.winner_id, result.loser_id} != {match.team_a_id, match.team_b_id}:
        logger.warning(
            f'Result {result.winner_id} over {result.loser_id} does not fit Swiss match {match_id} '
            f'({match.team_a_id} vs {match.team_b_id})'
        )
        return stage

    completed = replace(
        match,
        winner_id=result.winner_id,
        loser_id=result.loser_id,
        result=result,
        status=MatchStatus.COMPLETED,
    )
    matches = swiss_round.matches[:match_index] + (completed,) + swiss_round.matches[match_index + 1:]
    swiss_round = replace(
        swiss_round,
        matches=matches,
        completed=all(m.status == MatchStatus.COMPLETED for m in matches),
    )
    rounds = stage.rounds[:round_index] + (swiss_round,) + stage.rounds[round_index + 1:]

    margin = abs(result.score_team_a - result.score_team_b)
    qualified = list(stage.qualified_team_ids)
    eliminated = list(stage.eliminated_team_ids)
    standings = []

    for record in stage.standings:
        if record.team_id == result.winner_id:
            record = replace(
                record,
                wins=record.wins + 1,
                round_diff=record.round_diff + margin,
                opponent_ids=record.opponent_ids + (result.loser_id,),
            )
            if record.wins >= stage.wins_to_qualify:
                record = replace(record, status=SwissTeamStatus.QUALIFIED)
                qualified.append(record.team_id)
                logger.info(f'{record.team_id} qualified from the Swiss stage ({record.record})')
        elif record.team_id == result.loser_id:
            record = replace(
                record,
                losses=record.losses + 1,
                round_diff=record.round_diff - margin,
                opponent_ids=record.opponent_ids + (result.winner_id,),
            )
            if record.losses >= stage.losses_to_eliminate:
                record = replace(record, status=SwissTeamStatus.ELIMINATED)
                eliminated.append(record.team_id)
                logger.info(f'{record.team_id} eliminated from the Swiss stage ({record.record})')
        standings.append(record)

    return replace(
        stage,
        rounds=rounds,
        standings=tuple(standings),
        qualified_team_ids=tuple(qualified),
        eliminated_team_ids=tuple(eliminated),
    )


def get_swiss_standings(stage: SwissStage) -> List[SwissTeamRecord]:
    """Sorted by wins (desc), losses (asc), round diff (desc), seed (asc)."""
    return sorted(stage.standings, key=lambda r: (-r.wins, r.losses, -r.round_diff, r.seed))


def is_swiss_stage_complete(stage: SwissStage) -> bool:
    """True when every team is qualified or eliminated."""
    return not any(record.status == SwissTeamStatus.ACTIVE for record in stage.standings)


def is_swiss_round_complete(stage: SwissStage) -> bool:
    for swiss_round in stage.rounds:
        if swiss_round.round_number == stage.current_round:
            return swiss_round.completed
    return True


def get_swiss_qualified_teams(stage: SwissStage) -> List[str]:
    """Qualified teams in the order they qualified."""
    return list(stage.qualified_team_ids)


def get_swiss_eliminated_teams(stage: SwissStage) -> List[str]:
    return list(stage.eliminated_team_ids)
