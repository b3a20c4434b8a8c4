"""
Shared bracket machinery.

Sizing, seeding and match numbering helpers used by the generators, plus the
operations that advance a bracket once it exists: completing a match,
propagating winners and losers, auto-advancing byes and refreshing match
statuses. All operations return a new ``BracketStructure``; matches that did
not change are shared with the input.
"""
import logging
import math
from dataclasses import replace
from typing import Callable, Dict, Iterator, List, Optional, Sequence, Tuple

from .models import (
    BracketFormat,
    BracketMatch,
    BracketRound,
    BracketStructure,
    BracketType,
    ByeSource,
    ChampionDestination,
    Destination,
    LoserSource,
    MatchDestination,
    MatchResult,
    MatchStatus,
    PlacementDestination,
    Qualifiers,
    TeamSource,
    WinnerSource,
)

logger = logging.getLogger(__name__)

GRAND_FINAL_ID = 'grandfinal'

NOT_STARTED = 'not_started'
IN_PROGRESS = 'in_progress'
COMPLETED = 'completed'

# (round_number, position) -> where that match's loser goes
LoserRouting = Callable[[int, int], Destination]


def calculate_rounds(num_teams: int) -> int:
    """Number of rounds needed to reduce ``num_teams`` to one."""
    if num_teams <= 1:
        return 0
    return math.ceil(math.log2(num_teams))


def calculate_bracket_size(num_teams: int) -> int:
    """Calculate the bracket size (next power of 2)."""
    if num_teams <= 0:
        return 0
    return 2 ** calculate_rounds(num_teams)


def calculate_byes(num_teams: int) -> int:
    """Calculate number of byes needed."""
    return calculate_bracket_size(num_teams) - num_teams


def apply_seeding(team_ids: Sequence[str], seeding: Optional[Sequence[int]],
                  bracket_size: int) -> List[Optional[str]]:
    """
    Place teams into bracket slots.

    ``seeding[i]`` is the 1-based slot for ``team_ids[i]``. Without a seeding
    (or with one of the wrong length) teams fill the slots in order. Slots
    left as None are byes.
    """
    slots: List[Optional[str]] = [None] * bracket_size

    if seeding and len(seeding) == len(team_ids):
        for team_id, seed in zip(team_ids, seeding):
            if 1 <= seed <= bracket_size:
                slots[seed - 1] = team_id
            else:
                logger.warning(f'Seed {seed} for team {team_id} is outside a {bracket_size}-slot bracket')
    else:
        for index, team_id in enumerate(team_ids[:bracket_size]):
            slots[index] = team_id

    return slots


def get_match_number(round_number: int, position: int, bracket_size: int) -> int:
    """
    1-based number of the match at ``position`` (0-based) in ``round_number``.

    Matches are numbered round by round, so the number is the match count of
    every earlier round plus the position in this one.
    """
    number = 0
    for earlier in range(1, round_number):
        number += bracket_size // (2 ** earlier)
    return number + position + 1


def iter_rounds(bracket: BracketStructure) -> Iterator[BracketRound]:
    """Yield rounds in upper, middle, lower order."""
    for arm in (bracket.upper, bracket.middle, bracket.lower):
        if arm:
            yield from arm


def iter_matches(bracket: BracketStructure) -> Iterator[BracketMatch]:
    """Yield every match in upper, middle, lower, grand final order."""
    for round_ in iter_rounds(bracket):
        yield from round_.matches
    if bracket.grandfinal is not None:
        yield bracket.grandfinal


def find_match(bracket: BracketStructure, match_id: str) -> Optional[BracketMatch]:
    for match in iter_matches(bracket):
        if match.match_id == match_id:
            return match
    return None


# ---------------------------------------------------------------------------
# Working table
#
# Updates run against a flat match_id -> match dict, then the structure is
# rebuilt from it. Rounds whose matches are all unchanged are reused as is.
# ---------------------------------------------------------------------------

def _match_table(bracket: BracketStructure) -> Dict[str, BracketMatch]:
    return {match.match_id: match for match in iter_matches(bracket)}


def _rebuild_arm(arm: Optional[Tuple[BracketRound, ...]],
                 table: Dict[str, BracketMatch]) -> Optional[Tuple[BracketRound, ...]]:
    if arm is None:
        return None
    rounds = []
    changed = False
    for round_ in arm:
        matches = tuple(table[match.match_id] for match in round_.matches)
        if all(new is old for new, old in zip(matches, round_.matches)):
            rounds.append(round_)
        else:
            rounds.append(replace(round_, matches=matches))
            changed = True
    return tuple(rounds) if changed else arm


def _rebuild(bracket: BracketStructure, table: Dict[str, BracketMatch]) -> BracketStructure:
    grandfinal = bracket.grandfinal
    if grandfinal is not None:
        grandfinal = table[grandfinal.match_id]
    return replace(
        bracket,
        upper=_rebuild_arm(bracket.upper, table),
        middle=_rebuild_arm(bracket.middle, table),
        lower=_rebuild_arm(bracket.lower, table),
        grandfinal=grandfinal,
    )


def _refreshed_status(match: BracketMatch) -> BracketMatch:
    if match.status == MatchStatus.COMPLETED:
        return match
    status = MatchStatus.READY if match.team_a_id and match.team_b_id else MatchStatus.PENDING
    if status == match.status:
        return match
    return replace(match, status=status)


def update_match_statuses(bracket: BracketStructure) -> BracketStructure:
    """Recompute pending/ready for every match that is not completed."""
    table = {match_id: _refreshed_status(match) for match_id, match in _match_table(bracket).items()}
    return _rebuild(bracket, table)


# ---------------------------------------------------------------------------
# Propagation
# ---------------------------------------------------------------------------

def _source_class(source_kind: str):
    return WinnerSource if source_kind == 'winner' else LoserSource


def _expects(source: TeamSource, source_kind: str, source_match_id: str) -> bool:
    return isinstance(source, _source_class(source_kind)) and source.match_id == source_match_id


def _place_team(table: Dict[str, BracketMatch], team_id: str, destination: Destination,
                source_match_id: str, source_kind: str) -> bool:
    """Put ``team_id`` into the slot of the destination match that expects it."""
    if not isinstance(destination, MatchDestination):
        return False

    dest = table.get(destination.match_id)
    if dest is None:
        logger.warning(f'Could not find destination match: {destination.match_id}')
        return False

    logger.debug(f'Propagating {source_kind} {team_id} from {source_match_id} to {dest.match_id}')

    if _expects(dest.team_a_source, source_kind, source_match_id):
        table[dest.match_id] = replace(dest, team_a_id=team_id)
        return True
    if _expects(dest.team_b_source, source_kind, source_match_id):
        table[dest.match_id] = replace(dest, team_b_id=team_id)
        return True

    # Fallback: first empty slot fed by a winner or loser
    if isinstance(dest.team_a_source, (WinnerSource, LoserSource)) and not dest.team_a_id:
        logger.debug(f'Assigned {team_id} to {dest.match_id} team A slot (fallback)')
        table[dest.match_id] = replace(dest, team_a_id=team_id)
        return True
    if isinstance(dest.team_b_source, (WinnerSource, LoserSource)) and not dest.team_b_id:
        logger.debug(f'Assigned {team_id} to {dest.match_id} team B slot (fallback)')
        table[dest.match_id] = replace(dest, team_b_id=team_id)
        return True

    logger.warning(
        f'Could not assign {team_id} to {dest.match_id}: no matching slot '
        f'(A: {dest.team_a_source} {dest.team_a_id}, B: {dest.team_b_source} {dest.team_b_id})'
    )
    return False


def _mark_bye_slot(table: Dict[str, BracketMatch], destination: Destination,
                   source_match_id: str, source_kind: str):
    """Turn the slot fed by a team that will never exist into a bye."""
    if not isinstance(destination, MatchDestination):
        return
    dest = table.get(destination.match_id)
    if dest is None:
        return
    if _expects(dest.team_a_source, source_kind, source_match_id):
        table[dest.match_id] = replace(dest, team_a_source=ByeSource())
    elif _expects(dest.team_b_source, source_kind, source_match_id):
        table[dest.match_id] = replace(dest, team_b_source=ByeSource())


def _resolve_byes(table: Dict[str, BracketMatch]):
    """
    Auto-advance every open match that has a bye slot, until nothing changes.

    One team against a bye: the team wins, the missing loser turns the
    loser's destination slot into a bye. Bye against bye: completed with no
    winner, and both destination slots become byes. A bye slot facing a team
    that has not arrived yet waits.
    """
    changed = True
    while changed:
        changed = False
        for match_id in list(table):
            match = table[match_id]
            if match.status == MatchStatus.COMPLETED:
                continue
            bye_a = isinstance(match.team_a_source, ByeSource)
            bye_b = isinstance(match.team_b_source, ByeSource)
            if not (bye_a or bye_b):
                continue

            if bye_a and bye_b:
                table[match_id] = replace(match, status=MatchStatus.COMPLETED)
                _mark_bye_slot(table, match.winner_destination, match_id, 'winner')
                _mark_bye_slot(table, match.loser_destination, match_id, 'loser')
                changed = True
                continue

            present = match.team_b_id if bye_a else match.team_a_id
            if not present:
                continue
            logger.debug(f'{present} advances from {match_id} on a bye')
            table[match_id] = replace(match, status=MatchStatus.COMPLETED, winner_id=present)
            _place_team(table, present, match.winner_destination, match_id, 'winner')
            _mark_bye_slot(table, match.loser_destination, match_id, 'loser')
            changed = True


def process_byes(bracket: BracketStructure) -> BracketStructure:
    """Auto-advance teams facing a bye and refresh statuses."""
    table = _match_table(bracket)
    _resolve_byes(table)
    return update_match_statuses(_rebuild(bracket, table))


def complete_match(bracket: BracketStructure, match_id: str, winner_id: str, loser_id: str,
                   result: Optional[MatchResult] = None) -> BracketStructure:
    """
    Record a result and advance the bracket.

    Returns a new structure. Unknown, already completed or not yet ready
    matches, and winner/loser pairs that do not match the slots, are logged
    and the input bracket is returned unchanged.
    """
    logger.debug(f'Completing bracket match {match_id}, winner: {winner_id}, loser: {loser_id}')

    table = _match_table(bracket)
    match = table.get(match_id)
    if match is None:
        logger.warning(f'Bracket match not found: {match_id}')
        return bracket
    if match.status == MatchStatus.COMPLETED:
        logger.warning(f'Bracket match {match_id} is already completed')
        return bracket
    if match.status != MatchStatus.READY:
        logger.warning(f'Bracket match {match_id} is not ready ({match.team_a_id} vs {match.team_b_id})')
        return bracket
    if {winner_id, loser_id} != {match.team_a_id, match.team_b_id} or winner_id == loser_id:
        logger.warning(
            f'Result {winner_id} over {loser_id} does not fit match {match_id} '
            f'({match.team_a_id} vs {match.team_b_id})'
        )
        return bracket

    table[match_id] = replace(
        match,
        winner_id=winner_id,
        loser_id=loser_id,
        result=result,
        status=MatchStatus.COMPLETED,
    )
    _place_team(table, winner_id, match.winner_destination, match_id, 'winner')
    _place_team(table, loser_id, match.loser_destination, match_id, 'loser')
    _resolve_byes(table)

    new_bracket = update_match_statuses(_rebuild(bracket, table))
    logger.debug(f'Ready matches after completion: {[m.match_id for m in get_ready_matches(new_bracket)]}')
    return new_bracket


# ---------------------------------------------------------------------------
# Queries
# ---------------------------------------------------------------------------

def get_ready_matches(bracket: BracketStructure) -> List[BracketMatch]:
    return [match for match in iter_matches(bracket) if match.status == MatchStatus.READY]


def get_next_match(bracket: BracketStructure) -> Optional[BracketMatch]:
    ready = get_ready_matches(bracket)
    return ready[0] if ready else None


def _final_of(arm: Optional[Tuple[BracketRound, ...]]) -> Optional[BracketMatch]:
    if not arm or not arm[-1].matches:
        return None
    return arm[-1].matches[0]


def _is_completed(match: Optional[BracketMatch]) -> bool:
    return match is not None and match.status == MatchStatus.COMPLETED


def get_bracket_status(bracket: BracketStructure) -> str:
    """
    Return 'not_started', 'in_progress' or 'completed'.

    A bracket has not started until a match has actually been played; byes
    advanced at generation time do not count.
    """
    matches = list(iter_matches(bracket))
    played = any(m.status == MatchStatus.COMPLETED and m.loser_id for m in matches)

    if _is_completed(bracket.grandfinal):
        return COMPLETED

    if bracket.format == BracketFormat.ROUND_ROBIN:
        if matches and all(m.status == MatchStatus.COMPLETED for m in matches):
            return COMPLETED
    elif bracket.format == BracketFormat.SINGLE_ELIM:
        if _is_completed(_final_of(bracket.upper)):
            return COMPLETED
    elif bracket.format == BracketFormat.TRIPLE_ELIM:
        finals = (_final_of(bracket.upper), _final_of(bracket.middle), _final_of(bracket.lower))
        if all(_is_completed(final) for final in finals):
            return COMPLETED

    if not played:
        return NOT_STARTED
    return IN_PROGRESS


def get_champion(bracket: BracketStructure) -> Optional[str]:
    """
    Terminal winner of the bracket.

    Triple elimination has no grand final, so the Alpha (upper) winner is
    returned. Round robin has no champion; ranking comes from standings.
    """
    if _is_completed(bracket.grandfinal):
        return bracket.grandfinal.winner_id

    if bracket.format == BracketFormat.ROUND_ROBIN:
        return None

    if bracket.format in (BracketFormat.SINGLE_ELIM, BracketFormat.TRIPLE_ELIM):
        final = _final_of(bracket.upper)
        if _is_completed(final):
            return final.winner_id

    return None


def get_qualifiers(bracket: BracketStructure) -> Qualifiers:
    """Winners of the upper, middle and lower finals of a triple elimination bracket."""
    def winner(match):
        return match.winner_id if _is_completed(match) else None

    return Qualifiers(
        alpha=winner(_final_of(bracket.upper)),
        beta=winner(_final_of(bracket.middle)),
        omega=winner(_final_of(bracket.lower)),
    )


def get_final_placements(bracket: BracketStructure) -> Dict[int, str]:
    """Map of final rank -> team id for every rank the results have decided."""
    placements: Dict[int, str] = {}

    champion = get_champion(bracket)
    if champion:
        placements[1] = champion

    for match in iter_matches(bracket):
        if match.status != MatchStatus.COMPLETED or not match.loser_id:
            continue
        if isinstance(match.loser_destination, PlacementDestination) and match.loser_destination.place > 0:
            placements[match.loser_destination.place] = match.loser_id
        if isinstance(match.winner_destination, PlacementDestination) and match.winner_destination.place > 0:
            placements[match.winner_destination.place] = match.winner_id
        if isinstance(match.winner_destination, ChampionDestination):
            placements[2] = match.loser_id

    return placements


# ---------------------------------------------------------------------------
# Identifiers and display
# ---------------------------------------------------------------------------

def prefix_bracket_ids(bracket: BracketStructure, prefix: str) -> BracketStructure:
    """
    Prefix every match and round id, and every reference to one.

    Sources and destinations are rewritten with the same prefix so that
    propagation keeps resolving.
    """
    def prefixed(identifier: str) -> str:
        return f'{prefix}-{identifier}'

    def source(src: TeamSource) -> TeamSource:
        if isinstance(src, (WinnerSource, LoserSource)):
            return type(src)(prefixed(src.match_id))
        return src

    def destination(dest: Destination) -> Destination:
        if isinstance(dest, MatchDestination):
            return MatchDestination(prefixed(dest.match_id))
        return dest

    def match(m: BracketMatch) -> BracketMatch:
        return replace(
            m,
            match_id=prefixed(m.match_id),
            round_id=prefixed(m.round_id),
            team_a_source=source(m.team_a_source),
            team_b_source=source(m.team_b_source),
            winner_destination=destination(m.winner_destination),
            loser_destination=destination(m.loser_destination),
        )

    def arm(rounds):
        if rounds is None:
            return None
        return tuple(
            replace(r, round_id=prefixed(r.round_id), matches=tuple(match(m) for m in r.matches))
            for r in rounds
        )

    return replace(
        bracket,
        upper=arm(bracket.upper),
        middle=arm(bracket.middle),
        lower=arm(bracket.lower),
        grandfinal=match(bracket.grandfinal) if bracket.grandfinal is not None else None,
    )


def get_round_name(round_: BracketRound, rounds_in_arm: int, bracket_format: BracketFormat) -> str:
    """Human-readable name of a round."""
    if bracket_format == BracketFormat.ROUND_ROBIN:
        return f'Group {round_.round_number}'

    labels = {
        BracketType.UPPER: 'Upper',
        BracketType.MIDDLE: 'Middle',
        BracketType.LOWER: 'Lower',
    }
    rounds_from_end = rounds_in_arm - round_.round_number

    if bracket_format == BracketFormat.SINGLE_ELIM:
        teams_in_round = 2 * len(round_.matches)
        if teams_in_round == 2:
            return 'Final'
        elif teams_in_round == 4:
            return 'Semifinal'
        elif teams_in_round == 8:
            return 'Quarterfinal'
        return f'Round of {teams_in_round}'

    label = labels[round_.bracket_type]
    if rounds_from_end == 0:
        return f'{label} Final'
    elif rounds_from_end == 1:
        return f'{label} Semifinal'
    return f'{label} Round {round_.round_number}'


def get_bracket_display(bracket: BracketStructure) -> Dict:
    """
    Get bracket data formatted for UI display.
    """
    rounds = []
    for arm in (bracket.upper, bracket.middle, bracket.lower):
        if not arm:
            continue
        for round_ in arm:
            byes = sum(1 for m in round_.matches if m.status == MatchStatus.COMPLETED and not m.loser_id)
            rounds.append({
                'round_id': round_.round_id,
                'name': get_round_name(round_, len(arm), bracket.format),
                'bracket_type': round_.bracket_type.value,
                'matches': len(round_.matches),
                'byes': byes,
                'completed': sum(1 for m in round_.matches if m.status == MatchStatus.COMPLETED),
            })

    if bracket.grandfinal is not None:
        rounds.append({
            'round_id': bracket.grandfinal.round_id,
            'name': 'Grand Final',
            'bracket_type': 'grandfinal',
            'matches': 1,
            'byes': 0,
            'completed': 1 if _is_completed(bracket.grandfinal) else 0,
        })

    return {
        'format': bracket.format.value,
        'status': get_bracket_status(bracket),
        'rounds': rounds,
        'total_matches': sum(r['matches'] for r in rounds),
        'byes': sum(r['byes'] for r in rounds),
        'ready_matches': len(get_ready_matches(bracket)),
        'champion': get_champion(bracket),
    }


def build_match(match_id: str, round_id: str, team_a_source: TeamSource, team_b_source: TeamSource,
                winner_destination: Destination, loser_destination: Destination,
                team_a_id: Optional[str] = None, team_b_id: Optional[str] = None) -> BracketMatch:
    """Create a match with its status derived from the slots already filled."""
    return BracketMatch(
        match_id=match_id,
        round_id=round_id,
        team_a_source=team_a_source,
        team_b_source=team_b_source,
        winner_destination=winner_destination,
        loser_destination=loser_destination,
        team_a_id=team_a_id,
        team_b_id=team_b_id,
        status=MatchStatus.READY if team_a_id and team_b_id else MatchStatus.PENDING,
    )

