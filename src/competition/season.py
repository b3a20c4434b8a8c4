"""
Season progression and qualification.

The season is a fixed, linear sequence of phases. Standings are computed
from match results; qualification is purely positional.
"""
import logging
from datetime import date
from typing import Dict, List, Optional, Sequence

from .config import load_config
from .models import MatchResult, PhaseSchedule, SeasonPhase, StandingsEntry

logger = logging.getLogger(__name__)

PHASE_ORDER = [
    SeasonPhase.OFFSEASON,
    SeasonPhase.KICKOFF,
    SeasonPhase.MASTERS1,
    SeasonPhase.STAGE1,
    SeasonPhase.STAGE1_PLAYOFFS,
    SeasonPhase.MASTERS2,
    SeasonPhase.STAGE2,
    SeasonPhase.STAGE2_PLAYOFFS,
    SeasonPhase.CHAMPIONS,
]

PHASE_NAMES = {
    SeasonPhase.OFFSEASON: 'Offseason',
    SeasonPhase.KICKOFF: 'Kickoff',
    SeasonPhase.MASTERS1: 'Masters Santiago',
    SeasonPhase.STAGE1: 'Stage 1',
    SeasonPhase.STAGE1_PLAYOFFS: 'Stage 1 Playoffs',
    SeasonPhase.MASTERS2: 'Masters London',
    SeasonPhase.STAGE2: 'Stage 2',
    SeasonPhase.STAGE2_PLAYOFFS: 'Stage 2 Playoffs',
    SeasonPhase.CHAMPIONS: 'Champions',
}

PHASE_DESCRIPTIONS = {
    SeasonPhase.OFFSEASON: 'Rest period between seasons. Teams can make roster changes.',
    SeasonPhase.KICKOFF: 'Season opener tournament. Triple elimination format.',
    SeasonPhase.MASTERS1: 'First international tournament in Santiago. Top teams from Kickoff.',
    SeasonPhase.STAGE1: 'First league split. Round robin matches in groups.',
    SeasonPhase.STAGE1_PLAYOFFS: 'Stage 1 playoff tournament. Top 8 teams compete.',
    SeasonPhase.MASTERS2: 'Second international tournament in London. Top playoff teams.',
    SeasonPhase.STAGE2: 'Second league split. Round robin matches for final standings.',
    SeasonPhase.STAGE2_PLAYOFFS: 'Stage 2 playoff tournament. Determines Champions qualifiers.',
    SeasonPhase.CHAMPIONS: 'World Championship. The biggest event of the year.',
}


def get_next_phase(current_phase: SeasonPhase) -> SeasonPhase:
    """Next phase in the season; the last phase wraps to the offseason."""
    if current_phase not in PHASE_ORDER or current_phase == PHASE_ORDER[-1]:
        return SeasonPhase.OFFSEASON
    return PHASE_ORDER[PHASE_ORDER.index(current_phase) + 1]


def get_previous_phase(current_phase: SeasonPhase) -> Optional[SeasonPhase]:
    index = get_phase_index(current_phase)
    if index <= 0:
        return None
    return PHASE_ORDER[index - 1]


def is_phase_before(phase: SeasonPhase, compare_to: SeasonPhase) -> bool:
    return get_phase_index(phase) < get_phase_index(compare_to)


def is_phase_after(phase: SeasonPhase, compare_to: SeasonPhase) -> bool:
    return get_phase_index(phase) > get_phase_index(compare_to)


def get_masters_qualification_count(config: Optional[Dict] = None) -> int:
    return (config or load_config())['qualification_counts']['masters']


def get_champions_qualification_count(config: Optional[Dict] = None) -> int:
    return (config or load_config())['qualification_counts']['champions']


def get_qualified_teams(standings: Sequence[StandingsEntry], count: int) -> List[str]:
    """Team ids of the top ``count`` entries."""
    return [entry.team_id for entry in standings[:count]]


def calculate_season_standings(team_ids: Sequence[str], match_results: Sequence[MatchResult],
                               team_names: Optional[Dict[str, str]] = None) -> List[StandingsEntry]:
    """
    Calculate standings from match results.

    Each result adds a win to the winner, a loss to the loser and each
    side's round differential across the match's maps. Sorted by wins, then
    round differential, then losses (more losses ranks higher), with
    1-based placements assigned in that order. Results for teams not in
    ``team_ids`` are ignored.
    """
    team_names = team_names or {}
    records = {
        team_id: {'wins': 0, 'losses': 0, 'round_diff': 0}
        for team_id in team_ids
    }

    for result in match_results:
        if result.winner_id in records:
            records[result.winner_id]['wins'] += 1
            records[result.winner_id]['round_diff'] += result.round_diff_for(result.winner_id)
        if result.loser_id in records:
            records[result.loser_id]['losses'] += 1
            records[result.loser_id]['round_diff'] += result.round_diff_for(result.loser_id)

    ordered = sorted(
        records.items(),
        key=lambda item: (-item[1]['wins'], -item[1]['round_diff'], -item[1]['losses'])
    )

    return [
        StandingsEntry(
            team_id=team_id,
            team_name=team_names.get(team_id, 'Unknown'),
            wins=record['wins'],
            losses=record['losses'],
            round_diff=record['round_diff'],
            placement=placement,
        )
        for placement, (team_id, record) in enumerate(ordered, start=1)
    ]


def is_team_qualified(team_id: str, standings: Sequence[StandingsEntry], event_type: str,
                      config: Optional[Dict] = None) -> bool:
    """Whether ``team_id`` placed inside the qualification spots for 'masters' or 'champions'."""
    qualification_count = (config or load_config())['qualification_counts'][event_type]
    for entry in standings:
        if entry.team_id == team_id:
            return entry.placement is not None and entry.placement <= qualification_count
    return False


def _as_date(value) -> date:
    return date.fromisoformat(value) if isinstance(value, str) else value


def should_start_next_phase(current_date: date, current_phase: SeasonPhase,
                            phase_schedules: Sequence[PhaseSchedule]) -> bool:
    """True once ``current_date`` reaches the start of the next phase."""
    next_phase = get_next_phase(current_phase)
    for schedule in phase_schedules:
        if schedule.phase == next_phase:
            return current_date >= _as_date(schedule.start_date)
    return False


def get_current_phase_for_date(current_date: date, phase_schedules: Sequence[PhaseSchedule]) -> SeasonPhase:
    """The latest scheduled phase that has started by ``current_date``."""
    for schedule in reversed(phase_schedules):
        if current_date >= _as_date(schedule.start_date):
            return schedule.phase
    return SeasonPhase.OFFSEASON


def can_make_roster_changes(phase: SeasonPhase) -> bool:
    return phase == SeasonPhase.OFFSEASON


def get_phase_name(phase: SeasonPhase) -> str:
    return PHASE_NAMES[phase]


def get_phase_description(phase: SeasonPhase) -> str:
    return PHASE_DESCRIPTIONS[phase]


def get_all_phases() -> List[SeasonPhase]:
    return list(PHASE_ORDER)


def get_phase_index(phase: SeasonPhase) -> int:
    """Position of ``phase`` in the season, or -1 if unknown."""
    if phase not in PHASE_ORDER:
        return -1
    return PHASE_ORDER.index(phase)


def get_total_phases() -> int:
    return len(PHASE_ORDER)


def get_season_progress(current_phase: SeasonPhase) -> int:
    """Season progress as a whole percentage."""
    index = get_phase_index(current_phase)
    return int(index / (len(PHASE_ORDER) - 1) * 100 + 0.5)
