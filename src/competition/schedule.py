"""
Season schedule generation.

Lays the competitive phases out back to back from 1 January, creates the
tournament for each phase and turns every bracket match with both teams
known into a scheduled match.
"""
import logging
import random
from dataclasses import dataclass
from datetime import date, timedelta
from typing import Dict, List, Optional, Sequence, Tuple

from .bracket import iter_matches
from .config import load_config
from .models import (
    BracketFormat,
    CalendarEvent,
    CompetitionType,
    PhaseSchedule,
    ScheduledMatch,
    SeasonPhase,
    Tournament,
)
from .season import PHASE_ORDER, get_phase_name
from .tournaments import INTERNATIONAL, create_tournament, get_default_format

logger = logging.getLogger(__name__)

# Competitive phases first, the offseason closes the year
SEASON_LAYOUT = PHASE_ORDER[1:] + PHASE_ORDER[:1]

PHASE_COMPETITION_TYPES = {
    SeasonPhase.KICKOFF: CompetitionType.KICKOFF,
    SeasonPhase.MASTERS1: CompetitionType.MASTERS,
    SeasonPhase.STAGE1: CompetitionType.STAGE1,
    SeasonPhase.STAGE1_PLAYOFFS: CompetitionType.STAGE1,
    SeasonPhase.MASTERS2: CompetitionType.MASTERS,
    SeasonPhase.STAGE2: CompetitionType.STAGE2,
    SeasonPhase.STAGE2_PLAYOFFS: CompetitionType.STAGE2,
    SeasonPhase.CHAMPIONS: CompetitionType.CHAMPIONS,
}


@dataclass(frozen=True)
class TournamentSchedule:
    tournament: Tournament
    matches: Tuple[ScheduledMatch, ...]
    events: Tuple[CalendarEvent, ...]


@dataclass(frozen=True)
class SeasonSchedule:
    tournaments: Tuple[Tournament, ...]
    matches: Tuple[ScheduledMatch, ...]
    events: Tuple[CalendarEvent, ...]
    phases: Tuple[PhaseSchedule, ...]


def get_tournament_name(phase: SeasonPhase, region: str) -> str:
    names = {
        SeasonPhase.KICKOFF: f'VCT {region} Kickoff',
        SeasonPhase.MASTERS1: 'VCT Masters Santiago',
        SeasonPhase.STAGE1: f'VCT {region} Stage 1',
        SeasonPhase.STAGE1_PLAYOFFS: f'VCT {region} Stage 1 Playoffs',
        SeasonPhase.MASTERS2: 'VCT Masters London',
        SeasonPhase.STAGE2: f'VCT {region} Stage 2',
        SeasonPhase.STAGE2_PLAYOFFS: f'VCT {region} Stage 2 Playoffs',
        SeasonPhase.CHAMPIONS: 'VCT Champions',
        SeasonPhase.OFFSEASON: 'Offseason',
    }
    return names[phase]


def get_phase_dates(year: int, config: Optional[Dict] = None) -> List[Tuple[SeasonPhase, date, date]]:
    """Consecutive (phase, start, end) ranges from 1 January, in season order."""
    durations = (config or load_config())['phase_durations']
    ranges = []
    start = date(year, 1, 1)
    for phase in SEASON_LAYOUT:
        end = start + timedelta(days=durations[phase.value])
        ranges.append((phase, start, end))
        start = end
    return ranges


def get_match_count_for_round_robin(team_count: int) -> int:
    """Each team plays every other team once."""
    return team_count * (team_count - 1) // 2


def generate_round_robin_dates(team_count: int, start_date: date, matches_per_day: int = 2) -> List[date]:
    """Estimated match dates, ``matches_per_day`` matches on each day."""
    return [
        start_date + timedelta(days=index // matches_per_day)
        for index in range(get_match_count_for_round_robin(team_count))
    ]


def generate_matches_from_tournament(tournament: Tournament) -> List[ScheduledMatch]:
    """
    Scheduled matches for every bracket match whose two teams are known.

    Round robin matches are spread two per day from the start date; other
    formats use the match's own date or the tournament start.
    """
    bracket_matches = [m for m in iter_matches(tournament.bracket) if m.team_a_id and m.team_b_id]

    if tournament.format == BracketFormat.ROUND_ROBIN:
        dates = [d.isoformat() for d in generate_round_robin_dates(
            len(tournament.team_ids), date.fromisoformat(tournament.start_date))]
    else:
        dates = []

    matches = []
    for index, bracket_match in enumerate(bracket_matches):
        if bracket_match.scheduled_date:
            scheduled = bracket_match.scheduled_date
        elif index < len(dates):
            scheduled = dates[index]
        else:
            scheduled = tournament.start_date
        matches.append(ScheduledMatch(
            id=f'{tournament.id}-match-{index}',
            team_a_id=bracket_match.team_a_id,
            team_b_id=bracket_match.team_b_id,
            scheduled_date=scheduled,
            tournament_id=tournament.id,
        ))
    return matches


def generate_tournament_events(tournament: Tournament) -> List[CalendarEvent]:
    """Start and end calendar events for a tournament."""
    data = {'tournament_id': tournament.id, 'name': tournament.name}
    return [
        CalendarEvent(id=f'{tournament.id}-start', type='tournament_start',
                      date=tournament.start_date, data=dict(data)),
        CalendarEvent(id=f'{tournament.id}-end', type='tournament_end',
                      date=tournament.end_date, data=dict(data)),
    ]


def _schedule(tournament: Tournament) -> TournamentSchedule:
    return TournamentSchedule(
        tournament=tournament,
        matches=tuple(generate_matches_from_tournament(tournament)),
        events=tuple(generate_tournament_events(tournament)),
    )


def generate_kickoff_schedule(team_ids: Sequence[str], region: str, start_date: date,
                              rng: Optional[random.Random] = None,
                              config: Optional[Dict] = None) -> TournamentSchedule:
    tournament = create_tournament(
        get_tournament_name(SeasonPhase.KICKOFF, region), CompetitionType.KICKOFF,
        BracketFormat.TRIPLE_ELIM, region, team_ids, start_date, rng=rng, config=config,
    )
    return _schedule(tournament)


def generate_stage_schedule(stage: int, team_ids: Sequence[str], region: str, start_date: date,
                            config: Optional[Dict] = None) -> TournamentSchedule:
    """League split ``stage`` (1 or 2) as a single round robin group."""
    phase = SeasonPhase.STAGE1 if stage == 1 else SeasonPhase.STAGE2
    tournament = create_tournament(
        get_tournament_name(phase, region), PHASE_COMPETITION_TYPES[phase],
        BracketFormat.ROUND_ROBIN, region, team_ids, start_date, config=config,
    )
    return _schedule(tournament)


def generate_stage_playoffs_schedule(stage: int, team_ids: Sequence[str], region: str, start_date: date,
                                     config: Optional[Dict] = None) -> TournamentSchedule:
    """Double elimination playoffs for the top teams of a league split."""
    config = config or load_config()
    phase = SeasonPhase.STAGE1_PLAYOFFS if stage == 1 else SeasonPhase.STAGE2_PLAYOFFS
    participants = list(team_ids[:config['qualification_counts']['stage_playoffs']])
    tournament = create_tournament(
        get_tournament_name(phase, region), PHASE_COMPETITION_TYPES[phase],
        BracketFormat.DOUBLE_ELIM, region, participants, start_date, config=config,
    )
    return _schedule(tournament)


def generate_masters_schedule(event: int, team_ids: Sequence[str], start_date: date,
                              config: Optional[Dict] = None) -> TournamentSchedule:
    """Masters event 1 or 2 for the region's top teams."""
    config = config or load_config()
    phase = SeasonPhase.MASTERS1 if event == 1 else SeasonPhase.MASTERS2
    participants = list(team_ids[:config['qualification_counts']['masters']])
    tournament = create_tournament(
        get_tournament_name(phase, INTERNATIONAL), CompetitionType.MASTERS,
        get_default_format(CompetitionType.MASTERS), INTERNATIONAL, participants, start_date, config=config,
    )
    return _schedule(tournament)


def generate_champions_schedule(team_ids: Sequence[str], start_date: date,
                                config: Optional[Dict] = None) -> TournamentSchedule:
    config = config or load_config()
    participants = list(team_ids[:config['qualification_counts']['champions']])
    tournament = create_tournament(
        get_tournament_name(SeasonPhase.CHAMPIONS, INTERNATIONAL), CompetitionType.CHAMPIONS,
        get_default_format(CompetitionType.CHAMPIONS), INTERNATIONAL, participants, start_date, config=config,
    )
    return _schedule(tournament)


def generate_phase_schedule(phase: SeasonPhase, region: str, team_ids: Sequence[str], start_date: date,
                            rng: Optional[random.Random] = None,
                            config: Optional[Dict] = None) -> Optional[TournamentSchedule]:
    """Tournament schedule for one phase, or None for the offseason."""
    if phase == SeasonPhase.KICKOFF:
        return generate_kickoff_schedule(team_ids, region, start_date, rng, config)
    elif phase in (SeasonPhase.STAGE1, SeasonPhase.STAGE2):
        return generate_stage_schedule(1 if phase == SeasonPhase.STAGE1 else 2,
                                       team_ids, region, start_date, config)
    elif phase in (SeasonPhase.STAGE1_PLAYOFFS, SeasonPhase.STAGE2_PLAYOFFS):
        return generate_stage_playoffs_schedule(1 if phase == SeasonPhase.STAGE1_PLAYOFFS else 2,
                                                team_ids, region, start_date, config)
    elif phase in (SeasonPhase.MASTERS1, SeasonPhase.MASTERS2):
        return generate_masters_schedule(1 if phase == SeasonPhase.MASTERS1 else 2,
                                         team_ids, start_date, config)
    elif phase == SeasonPhase.CHAMPIONS:
        return generate_champions_schedule(team_ids, start_date, config)
    return None


def generate_season(year: int, region: str, team_ids: Sequence[str],
                    rng: Optional[random.Random] = None, config: Optional[Dict] = None) -> SeasonSchedule:
    """
    Generate a complete season for one region.

    Returns every tournament, scheduled match and calendar event, plus the
    date range of each phase. Qualified fields for Masters, Champions and
    stage playoffs are taken from the head of ``team_ids``.
    """
    config = config or load_config()
    tournaments = []
    matches = []
    events = []
    phases = []

    for phase, start, end in get_phase_dates(year, config):
        tournament_schedule = generate_phase_schedule(phase, region, team_ids, start, rng, config)
        tournament_id = None
        if tournament_schedule is not None:
            tournaments.append(tournament_schedule.tournament)
            matches.extend(tournament_schedule.matches)
            events.extend(tournament_schedule.events)
            tournament_id = tournament_schedule.tournament.id

        phases.append(PhaseSchedule(phase, start.isoformat(), end.isoformat(), tournament_id))
        events.append(CalendarEvent(
            id=f'phase-{phase.value}-start-{year}',
            type='tournament_start',
            date=start.isoformat(),
            data={'phase': phase.value, 'title': f'{get_phase_name(phase)} Begins'},
        ))

    logger.info(f'Generated {year} season for {region}: {len(tournaments)} tournaments, {len(matches)} matches')

    return SeasonSchedule(
        tournaments=tuple(tournaments),
        matches=tuple(matches),
        events=tuple(events),
        phases=tuple(phases),
    )
