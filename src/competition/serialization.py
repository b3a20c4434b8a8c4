"""
Conversion between value types and plain dicts.

The dicts hold only str, int, bool, None, lists and dicts, so they can be
written with ``yaml.safe_dump`` and read back with ``yaml.safe_load``.
"""
from typing import Dict, Optional

from .models import (
    BracketFormat,
    BracketMatch,
    BracketRound,
    BracketStructure,
    BracketType,
    ByeSource,
    ChampionDestination,
    CompetitionType,
    Destination,
    EliminatedDestination,
    LoserSource,
    MapResult,
    MatchDestination,
    MatchResult,
    MatchStatus,
    MultiStageTournament,
    PlacementDestination,
    SeedSource,
    SwissRound,
    SwissStage,
    SwissTeamRecord,
    SwissTeamStatus,
    TeamSource,
    Tournament,
    TournamentStage,
    TournamentStatus,
    WinnerSource,
)


def source_to_dict(source: TeamSource) -> Dict:
    if isinstance(source, SeedSource):
        return {'type': 'seed', 'seed': source.seed}
    elif isinstance(source, WinnerSource):
        return {'type': 'winner', 'match_id': source.match_id}
    elif isinstance(source, LoserSource):
        return {'type': 'loser', 'match_id': source.match_id}
    return {'type': 'bye'}


def source_from_dict(data: Dict) -> TeamSource:
    kind = data['type']
    if kind == 'seed':
        return SeedSource(data['seed'])
    elif kind == 'winner':
        return WinnerSource(data['match_id'])
    elif kind == 'loser':
        return LoserSource(data['match_id'])
    elif kind == 'bye':
        return ByeSource()
    raise ValueError(f'Unknown team source type: {kind}')


def destination_to_dict(destination: Destination) -> Dict:
    if isinstance(destination, MatchDestination):
        return {'type': 'match', 'match_id': destination.match_id}
    elif isinstance(destination, ChampionDestination):
        return {'type': 'champion'}
    elif isinstance(destination, PlacementDestination):
        return {'type': 'placement', 'place': destination.place}
    return {'type': 'eliminated'}


def destination_from_dict(data: Dict) -> Destination:
    kind = data['type']
    if kind == 'match':
        return MatchDestination(data['match_id'])
    elif kind == 'champion':
        return ChampionDestination()
    elif kind == 'placement':
        return PlacementDestination(data['place'])
    elif kind == 'eliminated':
        return EliminatedDestination()
    raise ValueError(f'Unknown destination type: {kind}')


def match_result_to_dict(result: MatchResult) -> Dict:
    return {
        'match_id': result.match_id,
        'winner_id': result.winner_id,
        'loser_id': result.loser_id,
        'maps': [
            {
                'map_name': m.map_name,
                'team_a_score': m.team_a_score,
                'team_b_score': m.team_b_score,
                'winner_id': m.winner_id,
            }
            for m in result.maps
        ],
        'score_team_a': result.score_team_a,
        'score_team_b': result.score_team_b,
        'duration': result.duration,
    }


def match_result_from_dict(data: Dict) -> MatchResult:
    return MatchResult(
        match_id=data['match_id'],
        winner_id=data['winner_id'],
        loser_id=data['loser_id'],
        maps=tuple(MapResult(**m) for m in data.get('maps', [])),
        score_team_a=data.get('score_team_a', 0),
        score_team_b=data.get('score_team_b', 0),
        duration=data.get('duration', 0),
    )


def match_to_dict(match: BracketMatch) -> Dict:
    return {
        'match_id': match.match_id,
        'round_id': match.round_id,
        'team_a_source': source_to_dict(match.team_a_source),
        'team_b_source': source_to_dict(match.team_b_source),
        'winner_destination': destination_to_dict(match.winner_destination),
        'loser_destination': destination_to_dict(match.loser_destination),
        'team_a_id': match.team_a_id,
        'team_b_id': match.team_b_id,
        'status': match.status.value,
        'winner_id': match.winner_id,
        'loser_id': match.loser_id,
        'result': match_result_to_dict(match.result) if match.result else None,
        'scheduled_date': match.scheduled_date,
    }


def match_from_dict(data: Dict) -> BracketMatch:
    return BracketMatch(
        match_id=data['match_id'],
        round_id=data['round_id'],
        team_a_source=source_from_dict(data['team_a_source']),
        team_b_source=source_from_dict(data['team_b_source']),
        winner_destination=destination_from_dict(data['winner_destination']),
        loser_destination=destination_from_dict(data['loser_destination']),
        team_a_id=data.get('team_a_id'),
        team_b_id=data.get('team_b_id'),
        status=MatchStatus(data.get('status', 'pending')),
        winner_id=data.get('winner_id'),
        loser_id=data.get('loser_id'),
        result=match_result_from_dict(data['result']) if data.get('result') else None,
        scheduled_date=data.get('scheduled_date'),
    )


def _rounds_to_list(rounds):
    if rounds is None:
        return None
    return [
        {
            'round_id': r.round_id,
            'round_number': r.round_number,
            'bracket_type': r.bracket_type.value,
            'matches': [match_to_dict(m) for m in r.matches],
        }
        for r in rounds
    ]


def _rounds_from_list(data):
    if data is None:
        return None
    return tuple(
        BracketRound(
            round_id=r['round_id'],
            round_number=r['round_number'],
            bracket_type=BracketType(r['bracket_type']),
            matches=tuple(match_from_dict(m) for m in r['matches']),
        )
        for r in data
    )


def bracket_to_dict(bracket: BracketStructure) -> Dict:
    return {
        'format': bracket.format.value,
        'upper': _rounds_to_list(bracket.upper),
        'middle': _rounds_to_list(bracket.middle),
        'lower': _rounds_to_list(bracket.lower),
        'grandfinal': match_to_dict(bracket.grandfinal) if bracket.grandfinal else None,
    }


def bracket_from_dict(data: Dict) -> BracketStructure:
    return BracketStructure(
        format=BracketFormat(data['format']),
        upper=_rounds_from_list(data.get('upper') or []),
        middle=_rounds_from_list(data.get('middle')),
        lower=_rounds_from_list(data.get('lower')),
        grandfinal=match_from_dict(data['grandfinal']) if data.get('grandfinal') else None,
    )


def swiss_stage_to_dict(stage: SwissStage) -> Dict:
    return {
        'rounds': [
            {
                'round_number': r.round_number,
                'matches': [match_to_dict(m) for m in r.matches],
                'completed': r.completed,
            }
            for r in stage.rounds
        ],
        'standings': [
            {
                'team_id': s.team_id,
                'seed': s.seed,
                'wins': s.wins,
                'losses': s.losses,
                'round_diff': s.round_diff,
                'opponent_ids': list(s.opponent_ids),
                'status': s.status.value,
            }
            for s in stage.standings
        ],
        'current_round': stage.current_round,
        'total_rounds': stage.total_rounds,
        'wins_to_qualify': stage.wins_to_qualify,
        'losses_to_eliminate': stage.losses_to_eliminate,
        'qualified_team_ids': list(stage.qualified_team_ids),
        'eliminated_team_ids': list(stage.eliminated_team_ids),
    }


def swiss_stage_from_dict(data: Dict) -> SwissStage:
    return SwissStage(
        rounds=tuple(
            SwissRound(
                round_number=r['round_number'],
                matches=tuple(match_from_dict(m) for m in r['matches']),
                completed=r.get('completed', False),
            )
            for r in data['rounds']
        ),
        standings=tuple(
            SwissTeamRecord(
                team_id=s['team_id'],
                seed=s['seed'],
                wins=s.get('wins', 0),
                losses=s.get('losses', 0),
                round_diff=s.get('round_diff', 0),
                opponent_ids=tuple(s.get('opponent_ids', [])),
                status=SwissTeamStatus(s.get('status', 'active')),
            )
            for s in data['standings']
        ),
        current_round=data['current_round'],
        total_rounds=data['total_rounds'],
        wins_to_qualify=data['wins_to_qualify'],
        losses_to_eliminate=data['losses_to_eliminate'],
        qualified_team_ids=tuple(data.get('qualified_team_ids', [])),
        eliminated_team_ids=tuple(data.get('eliminated_team_ids', [])),
    )


def tournament_to_dict(tournament: Tournament) -> Dict:
    data = {
        'id': tournament.id,
        'name': tournament.name,
        'type': tournament.type.value,
        'format': tournament.format.value,
        'region': tournament.region,
        'team_ids': list(tournament.team_ids),
        'start_date': tournament.start_date,
        'end_date': tournament.end_date,
        'prize_pool': dict(tournament.prize_pool),
        'bracket': bracket_to_dict(tournament.bracket),
        'status': tournament.status.value,
        'champion_id': tournament.champion_id,
    }
    if isinstance(tournament, MultiStageTournament):
        data.update({
            'swiss_stage': swiss_stage_to_dict(tournament.swiss_stage) if tournament.swiss_stage else None,
            'current_stage': tournament.current_stage.value,
            'swiss_team_ids': list(tournament.swiss_team_ids),
            'playoff_only_team_ids': list(tournament.playoff_only_team_ids),
        })
    return data


def tournament_from_dict(data: Dict) -> Tournament:
    """Rebuild a tournament; dicts carrying a Swiss stage become MultiStageTournament."""
    fields = dict(
        id=data['id'],
        name=data['name'],
        type=CompetitionType(data['type']),
        format=BracketFormat(data['format']),
        region=data['region'],
        team_ids=tuple(data['team_ids']),
        start_date=data['start_date'],
        end_date=data['end_date'],
        prize_pool={int(place): amount for place, amount in data.get('prize_pool', {}).items()},
        bracket=bracket_from_dict(data['bracket']),
        status=TournamentStatus(data.get('status', 'upcoming')),
        champion_id=data.get('champion_id'),
    )
    if 'current_stage' not in data:
        return Tournament(**fields)

    swiss_stage: Optional[SwissStage] = None
    if data.get('swiss_stage'):
        swiss_stage = swiss_stage_from_dict(data['swiss_stage'])
    return MultiStageTournament(
        **fields,
        swiss_stage=swiss_stage,
        current_stage=TournamentStage(data['current_stage']),
        swiss_team_ids=tuple(data.get('swiss_team_ids', [])),
        playoff_only_team_ids=tuple(data.get('playoff_only_team_ids', [])),
    )
