"""
Value types shared by the bracket, Swiss, tournament and season modules.

Every type here is a frozen dataclass. Operations never mutate a value in
place; they build a new one with ``dataclasses.replace``.
"""
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional, Tuple, Union


class BracketFormat(str, Enum):
    SINGLE_ELIM = 'single_elim'
    DOUBLE_ELIM = 'double_elim'
    TRIPLE_ELIM = 'triple_elim'
    ROUND_ROBIN = 'round_robin'
    SWISS_TO_PLAYOFF = 'swiss_to_playoff'


class CompetitionType(str, Enum):
    KICKOFF = 'kickoff'
    STAGE1 = 'stage1'
    STAGE2 = 'stage2'
    MASTERS = 'masters'
    CHAMPIONS = 'champions'


class MatchStatus(str, Enum):
    PENDING = 'pending'
    READY = 'ready'
    COMPLETED = 'completed'


class BracketType(str, Enum):
    UPPER = 'upper'
    MIDDLE = 'middle'
    LOWER = 'lower'


class TournamentStatus(str, Enum):
    UPCOMING = 'upcoming'
    IN_PROGRESS = 'in_progress'
    COMPLETED = 'completed'


class SwissTeamStatus(str, Enum):
    ACTIVE = 'active'
    QUALIFIED = 'qualified'
    ELIMINATED = 'eliminated'


class TournamentStage(str, Enum):
    SWISS = 'swiss'
    PLAYOFF = 'playoff'


class SeasonPhase(str, Enum):
    OFFSEASON = 'offseason'
    KICKOFF = 'kickoff'
    MASTERS1 = 'masters1'
    STAGE1 = 'stage1'
    STAGE1_PLAYOFFS = 'stage1_playoffs'
    MASTERS2 = 'masters2'
    STAGE2 = 'stage2'
    STAGE2_PLAYOFFS = 'stage2_playoffs'
    CHAMPIONS = 'champions'


# Team sources: where a match slot's occupant comes from.

@dataclass(frozen=True)
class SeedSource:
    seed: int


@dataclass(frozen=True)
class WinnerSource:
    match_id: str


@dataclass(frozen=True)
class LoserSource:
    match_id: str


@dataclass(frozen=True)
class ByeSource:
    pass


TeamSource = Union[SeedSource, WinnerSource, LoserSource, ByeSource]


# Destinations: where a match's winner or loser goes next.

@dataclass(frozen=True)
class MatchDestination:
    match_id: str


@dataclass(frozen=True)
class ChampionDestination:
    pass


@dataclass(frozen=True)
class PlacementDestination:
    place: int


@dataclass(frozen=True)
class EliminatedDestination:
    pass


Destination = Union[MatchDestination, ChampionDestination, PlacementDestination, EliminatedDestination]


@dataclass(frozen=True)
class MapResult:
    map_name: str
    team_a_score: int
    team_b_score: int
    winner_id: str

    def rounds_for(self, team_id: str) -> Tuple[int, int]:
        """Return (rounds won, rounds lost) on this map for ``team_id``."""
        high = max(self.team_a_score, self.team_b_score)
        low = min(self.team_a_score, self.team_b_score)
        if team_id == self.winner_id:
            return high, low
        return low, high


@dataclass(frozen=True)
class MatchResult:
    """Outcome handed over by the match simulator. Opaque to the bracket."""
    match_id: str
    winner_id: str
    loser_id: str
    maps: Tuple[MapResult, ...] = ()
    score_team_a: int = 0
    score_team_b: int = 0
    duration: int = 0

    def round_diff_for(self, team_id: str) -> int:
        diff = 0
        for map_result in self.maps:
            won, lost = map_result.rounds_for(team_id)
            diff += won - lost
        return diff


@dataclass(frozen=True)
class BracketMatch:
    match_id: str
    round_id: str
    team_a_source: TeamSource
    team_b_source: TeamSource
    winner_destination: Destination
    loser_destination: Destination
    team_a_id: Optional[str] = None
    team_b_id: Optional[str] = None
    status: MatchStatus = MatchStatus.PENDING
    winner_id: Optional[str] = None
    loser_id: Optional[str] = None
    result: Optional[MatchResult] = None
    scheduled_date: Optional[str] = None

    @property
    def team_ids(self) -> Tuple[Optional[str], Optional[str]]:
        return self.team_a_id, self.team_b_id

    @property
    def is_bye(self) -> bool:
        return isinstance(self.team_a_source, ByeSource) or isinstance(self.team_b_source, ByeSource)


@dataclass(frozen=True)
class BracketRound:
    round_id: str
    round_number: int
    bracket_type: BracketType
    matches: Tuple[BracketMatch, ...] = ()


@dataclass(frozen=True)
class BracketStructure:
    format: BracketFormat
    upper: Tuple[BracketRound, ...] = ()
    middle: Optional[Tuple[BracketRound, ...]] = None
    lower: Optional[Tuple[BracketRound, ...]] = None
    grandfinal: Optional[BracketMatch] = None


@dataclass(frozen=True)
class SwissTeamRecord:
    team_id: str
    seed: int
    wins: int = 0
    losses: int = 0
    round_diff: int = 0
    opponent_ids: Tuple[str, ...] = ()
    status: SwissTeamStatus = SwissTeamStatus.ACTIVE

    @property
    def record(self) -> str:
        return f"{self.wins}-{self.losses}"


@dataclass(frozen=True)
class SwissRound:
    round_number: int
    matches: Tuple[BracketMatch, ...] = ()
    completed: bool = False


@dataclass(frozen=True)
class SwissStage:
    rounds: Tuple[SwissRound, ...]
    standings: Tuple[SwissTeamRecord, ...]
    current_round: int
    total_rounds: int
    wins_to_qualify: int
    losses_to_eliminate: int
    qualified_team_ids: Tuple[str, ...] = ()
    eliminated_team_ids: Tuple[str, ...] = ()


@dataclass(frozen=True)
class Tournament:
    id: str
    name: str
    type: CompetitionType
    format: BracketFormat
    region: str
    team_ids: Tuple[str, ...]
    start_date: str
    end_date: str
    prize_pool: Dict[int, int] = field(hash=False)
    bracket: BracketStructure
    status: TournamentStatus = TournamentStatus.UPCOMING
    champion_id: Optional[str] = None


@dataclass(frozen=True)
class MultiStageTournament(Tournament):
    swiss_stage: Optional[SwissStage] = None
    current_stage: TournamentStage = TournamentStage.SWISS
    swiss_team_ids: Tuple[str, ...] = ()
    playoff_only_team_ids: Tuple[str, ...] = ()


@dataclass(frozen=True)
class StandingsEntry:
    team_id: str
    team_name: str
    wins: int = 0
    losses: int = 0
    round_diff: int = 0
    placement: Optional[int] = None


@dataclass(frozen=True)
class ValidationResult:
    valid: bool
    error: Optional[str] = None


@dataclass(frozen=True)
class Qualifiers:
    """Arm winners of a triple elimination bracket."""
    alpha: Optional[str] = None
    beta: Optional[str] = None
    omega: Optional[str] = None

    def as_list(self) -> List[str]:
        return [team for team in (self.alpha, self.beta, self.omega) if team]


@dataclass(frozen=True)
class ScheduledMatch:
    id: str
    team_a_id: str
    team_b_id: str
    scheduled_date: str
    tournament_id: Optional[str] = None
    status: str = 'scheduled'


@dataclass(frozen=True)
class CalendarEvent:
    id: str
    type: str
    date: str
    data: Dict[str, str] = field(default_factory=dict, hash=False)
    processed: bool = False
    required: bool = False


@dataclass(frozen=True)
class PhaseSchedule:
    """Date range of one season phase. Dates are ISO strings."""
    phase: SeasonPhase
    start_date: str
    end_date: str
    tournament_id: Optional[str] = None
