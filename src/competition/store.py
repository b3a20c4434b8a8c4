"""
File-backed tournament store.

One YAML document per tournament under ``data_dir``. Every read-modify-write
runs inside a ``FileLock`` so two results for the same bracket are never
applied concurrently.
"""
import logging
import os
from typing import Callable, List, Optional

import yaml
from filelock import FileLock

from .models import MatchResult, Tournament
from .serialization import tournament_from_dict, tournament_to_dict
from .tournaments import record_match_result

logger = logging.getLogger(__name__)

LOCK_TIMEOUT = 10


class TournamentNotFoundError(KeyError):
    """Raised when a tournament id has no stored document."""


class TournamentStore:
    def __init__(self, data_dir: str, config: Optional[dict] = None):
        self.data_dir = data_dir
        self.config = config
        os.makedirs(data_dir, exist_ok=True)
        self._lock = FileLock(os.path.join(data_dir, '.lock'), timeout=LOCK_TIMEOUT)

    def _path(self, tournament_id: str) -> str:
        return os.path.join(self.data_dir, f'{tournament_id}.yaml')

    def save(self, tournament: Tournament):
        """Write the tournament, replacing any stored version."""
        with self._lock:
            with open(self._path(tournament.id), 'w', encoding='utf-8') as f:
                yaml.dump(tournament_to_dict(tournament), f, default_flow_style=False)
        logger.debug(f'Saved tournament {tournament.id}')

    def load(self, tournament_id: str) -> Tournament:
        path = self._path(tournament_id)
        with self._lock:
            if not os.path.exists(path):
                raise TournamentNotFoundError(tournament_id)
            with open(path, 'r', encoding='utf-8') as f:
                data = yaml.safe_load(f)
        if not data:
            raise TournamentNotFoundError(tournament_id)
        return tournament_from_dict(data)

    def exists(self, tournament_id: str) -> bool:
        return os.path.exists(self._path(tournament_id))

    def list_ids(self) -> List[str]:
        """Ids of all stored tournaments, sorted."""
        return sorted(
            name[:-len('.yaml')]
            for name in os.listdir(self.data_dir)
            if name.endswith('.yaml')
        )

    def delete(self, tournament_id: str):
        with self._lock:
            path = self._path(tournament_id)
            if not os.path.exists(path):
                raise TournamentNotFoundError(tournament_id)
            os.remove(path)
        logger.info(f'Deleted tournament {tournament_id}')

    def update(self, tournament_id: str, fn: Callable[[Tournament], Tournament]) -> Tournament:
        """
        Apply ``fn`` to the stored tournament and save the result.

        Load, transform and save happen under one lock acquisition.
        """
        with self._lock:
            tournament = self.load(tournament_id)
            updated = fn(tournament)
            if updated is not tournament:
                self.save(updated)
        return updated

    def complete_match(self, tournament_id: str, match_id: str, result: MatchResult) -> Tournament:
        """Record a match result against the stored tournament."""
        return self.update(
            tournament_id,
            lambda tournament: record_match_result(tournament, match_id, result, self.config),
        )
