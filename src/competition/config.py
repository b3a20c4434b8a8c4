"""
Competition configuration: prize tables, durations, team limits and
qualification counts.

Defaults live in ``get_default_config``. A YAML file can override any
top-level key; missing keys fall back to the defaults.
"""
import copy
import logging
import os
from typing import Dict, Optional

import yaml

logger = logging.getLogger(__name__)

CONFIG_ENV_VAR = 'COMPETITION_CONFIG'


def get_default_config() -> Dict:
    """Return the default competition configuration."""
    return {
        # Share of the prize pool per final placement.
        'prize_distributions': {
            'kickoff': {1: 0.40, 2: 0.20, 3: 0.12, 4: 0.08, 5: 0.05, 6: 0.05, 7: 0.05, 8: 0.05},
            'stage1': {1: 0.35, 2: 0.20, 3: 0.15, 4: 0.10, 5: 0.05, 6: 0.05, 7: 0.05, 8: 0.05},
            'stage2': {1: 0.35, 2: 0.20, 3: 0.15, 4: 0.10, 5: 0.05, 6: 0.05, 7: 0.05, 8: 0.05},
            'masters': {1: 0.35, 2: 0.20, 3: 0.15, 4: 0.10, 5: 0.05, 6: 0.05, 7: 0.05, 8: 0.05},
            'champions': {
                1: 0.30, 2: 0.18, 3: 0.12, 4: 0.08, 5: 0.06, 6: 0.06,
                7: 0.05, 8: 0.05, 9: 0.025, 10: 0.025, 11: 0.025, 12: 0.025,
            },
        },
        'default_prize_pools': {
            'kickoff': 500000,
            'stage1': 200000,
            'stage2': 200000,
            'masters': 1000000,
            'champions': 2500000,
        },
        # Tournament length in days, by format.
        'tournament_durations': {
            'single_elim': 3,
            'double_elim': 7,
            'triple_elim': 14,
            'round_robin': 35,
            'swiss_to_playoff': 18,
        },
        'team_limits': {
            'min_teams': 2,
            'max_teams': 64,
            'max_round_robin_teams': 20,
        },
        'swiss': {
            'total_rounds': 3,
            'wins_to_qualify': 2,
            'losses_to_eliminate': 2,
        },
        'qualification_counts': {
            'masters': 3,
            'champions': 2,
            'stage_playoffs': 8,
        },
        # Season phase length in days. Phases are laid out back to back.
        'phase_durations': {
            'kickoff': 14,
            'masters1': 7,
            'stage1': 56,
            'stage1_playoffs': 14,
            'masters2': 7,
            'stage2': 56,
            'stage2_playoffs': 14,
            'champions': 14,
            'offseason': 120,
        },
        'id_prefix_length': 12,
    }


def load_config(path: Optional[str] = None) -> Dict:
    """Load configuration from YAML, merging with defaults.

    ``path`` defaults to the ``COMPETITION_CONFIG`` environment variable.
    A missing or empty file yields the defaults.
    """
    defaults = get_default_config()
    path = path or os.environ.get(CONFIG_ENV_VAR)
    if not path or not os.path.exists(path):
        return defaults
    with open(path, 'r', encoding='utf-8') as f:
        try:
            data = yaml.safe_load(f)
        except yaml.YAMLError as e:
            logger.warning(f'Failed to parse {path}: {e}')
            return defaults
    if not data:
        return defaults
    merged = copy.deepcopy(data)
    for key, value in defaults.items():
        if key not in merged:
            merged[key] = value
        elif isinstance(value, dict) and isinstance(merged[key], dict):
            for sub_key, sub_value in value.items():
                merged[key].setdefault(sub_key, sub_value)
    return merged


def save_config(config: Dict, path: str):
    """Save configuration to a YAML file."""
    with open(path, 'w', encoding='utf-8') as f:
        yaml.dump(config, f, default_flow_style=False)
