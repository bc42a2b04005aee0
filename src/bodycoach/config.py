"""
Configuration

Loads settings from config/bodycoach.yaml when present, else uses defaults.
Environment variables (optionally from .env) override both.
"""

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional

import yaml
from dotenv import load_dotenv

from .catalog import DEFAULT_CATALOG_PATH

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = Path(__file__).parent.parent.parent / 'config' / 'bodycoach.yaml'


def load_config_yaml(path: Optional[Path] = None) -> Dict[str, Any]:
    """
    Load configuration from YAML file, return empty dict if not found.

    The default path is the repo-level config/bodycoach.yaml, which only
    exists in a source checkout or editable install. An installed wheel has
    no such file and runs on defaults plus environment overrides.
    """
    config_path = Path(path) if path else DEFAULT_CONFIG_PATH
    if config_path.exists():
        with open(config_path) as f:
            return yaml.safe_load(f) or {}
    return {}


@dataclass
class CoachConfig:
    """Runtime settings for the coaching engine and local store."""

    data_dir: Path = field(default_factory=lambda: Path.home() / '.bodycoach')
    catalog_path: Path = DEFAULT_CATALOG_PATH
    default_unit: str = 'lb'
    log_level: str = 'WARNING'

    # Weekly signals
    recent_window_days: int = 7
    fatigue_min_samples: int = 3  # Need this many ratings before flagging fatigue
    fatigue_hard_ratio: float = 0.5  # Share of "hard" ratings that counts as fatigue

    session_list_limit: int = 500

    @classmethod
    def from_yaml(cls, path: Optional[Path] = None) -> 'CoachConfig':
        """Load config from YAML file."""
        yaml_config = load_config_yaml(path)

        kwargs = {}

        if 'storage' in yaml_config:
            st = yaml_config['storage']
            if st.get('data_dir'):
                kwargs['data_dir'] = Path(st['data_dir']).expanduser()
            if st.get('catalog_path'):
                kwargs['catalog_path'] = Path(st['catalog_path']).expanduser()
            kwargs['session_list_limit'] = st.get('session_list_limit', 500)

        if 'signals' in yaml_config:
            sg = yaml_config['signals']
            kwargs['recent_window_days'] = sg.get('recent_window_days', 7)
            kwargs['fatigue_min_samples'] = sg.get('fatigue_min_samples', 3)
            kwargs['fatigue_hard_ratio'] = sg.get('fatigue_hard_ratio', 0.5)

        if 'default_unit' in yaml_config:
            kwargs['default_unit'] = yaml_config['default_unit']
        if 'log_level' in yaml_config:
            kwargs['log_level'] = str(yaml_config['log_level']).upper()

        return cls(**kwargs)


def load_config(path: Optional[Path] = None) -> CoachConfig:
    """Build config from YAML, then apply BODYCOACH_* environment overrides."""
    load_dotenv()

    config = CoachConfig.from_yaml(path)

    if os.getenv('BODYCOACH_DATA_DIR'):
        config.data_dir = Path(os.environ['BODYCOACH_DATA_DIR']).expanduser()
    if os.getenv('BODYCOACH_CATALOG'):
        config.catalog_path = Path(os.environ['BODYCOACH_CATALOG']).expanduser()
    if os.getenv('BODYCOACH_LOG_LEVEL'):
        config.log_level = os.environ['BODYCOACH_LOG_LEVEL'].upper()
    if os.getenv('BODYCOACH_UNIT'):
        config.default_unit = os.environ['BODYCOACH_UNIT']

    logger.debug("Loaded config: data_dir=%s catalog=%s", config.data_dir, config.catalog_path)
    return config
