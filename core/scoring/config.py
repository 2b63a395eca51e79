"""
Loading of the declarative scoring configuration.

The configuration is a JSON document so weights and tiers can change
without code changes. The bundled default lives next to this module;
SCORING_CONFIG_PATH (see utils.config) points to a replacement.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Final, Optional, Union

from .models import ScoringConfig


logger = logging.getLogger(__name__)

DEFAULT_SCORING_CONFIG_PATH: Final[Path] = Path(__file__).parent / "scoring_config.json"


def load_scoring_config(path: Optional[Union[str, Path]] = None) -> ScoringConfig:
    """
    Load a scoring configuration from a JSON file.

    Args:
        path: Config file path. Defaults to the bundled configuration.

    Returns:
        Parsed ScoringConfig

    Raises:
        FileNotFoundError: If the file does not exist
        ValueError: If the file is not valid JSON or not a valid config
    """
    config_path = Path(path) if path else DEFAULT_SCORING_CONFIG_PATH

    try:
        data = json.loads(config_path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as e:
        raise ValueError(f"Invalid scoring config JSON in {config_path}: {e}") from e

    config = ScoringConfig.from_dict(data)
    logger.info(
        "Loaded scoring config from %s (%d metrics, %d tiers)",
        config_path,
        len(config.metrics),
        len(config.recommendation_tiers),
    )
    return config
