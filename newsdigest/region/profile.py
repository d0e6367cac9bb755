"""Regional relevance profile.

Provides RegionContext for the region the digest serves; it feeds the
relevance, rewrite and digest prompts.
"""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

import yaml

logger = logging.getLogger(__name__)


@dataclass
class RegionContext:
    """Region the publication covers and what counts as a connection to it."""

    name: str
    country: str
    publication: str
    description: str = ""
    connections: list[str] = field(default_factory=list)

    def to_connections_prompt(self) -> str:
        """Bullet list of accepted connections for the relevance prompt."""
        return "\n".join(f"- {c}" for c in self.connections)


def load_default_region(config_path: Optional[Path] = None) -> RegionContext:
    """
    Load the region profile from YAML config.

    Args:
        config_path: Path to the region YAML (default: config/default_region.yaml)

    Returns:
        RegionContext, or a hardcoded Limerick fallback if the file is missing
    """
    if config_path is None:
        config_path = Path(__file__).parent.parent / "config" / "default_region.yaml"

    if not config_path.exists():
        logger.warning("Region config not found at %s, using hardcoded fallback", config_path)
        return RegionContext(
            name="Limerick",
            country="Ireland",
            publication="The Limerick Weekly",
            connections=[
                "Limerick city or county",
                "Munster (province that includes Limerick)",
                "Irish national news that affects Limerick",
            ],
        )

    with open(config_path) as f:
        data = yaml.safe_load(f) or {}

    return RegionContext(
        name=data.get("name", ""),
        country=data.get("country", ""),
        publication=data.get("publication", ""),
        description=data.get("description", ""),
        connections=data.get("connections", []),
    )
