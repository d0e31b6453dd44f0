"""
Persisted user preferences: selected filter and adjustment seek bars.
"""

import logging
from dataclasses import asdict, dataclass, fields
from pathlib import Path
from typing import Union

import yaml

from .exceptions import StorageUnavailable
from .filters import FilterAdjustments

logger = logging.getLogger(__name__)


@dataclass
class Preferences:
    """User state kept between sessions."""

    filter_index: int = 0

    # Seek bar positions, 0..10
    brightness: int = 5
    contrast: int = 5
    saturation: int = 8
    corner_radius: int = 3

    def __post_init__(self):
        # Plain ints keep the YAML file free of Python-specific tags
        for f in fields(self):
            setattr(self, f.name, int(getattr(self, f.name)))

    def adjustments(self) -> FilterAdjustments:
        """Colour adjustments for the current seek bar positions."""
        return FilterAdjustments.from_progress(
            brightness=self.brightness,
            contrast=self.contrast,
            saturation=self.saturation,
            corner_radius=self.corner_radius,
        )

    @classmethod
    def load(cls, path: Union[str, Path]) -> "Preferences":
        """
        Load preferences from a YAML file.

        A missing file yields the defaults. Unknown keys are ignored.

        Raises:
            StorageUnavailable: if the file exists but cannot be read or parsed
        """
        path = Path(path)
        if not path.exists():
            logger.debug(f"No preferences at {path}, using defaults")
            return cls()

        try:
            with open(path, "r") as f:
                data = yaml.safe_load(f) or {}
        except (OSError, yaml.YAMLError) as e:
            raise StorageUnavailable(f"Could not read preferences {path}: {e}", path) from e

        if not isinstance(data, dict):
            raise StorageUnavailable(f"Preferences file {path} is not a mapping", path)

        known = {f.name for f in fields(cls)}
        try:
            return cls(**{k: int(v) for k, v in data.items() if k in known})
        except (TypeError, ValueError) as e:
            raise StorageUnavailable(f"Invalid value in preferences {path}: {e}", path) from e

    def save(self, path: Union[str, Path]) -> None:
        """
        Save preferences to a YAML file.

        Raises:
            StorageUnavailable: if the file cannot be written
        """
        path = Path(path)
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            with open(path, "w") as f:
                yaml.dump(asdict(self), f, default_flow_style=False, sort_keys=False)
        except OSError as e:
            raise StorageUnavailable(f"Could not write preferences {path}: {e}", path) from e
