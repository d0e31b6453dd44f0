"""
Configuration management for calibration storage and the chessboard solver.
"""

from dataclasses import dataclass, field
from pathlib import Path

import yaml


@dataclass
class StorageConfig:
    """Where calibration and preferences are kept."""

    data_dir: Path = field(default_factory=lambda: Path("."))
    calibration_file: str = "camera_calibr.dat"
    preferences_file: str = "preferences.yaml"

    @property
    def calibration_path(self) -> Path:
        return self.data_dir / self.calibration_file

    @property
    def preferences_path(self) -> Path:
        return self.data_dir / self.preferences_file


@dataclass
class TargetConfig:
    """Chessboard calibration target."""

    columns: int = 10  # squares
    rows: int = 7  # squares
    square_size_mm: float = 31.5


@dataclass
class SolverConfig:
    """Calibration solver options."""

    max_images: int = 30
    min_images: int = 3
    radial_terms: int = 2
    flip_y: bool = False
    show_progress: bool = False


@dataclass
class Config:
    """Main configuration container."""

    storage: StorageConfig = field(default_factory=StorageConfig)
    target: TargetConfig = field(default_factory=TargetConfig)
    solver: SolverConfig = field(default_factory=SolverConfig)

    verbose: bool = False

    @classmethod
    def from_yaml(cls, path: Path) -> "Config":
        """Load configuration from YAML file."""
        with open(path, "r") as f:
            data = yaml.safe_load(f) or {}
        return cls._from_dict(data)

    @classmethod
    def _from_dict(cls, data: dict) -> "Config":
        """Create Config from dictionary."""
        config = cls()

        if "storage" in data:
            storage_data = dict(data["storage"])
            if "data_dir" in storage_data:
                storage_data["data_dir"] = Path(storage_data["data_dir"])
            config.storage = StorageConfig(**storage_data)
        if "target" in data:
            config.target = TargetConfig(**data["target"])
        if "solver" in data:
            config.solver = SolverConfig(**data["solver"])

        config.verbose = data.get("verbose", False)

        return config

    def to_yaml(self, path: Path) -> None:
        """Save configuration to YAML file."""
        import dataclasses

        def convert(obj):
            if dataclasses.is_dataclass(obj):
                return {k: convert(v) for k, v in dataclasses.asdict(obj).items()}
            elif isinstance(obj, dict):
                return {k: convert(v) for k, v in obj.items()}
            elif isinstance(obj, Path):
                return str(obj)
            return obj

        data = convert(self)
        with open(path, "w") as f:
            yaml.dump(data, f, default_flow_style=False, sort_keys=False)
