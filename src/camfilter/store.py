"""
Calibration store shared between the control thread and the renderer.

The control side loads, replaces and persists calibration; the render side
reads one immutable snapshot per frame. Snapshots are swapped as a whole
under a lock, so a reader never sees new radial coefficients paired with a
stale centre. Persistence happens only on the control side.
"""

import dataclasses
import logging
import threading
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Optional, Tuple, Union

from .codec import load_with_fallback, save_intrinsics
from .exceptions import CalibrationSolveFailed, StorageUnavailable
from .filters import FilterAdjustments, FilterMode, FilterSelection, build_uniforms, select
from .intrinsics import IntrinsicModel
from .preferences import Preferences
from .render import RenderCalibration, derive

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CalibrationSnapshot:
    """An intrinsic model and its render-ready projection, published together."""

    model: IntrinsicModel
    render: RenderCalibration
    is_default: bool = False

    @classmethod
    def from_model(cls, model: IntrinsicModel, is_default: bool = False) -> "CalibrationSnapshot":
        return cls(model=model, render=derive(model), is_default=is_default)


class CalibrationStore:
    """
    Owner of the current calibration snapshot and filter choice.

    Writes (load, publish, calibration results, filter changes) come from a
    single control thread. The renderer calls snapshot(), current_selection()
    or frame_uniforms() once per frame; none of those touch storage.
    """

    def __init__(
        self,
        calibration_path: Union[str, Path],
        preferences_path: Optional[Union[str, Path]] = None,
    ):
        """
        Initialize store.

        Args:
            calibration_path: Binary calibration record
            preferences_path: YAML preferences file; None keeps preferences
                in memory only
        """
        self.calibration_path = Path(calibration_path)
        self.preferences_path = Path(preferences_path) if preferences_path else None

        self._lock = threading.Lock()
        self._snapshot: Optional[CalibrationSnapshot] = None
        self._preferences = Preferences()

    # ------------------------------------------------------------------
    # Session lifecycle
    # ------------------------------------------------------------------

    def load(self) -> CalibrationSnapshot:
        """
        Load preferences and calibration at session start.

        A missing, corrupt or unreadable calibration record yields the
        default model, published as a default snapshot. A stored undistort
        choice is reset to the default filter when no calibration exists.

        Returns:
            The published snapshot
        """
        if self.preferences_path is not None:
            try:
                self._preferences = Preferences.load(self.preferences_path)
            except StorageUnavailable as e:
                logger.error(f"{e}; using default preferences")
                self._preferences = Preferences()

        model, is_default = load_with_fallback(self.calibration_path)
        snapshot = self.publish(model, is_default=is_default)
        if not is_default:
            render = snapshot.render
            logger.info(
                f"Loaded calibration {render.im_width:.1f} x {render.im_height:.1f}, "
                f"radial {', '.join(f'{k:.4f}' for k in render.radial_tex[:2])}, "
                f"C: ({render.center_tex[0]:.1f}, {render.center_tex[1]:.1f})"
            )

        if self._preferences.filter_index == FilterMode.UNDISTORT and snapshot.is_default:
            logger.info("Undistort filter not available without calibration, using default")
            try:
                self.set_filter(FilterMode.DEFAULT)
            except StorageUnavailable as e:
                logger.error(f"{e}; filter reset kept for this session only")

        return snapshot

    def save(self) -> bool:
        """
        Persist the current calibration.

        Default snapshots are not written.

        Returns:
            True if a record was written

        Raises:
            StorageUnavailable: if the record cannot be written
        """
        snapshot = self.snapshot()
        if snapshot is None or snapshot.is_default:
            return False
        save_intrinsics(self.calibration_path, snapshot.model)
        return True

    # ------------------------------------------------------------------
    # Snapshot publication
    # ------------------------------------------------------------------

    def publish(self, model: IntrinsicModel, is_default: bool = False) -> CalibrationSnapshot:
        """Derive the render calibration once and swap in the new snapshot."""
        snapshot = CalibrationSnapshot.from_model(model, is_default=is_default)
        with self._lock:
            self._snapshot = snapshot
        return snapshot

    def snapshot(self) -> Optional[CalibrationSnapshot]:
        """Current snapshot, or None before load()."""
        with self._lock:
            return self._snapshot

    def has_calibration(self) -> bool:
        """Whether a stored or freshly solved calibration is published."""
        snapshot = self.snapshot()
        return snapshot is not None and not snapshot.is_default

    def on_calibration_completed(
        self,
        result: Union[IntrinsicModel, CalibrationSolveFailed, None],
    ) -> bool:
        """
        Handle the outcome of an external calibration solve.

        A successful result is published for the renderer and then written to
        storage. A failure leaves the current snapshot and stored record
        untouched.

        Args:
            result: Solved model, or the failure reported by the solver

        Returns:
            True if a new calibration was published

        Raises:
            StorageUnavailable: if the new calibration could not be persisted;
                it stays active for the current session
        """
        if not isinstance(result, IntrinsicModel):
            reason = result if result is not None else "no result"
            logger.info(f"Calibration failed: {reason}")
            return False

        logger.info(
            f"Calibration successful: {result.width}x{result.height}, "
            f"fx={result.fx:.2f}, fy={result.fy:.2f}, "
            f"cx={result.cx:.2f}, cy={result.cy:.2f}, radial={list(result.radial)}"
        )
        self.publish(result)
        save_intrinsics(self.calibration_path, result)
        return True

    # ------------------------------------------------------------------
    # Filter state
    # ------------------------------------------------------------------

    @property
    def filter_index(self) -> int:
        return self._preferences.filter_index

    @property
    def adjustments(self) -> FilterAdjustments:
        return self._preferences.adjustments()

    def set_filter(self, index: int) -> None:
        """Store the chosen filter list index and persist it."""
        self._preferences = dataclasses.replace(self._preferences, filter_index=int(index))
        self._save_preferences()

    def set_adjustments(self, **progress: int) -> None:
        """
        Update seek bar positions and persist them.

        Args:
            **progress: Any of brightness, contrast, saturation, corner_radius
        """
        self._preferences = dataclasses.replace(
            self._preferences, **{k: int(v) for k, v in progress.items()}
        )
        self._save_preferences()

    def _save_preferences(self) -> None:
        if self.preferences_path is not None:
            self._preferences.save(self.preferences_path)

    def current_selection(self) -> FilterSelection:
        """Filter to render for the stored index and current calibration."""
        return select(self.filter_index, self.has_calibration())

    def frame_uniforms(
        self,
        view_size: Tuple[int, int],
        preview_size: Tuple[int, int],
    ) -> Tuple[FilterSelection, Dict[str, object]]:
        """
        Selection and uniform values for one frame, from a single snapshot.

        Args:
            view_size: (width, height) of the output surface
            preview_size: (width, height) of the camera preview

        Returns:
            Tuple of (selection, uniform values)
        """
        snapshot = self.snapshot()
        calibrated = snapshot is not None and not snapshot.is_default
        selection = select(self.filter_index, calibrated)
        render = snapshot.render if snapshot is not None else None
        return selection, build_uniforms(
            selection,
            self.adjustments,
            view_size,
            preview_size,
            render,
        )
