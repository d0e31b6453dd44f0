"""
Planar chessboard calibration.

The numerical solve (corner detection, homography estimation, nonlinear
refinement) is delegated to OpenCV. This module collects calibration
images, turns OpenCV's camera matrix and distortion vector into an
IntrinsicModel and runs the solve on a worker thread when asked to.
"""

import logging
import threading
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Callable, Iterable, List, Optional, Sequence, Tuple, Union

import cv2
import numpy as np
from tqdm import tqdm

from .exceptions import CalibrationError, CalibrationSolveFailed
from .intrinsics import IntrinsicModel, radial_from_sequence

logger = logging.getLogger(__name__)

CalibrationResult = Union[IntrinsicModel, CalibrationSolveFailed]
CalibrationListener = Callable[[CalibrationResult], None]


@dataclass
class ChessboardTarget:
    """Physical description of a chessboard target."""

    columns: int = 10  # squares
    rows: int = 7  # squares
    square_size: float = 31.5  # mm

    @property
    def pattern_size(self) -> Tuple[int, int]:
        """Inner corners (columns, rows), as OpenCV expects them."""
        return (self.columns - 1, self.rows - 1)

    def object_points(self) -> np.ndarray:
        """3D inner corner positions on the target plane (z = 0)."""
        cols, rows = self.pattern_size
        objp = np.zeros((cols * rows, 3), np.float32)
        objp[:, :2] = np.mgrid[0:cols, 0:rows].T.reshape(-1, 2)
        objp *= self.square_size
        return objp


class CalibrationSolver(ABC):
    """
    Produces intrinsic parameters from images of a planar target.
    """

    @abstractmethod
    def solve(self, images: Optional[Iterable[np.ndarray]] = None) -> IntrinsicModel:
        """
        Run the calibration.

        Args:
            images: Calibration images; None uses the images added so far

        Returns:
            Solved intrinsic parameters

        Raises:
            CalibrationSolveFailed: if no model could be estimated
        """
        pass


def _to_gray(image: np.ndarray) -> np.ndarray:
    """Convert an 8-bit or float image (gray or BGR) to 8-bit gray."""
    image = np.asarray(image)
    if image.dtype != np.uint8:
        image = np.clip(image, 0, 255).astype(np.uint8)
    if image.ndim == 3:
        if image.shape[2] == 1:
            return image[:, :, 0]
        return cv2.cvtColor(image, cv2.COLOR_BGR2GRAY)
    if image.ndim != 2:
        raise ValueError(f"Expected a 2D or 3D image, got shape {image.shape}")
    return image


class ChessboardSolver(CalibrationSolver):
    """Monocular calibration from chessboard images using OpenCV."""

    MAX_RADIAL_TERMS = 3

    def __init__(
        self,
        target: Optional[ChessboardTarget] = None,
        max_images: int = 30,
        min_images: int = 3,
        radial_terms: int = 2,
        flip_y: bool = False,
        show_progress: bool = False,
    ):
        """
        Initialize solver.

        Args:
            target: Chessboard description (10x7 squares, 31.5 mm by default)
            max_images: Maximum images stored for one calibration
            min_images: Minimum images with a detected target
            radial_terms: Number of radial coefficients to estimate (0-3)
            flip_y: Images use a left-handed coordinate system and are
                flipped vertically before detection
            show_progress: Show a progress bar during corner detection
        """
        if not 0 <= radial_terms <= self.MAX_RADIAL_TERMS:
            raise ValueError(f"radial_terms must be in 0..{self.MAX_RADIAL_TERMS}")

        self.target = target or ChessboardTarget()
        self.max_images = max_images
        self.min_images = min_images
        self.radial_terms = radial_terms
        self.flip_y = flip_y
        self.show_progress = show_progress

        self.rms_error: Optional[float] = None

        # Corner refinement criteria
        self.criteria = (cv2.TERM_CRITERIA_EPS + cv2.TERM_CRITERIA_MAX_ITER, 30, 0.001)

        self._images: List[np.ndarray] = []
        self._thread: Optional[threading.Thread] = None
        self._thread_lock = threading.Lock()

    # ------------------------------------------------------------------
    # Image collection
    # ------------------------------------------------------------------

    @property
    def image_count(self) -> int:
        """Number of images stored for calibration."""
        return len(self._images)

    def add_image(self, image: np.ndarray) -> None:
        """
        Add an image to the calibration set.

        Raises:
            CalibrationError: if the image limit has been reached
            ValueError: if the image size differs from the stored images
        """
        if len(self._images) >= self.max_images:
            raise CalibrationError(f"Max calibration images ({self.max_images}) exceeded.")

        gray = _to_gray(image)
        if self._images and gray.shape != self._images[0].shape:
            raise ValueError(
                f"Image size {gray.shape[1]}x{gray.shape[0]} differs from "
                f"{self._images[0].shape[1]}x{self._images[0].shape[0]}"
            )
        self._images.append(gray)

    def clear(self) -> None:
        """Delete all stored images."""
        self._images.clear()

    def detect(self, gray: np.ndarray) -> Optional[np.ndarray]:
        """
        Detect and refine chessboard corners.

        Returns:
            Corner array of shape (N, 1, 2), or None if the target is not found
        """
        flags = cv2.CALIB_CB_ADAPTIVE_THRESH + cv2.CALIB_CB_NORMALIZE_IMAGE + cv2.CALIB_CB_FAST_CHECK
        found, corners = cv2.findChessboardCorners(gray, self.target.pattern_size, flags)
        if not found:
            return None
        return cv2.cornerSubPix(gray, corners, (11, 11), (-1, -1), self.criteria)

    # ------------------------------------------------------------------
    # Calibration
    # ------------------------------------------------------------------

    def _calibration_flags(self) -> int:
        flags = cv2.CALIB_ZERO_TANGENT_DIST
        if self.radial_terms < 3:
            flags |= cv2.CALIB_FIX_K3
        if self.radial_terms < 2:
            flags |= cv2.CALIB_FIX_K2
        if self.radial_terms < 1:
            flags |= cv2.CALIB_FIX_K1
        return flags

    def solve(self, images: Optional[Iterable[np.ndarray]] = None) -> IntrinsicModel:
        if images is None:
            grays = list(self._images)
        else:
            grays = [_to_gray(image) for image in images]

        if not grays:
            raise CalibrationSolveFailed("No calibration images")

        image_shape = grays[0].shape
        if any(g.shape != image_shape for g in grays):
            raise CalibrationSolveFailed("Calibration images differ in size")

        objp = self.target.object_points()
        object_points: List[np.ndarray] = []
        image_points: List[np.ndarray] = []

        for i, gray in enumerate(tqdm(grays, desc="Detecting corners", disable=not self.show_progress)):
            if self.flip_y:
                gray = np.ascontiguousarray(np.flipud(gray))
            corners = self.detect(gray)
            if corners is None:
                logger.warning(f"Failed to detect target in image {i + 1}")
                continue
            object_points.append(objp)
            image_points.append(corners)

        if len(image_points) < self.min_images:
            raise CalibrationSolveFailed(
                f"Target detected in {len(image_points)} of {len(grays)} images, "
                f"need at least {self.min_images}"
            )

        height, width = image_shape
        logger.info(f"Calibrating with {len(image_points)} images ({width}x{height})...")

        try:
            rms, camera_matrix, dist_coeffs, _, _ = cv2.calibrateCamera(
                object_points,
                image_points,
                (width, height),
                None, None,
                flags=self._calibration_flags(),
            )
        except cv2.error as e:
            raise CalibrationSolveFailed(f"OpenCV calibration failed: {e}") from e

        if not (np.all(np.isfinite(camera_matrix)) and np.all(np.isfinite(dist_coeffs))):
            raise CalibrationSolveFailed("Calibration did not converge")

        dist = dist_coeffs.flatten()
        # OpenCV order: k1, k2, p1, p2, k3
        radial = radial_from_sequence([dist[0], dist[1], dist[4]], self.radial_terms)

        self.rms_error = float(rms)
        logger.info(f"RMS Error: {rms:.4f} pixels")

        return IntrinsicModel(
            width=width,
            height=height,
            fx=float(camera_matrix[0, 0]),
            fy=float(camera_matrix[1, 1]),
            skew=float(camera_matrix[0, 1]),
            cx=float(camera_matrix[0, 2]),
            cy=float(camera_matrix[1, 2]),
            radial=radial,
            flip_y=self.flip_y,
        )

    # ------------------------------------------------------------------
    # Asynchronous calibration
    # ------------------------------------------------------------------

    @property
    def is_running(self) -> bool:
        thread = self._thread
        return thread is not None and thread.is_alive()

    def solve_async(
        self,
        listener: CalibrationListener,
        images: Optional[Sequence[np.ndarray]] = None,
    ) -> None:
        """
        Start the calibration on a worker thread.

        ``listener`` is called exactly once from the worker thread, with the
        solved model or the CalibrationSolveFailed describing the failure.

        Raises:
            CalibrationError: if a calibration is already running
        """
        with self._thread_lock:
            if self.is_running:
                raise CalibrationError("The calibration process is already running.")
            batch = list(self._images) if images is None else list(images)
            self._thread = threading.Thread(
                target=self._run, args=(batch, listener), daemon=True
            )
            self._thread.start()

    def _run(self, images: List[np.ndarray], listener: CalibrationListener) -> None:
        try:
            result: CalibrationResult = self.solve(images)
        except CalibrationSolveFailed as e:
            result = e
        except Exception as e:
            logger.exception("Unexpected error during calibration")
            result = CalibrationSolveFailed(str(e))
        listener(result)

    def wait(self, timeout: Optional[float] = None) -> bool:
        """
        Wait for a running calibration to finish.

        Returns:
            True if no calibration is running any more
        """
        thread = self._thread
        if thread is not None:
            thread.join(timeout)
        return not self.is_running
