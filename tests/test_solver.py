"""Tests for the chessboard calibration solver."""

import threading

import numpy as np
import pytest

from camfilter.exceptions import CalibrationError, CalibrationSolveFailed
from camfilter.intrinsics import IntrinsicModel
from camfilter.solver import ChessboardSolver, ChessboardTarget

from conftest import IMAGE_SIZE, TRUE_K, chessboard_views


@pytest.fixture(scope="module")
def target():
    return ChessboardTarget()


@pytest.fixture(scope="module")
def views(target):
    return chessboard_views(target)


def test_target_geometry(target):
    assert target.pattern_size == (9, 6)

    objp = target.object_points()
    assert objp.shape == (54, 3)
    assert objp[1].tolist() == [31.5, 0.0, 0.0]
    assert objp[9].tolist() == [0.0, 31.5, 0.0]
    assert np.all(objp[:, 2] == 0)


def test_detects_rendered_board(target, views):
    solver = ChessboardSolver(target)

    corners = solver.detect(views[0])

    assert corners is not None
    assert corners.shape == (54, 1, 2)


def test_blank_image_has_no_board(target):
    solver = ChessboardSolver(target)

    assert solver.detect(np.full((480, 640), 255, np.uint8)) is None


def test_solve_recovers_intrinsics(target, views):
    solver = ChessboardSolver(target)
    for view in views:
        solver.add_image(view)

    model = solver.solve()

    assert isinstance(model, IntrinsicModel)
    assert (model.width, model.height) == IMAGE_SIZE
    assert model.fx == pytest.approx(TRUE_K[0, 0], rel=0.03)
    assert model.fy == pytest.approx(TRUE_K[1, 1], rel=0.03)
    assert model.cx == pytest.approx(TRUE_K[0, 2], abs=10)
    assert model.cy == pytest.approx(TRUE_K[1, 2], abs=10)
    assert len(model.radial) == 2
    assert all(abs(k) < 0.2 for k in model.radial)
    assert model.flip_y is False
    assert solver.rms_error < 1.0


def test_radial_terms_control_coefficient_count(target, views):
    model = ChessboardSolver(target, radial_terms=3).solve(views)

    assert len(model.radial) == 3


def test_accepts_color_images(target, views):
    color = [np.dstack([v, v, v]) for v in views]

    model = ChessboardSolver(target).solve(color)

    assert model.fx == pytest.approx(TRUE_K[0, 0], rel=0.03)


def test_too_few_detections_fail(target, views):
    blank = np.full_like(views[0], 255)
    solver = ChessboardSolver(target, min_images=3)

    with pytest.raises(CalibrationSolveFailed):
        solver.solve([views[0], blank, blank])


def test_no_images_fail(target):
    with pytest.raises(CalibrationSolveFailed):
        ChessboardSolver(target).solve()


def test_image_limit(target):
    solver = ChessboardSolver(target, max_images=2)
    image = np.zeros((48, 64), np.uint8)
    solver.add_image(image)
    solver.add_image(image)

    with pytest.raises(CalibrationError):
        solver.add_image(image)

    assert solver.image_count == 2
    solver.clear()
    assert solver.image_count == 0


def test_mixed_image_sizes_rejected(target):
    solver = ChessboardSolver(target)
    solver.add_image(np.zeros((48, 64), np.uint8))

    with pytest.raises(ValueError):
        solver.add_image(np.zeros((64, 48), np.uint8))


def test_invalid_radial_terms():
    with pytest.raises(ValueError):
        ChessboardSolver(radial_terms=4)


def test_async_reports_result_once(target, views):
    solver = ChessboardSolver(target)
    for view in views:
        solver.add_image(view)
    results = []
    done = threading.Event()

    def listener(result):
        results.append(result)
        done.set()

    solver.solve_async(listener)

    assert done.wait(60)
    assert solver.wait(60)
    assert len(results) == 1
    assert isinstance(results[0], IntrinsicModel)


def test_async_reports_failure(target):
    solver = ChessboardSolver(target)
    solver.add_image(np.full((480, 640), 255, np.uint8))
    results = []

    solver.solve_async(results.append)

    assert solver.wait(60)
    assert len(results) == 1
    assert isinstance(results[0], CalibrationSolveFailed)


def test_async_rejects_concurrent_runs(target):
    release = threading.Event()
    solver = ChessboardSolver(target)

    def slow_solve(images=None):
        release.wait(10)
        raise CalibrationSolveFailed("stopped")

    solver.solve = slow_solve
    results = []
    solver.solve_async(results.append)
    try:
        with pytest.raises(CalibrationError):
            solver.solve_async(results.append)
    finally:
        release.set()

    assert solver.wait(10)
    assert len(results) == 1
