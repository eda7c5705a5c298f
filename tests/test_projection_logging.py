"""Tests for the projection collaborator, logging setup and error kinds."""

import logging

import numpy as np
import pytest

from mapdistort import (
    DuplicateLinkError, GridSizeError, InsufficientDataError, MapAnalysisError,
    SingularMatrixError, SphericalMercator, setup_logging,
)
from mapdistort.logging_config import DEBUG_ENV
from mapdistort.projection import EARTH_RADIUS, MAX_LAT


# ---------- Projection ----------
def test_mercator_round_trip():
    proj = SphericalMercator()
    geo = np.array([[0.0, 0.0], [8.5, 47.4], [-120.0, -33.0]])
    planar = proj.from_geo(geo)
    np.testing.assert_allclose(planar[0], [0.0, 0.0], atol=1e-9)
    np.testing.assert_allclose(planar[1, 0], EARTH_RADIUS * np.radians(8.5))
    np.testing.assert_allclose(proj.to_geo(planar), geo, atol=1e-9)


def test_mercator_clamps_latitude():
    proj = SphericalMercator()
    y_pole = proj.from_geo(np.array([[0.0, 89.9]]))[0, 1]
    y_max = proj.from_geo(np.array([[0.0, MAX_LAT]]))[0, 1]
    assert y_pole == pytest.approx(y_max)
    assert y_max == pytest.approx(np.pi * EARTH_RADIUS, rel=1e-9)
    assert proj.to_geo(np.array([[0.0, y_max]]))[0, 1] == pytest.approx(MAX_LAT)


def test_mercator_central_meridian():
    proj = SphericalMercator(lon0=10.0)
    assert proj.from_geo(np.array([[10.0, 0.0]]))[0, 0] == pytest.approx(0.0)
    assert proj.to_geo(np.array([[0.0, 0.0]]))[0, 0] == pytest.approx(10.0)
    with pytest.raises(ValueError):
        SphericalMercator(radius=0.0)


# ---------- Logging ----------
@pytest.fixture
def clean_logger():
    logger = logging.getLogger("mapdistort")
    yield logger
    for handler in logger.handlers:
        handler.close()
    logger.handlers.clear()
    logger.setLevel(logging.NOTSET)


def test_setup_logging_console_only(clean_logger, monkeypatch):
    monkeypatch.delenv(DEBUG_ENV, raising=False)
    logger = setup_logging()
    assert logger is clean_logger
    assert logger.level == logging.INFO
    assert len(logger.handlers) == 1

    # calling again does not stack handlers
    setup_logging()
    assert len(logger.handlers) == 1


def test_setup_logging_debug_env_and_file(clean_logger, monkeypatch, tmp_path):
    monkeypatch.setenv(DEBUG_ENV, "1")
    log_file = tmp_path / "analysis.log"
    logger = setup_logging(log_file=str(log_file))

    assert logger.level == logging.DEBUG
    assert any(isinstance(h, logging.FileHandler) for h in logger.handlers)

    logging.getLogger("mapdistort.analysis").debug("grid ready")
    for handler in logger.handlers:
        handler.flush()
    assert "grid ready" in log_file.read_text()


# ---------- Errors ----------
def test_error_hierarchy():
    assert issubclass(GridSizeError, InsufficientDataError)
    assert issubclass(InsufficientDataError, MapAnalysisError)
    assert issubclass(SingularMatrixError, MapAnalysisError)
    assert issubclass(DuplicateLinkError, ValueError)


def test_error_messages_name_the_analyzer():
    err = SingularMatrixError("system is singular")
    assert str(err) == "system is singular"
    err.analyzer = "Isolines"
    assert str(err) == "Isolines: system is singular"


def test_grid_size_error_suggests_mesh_size():
    err = GridSizeError("Too many lines.", suggested_mesh_size=2500.0)
    assert err.suggested_mesh_size == 2500.0
    assert "Try a cell size of about 2500." in str(err)
    assert "Try" not in str(GridSizeError("Too many lines.", suggested_mesh_size=-1.0))
