"""Pytest configuration and shared fixtures."""

from __future__ import annotations

import sys
from pathlib import Path

PROJECT_ROOT = Path(__file__).resolve().parents[1]

if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

import numpy as np
import pytest

from autocalib.adapters.fakes import FakeCameraModel
from autocalib.calibration.settings import CalibratorSettings
from autocalib.geometry.pose import Pose3
from autocalib.models.data_models import (
    CalibrationFrame,
    CalibrationRequest,
    CameraInfo,
    CameraType,
    CapturePose,
    LinePercept,
    PenaltyMarkPercept,
)
from autocalib.projection.image_coordinates import ImageCoordinateSystem

IMAGE_WIDTH = 640
IMAGE_HEIGHT = 480
STRIPE_WIDTH = 8  # 6.25 mm/pixel で 50 mm
STRIPE_LEFT = 100
STRIPE_RIGHT = 504
GROUND_LINE_TOP = 96
GOAL_AREA_LINE_TOP = 192
SHORT_LINE_LEFT = 496


@pytest.fixture
def settings() -> CalibratorSettings:
    """Return default calibrator settings."""

    return CalibratorSettings()


@pytest.fixture
def fake_model() -> FakeCameraModel:
    """Return an affine camera model (6.25 mm/pixel, horizon at the image bottom)."""

    return FakeCameraModel()


@pytest.fixture
def lower_camera_info() -> CameraInfo:
    return CameraInfo(camera=CameraType.LOWER, width=IMAGE_WIDTH, height=IMAGE_HEIGHT)


def make_pose(camera_info: CameraInfo) -> CapturePose:
    return CapturePose(
        torso_matrix=Pose3(),
        head_pan=0.0,
        head_tilt=0.0,
        camera_info=camera_info,
        image_coordinate_system=ImageCoordinateSystem(camera_info),
    )


@pytest.fixture
def capture_pose(lower_camera_info: CameraInfo) -> CapturePose:
    return make_pose(lower_camera_info)


@pytest.fixture
def pose_factory():
    """Return a factory building an upright capture pose for a camera."""

    return make_pose


@pytest.fixture
def projector(fake_model: FakeCameraModel, lower_camera_info: CameraInfo):
    """Return an image-to-field projector based on the fake camera model."""

    def _project(point):
        return fake_model.image_to_robot(point, Pose3(), lower_camera_info)

    return _project


def paint_horizontal_stripe(image: np.ndarray, top: int, left: int = STRIPE_LEFT, right: int = STRIPE_RIGHT) -> None:
    image[top : top + STRIPE_WIDTH, left:right] = 255


def paint_vertical_stripe(image: np.ndarray, left: int, top: int, bottom: int) -> None:
    image[top:bottom, left : left + STRIPE_WIDTH] = 255


@pytest.fixture
def make_scene(fake_model: FakeCameraModel):
    """Return a factory for a synthetic goal-area frame.

    The frame shows the ground line, the front line of the goal area and the short
    connecting line between them as 8 pixel wide stripes.
    """

    def _line(first, last) -> LinePercept:
        first_field = fake_model.image_to_robot(np.array(first, dtype=float), Pose3(), None)
        last_field = fake_model.image_to_robot(np.array(last, dtype=float), Pose3(), None)
        return LinePercept(
            first_img=first,
            last_img=last,
            first_field=tuple(first_field),
            last_field=tuple(last_field),
        )

    def _make(
        request: CalibrationRequest | None = None,
        goal_area_top: int = GOAL_AREA_LINE_TOP,
        with_penalty_mark: bool = False,
        camera: CameraType = CameraType.LOWER,
        time: int = 0,
        with_image: bool = True,
    ) -> CalibrationFrame:
        image = np.zeros((IMAGE_HEIGHT, IMAGE_WIDTH), dtype=np.uint8)
        paint_horizontal_stripe(image, GROUND_LINE_TOP)
        paint_horizontal_stripe(image, goal_area_top)
        paint_vertical_stripe(image, SHORT_LINE_LEFT, GROUND_LINE_TOP, goal_area_top + STRIPE_WIDTH)

        short_x = SHORT_LINE_LEFT + STRIPE_WIDTH // 2
        lines = [
            _line((float(short_x), float(GROUND_LINE_TOP + STRIPE_WIDTH)), (float(short_x), float(goal_area_top))),
            _line((110.0, float(GROUND_LINE_TOP + 4)), (490.0, float(GROUND_LINE_TOP + 4))),
            _line((110.0, float(goal_area_top + 4)), (490.0, float(goal_area_top + 4))),
        ]

        penalty_mark = PenaltyMarkPercept()
        if with_penalty_mark:
            # ゴールエリア前端ラインの中心から 700 mm 手前
            goal_area_center = fake_model.image_to_robot(
                np.array([300.0, goal_area_top + (STRIPE_WIDTH - 1) / 2.0]), Pose3(), None
            )
            mark_on_field = goal_area_center - np.array([700.0, 0.0])
            penalty_mark = PenaltyMarkPercept(
                was_seen=True,
                position_in_image=tuple(fake_model.robot_to_image(mark_on_field)),
                position_on_field=tuple(mark_on_field),
            )

        camera_info = CameraInfo(camera=camera, width=IMAGE_WIDTH, height=IMAGE_HEIGHT)
        return CalibrationFrame(
            time=time,
            camera_matrix=Pose3(),
            pose=make_pose(camera_info),
            image=image if with_image else None,
            lines=lines,
            penalty_mark=penalty_mark,
            request=request or CalibrationRequest(),
        )

    return _make
