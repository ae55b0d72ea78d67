"""
Shared fixtures: synthetic pose samples and a controllable clock.
"""

import math

import pytest

# MediaPipe indices used by the bowing engine
INDEX = {
    "left_ear": 7, "right_ear": 8,
    "left_shoulder": 11, "right_shoulder": 12,
    "right_elbow": 14, "right_wrist": 16,
    "left_hip": 23, "right_hip": 24,
}

# Relaxed player facing the camera, bow arm on the image left
DEFAULT_POSE = {
    "left_ear": (0.58, 0.15), "right_ear": (0.42, 0.15),
    "left_shoulder": (0.6, 0.3), "right_shoulder": (0.4, 0.3),
    "right_elbow": (0.35, 0.35), "right_wrist": (0.45, 0.5),
    "left_hip": (0.58, 0.6), "right_hip": (0.42, 0.6),
}


def build_pose(visibility=0.9, omit=(), **points):
    """33-landmark sample; keyword arguments override DEFAULT_POSE points"""
    pose = [{"x": 0.5, "y": 0.9, "visibility": 0.1} for _ in range(33)]
    for name, (x, y) in {**DEFAULT_POSE, **points}.items():
        pose[INDEX[name]] = {"x": x, "y": y, "visibility": visibility}
    for name in omit:
        pose[INDEX[name]] = None
    return pose


def triangle_positions(count, low=0.3, high=0.6, steps=9):
    """Wrist x positions sweeping low->high->low in equal steps"""
    grid = [low + (high - low) * k / steps for k in range(steps + 1)]
    cycle = grid + grid[-2:0:-1]
    return [cycle[i % len(cycle)] for i in range(count)]


def sine_bow_y(x, amplitude, low=0.3, high=0.6, base=0.5):
    """Arched bow path: y bulges by `amplitude` mid-stroke"""
    return base + amplitude * math.sin(math.pi * (x - low) / (high - low))


class FakeClock:
    """Monotonic clock the test advances by hand"""

    def __init__(self, now: float = 1000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def make_pose():
    return build_pose


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def bowing_frames():
    """
    Frame factory: list of (timestamp_ms, landmarks) for a player bowing
    with a triangular wrist sweep. `amplitude` arches the stroke.
    """
    def _frames(count, amplitude=0.0, start_ms=0.0, frame_ms=33.0, **points):
        frames = []
        for i, x in enumerate(triangle_positions(count)):
            y = sine_bow_y(x, amplitude)
            frames.append((start_ms + i * frame_ms, build_pose(right_wrist=(x, y), **points)))
        return frames
    return _frames
