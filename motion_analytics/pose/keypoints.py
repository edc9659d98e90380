"""Keypoint and pose frame data model.

Detector output enters the analytics kernel here. Every keypoint is
validated on construction so that NaN coordinates or out-of-range
confidences never reach the geometry code.
"""

import logging
import math
from dataclasses import dataclass, field
from typing import Any, Iterable

import numpy as np

logger = logging.getLogger(__name__)


# COCO-17 keypoint names (index order matches detector arrays)
COCO17_KEYPOINTS = [
    "nose",
    "left_eye",
    "right_eye",
    "left_ear",
    "right_ear",
    "left_shoulder",
    "right_shoulder",
    "left_elbow",
    "right_elbow",
    "left_wrist",
    "right_wrist",
    "left_hip",
    "right_hip",
    "left_knee",
    "right_knee",
    "left_ankle",
    "right_ankle",
]


class InvalidKeypointError(ValueError):
    """Raised when detector output fails validation at the ingestion boundary."""


@dataclass(frozen=True)
class Keypoint:
    """A single named anatomical landmark."""

    name: str
    x: float
    y: float
    confidence: float
    z: float | None = None

    def __post_init__(self) -> None:
        """Validate invariants at construction time."""
        coords = [self.x, self.y] if self.z is None else [self.x, self.y, self.z]
        if not all(_is_finite(c) for c in coords):
            raise InvalidKeypointError(
                f"Keypoint '{self.name}': non-finite coordinates {tuple(coords)}"
            )
        if not _is_finite(self.confidence) or not 0.0 <= self.confidence <= 1.0:
            raise InvalidKeypointError(
                f"Keypoint '{self.name}': confidence must be in [0, 1], got {self.confidence}"
            )

    @property
    def position(self) -> tuple[float, float]:
        return (self.x, self.y)

    def is_valid(self, min_confidence: float) -> bool:
        """Whether this keypoint may feed geometric computations (strictly above ``min_confidence``)."""
        return self.confidence > min_confidence


@dataclass(frozen=True)
class PoseFrame:
    """All keypoints detected at one timestamp.

    Attributes:
        keypoints: Detected keypoints.
        timestamp: Detection time in seconds.
        confidence: Overall pose confidence (defaults to mean keypoint confidence).
        camera_offset: Optional (x, y) camera offset in pixels for motion compensation.
        rejected_keypoints: Number of keypoints dropped during ingestion.
    """

    keypoints: tuple[Keypoint, ...]
    timestamp: float
    confidence: float | None = None
    camera_offset: tuple[float, float] | None = None
    rejected_keypoints: int = 0
    _index: dict[str, Keypoint] = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "keypoints", tuple(self.keypoints))
        object.__setattr__(self, "_index", {kp.name: kp for kp in self.keypoints})

        if not _is_finite(self.timestamp):
            raise InvalidKeypointError(f"PoseFrame timestamp must be finite, got {self.timestamp}")

        if self.confidence is None:
            mean_conf = (
                sum(kp.confidence for kp in self.keypoints) / len(self.keypoints)
                if self.keypoints
                else 0.0
            )
            object.__setattr__(self, "confidence", mean_conf)
        elif not _is_finite(self.confidence) or not 0.0 <= self.confidence <= 1.0:
            raise InvalidKeypointError(
                f"PoseFrame confidence must be in [0, 1], got {self.confidence}"
            )

        if self.camera_offset is not None:
            offset = tuple(float(v) for v in self.camera_offset)
            if len(offset) != 2 or not all(_is_finite(v) for v in offset):
                raise InvalidKeypointError(f"Invalid camera offset: {self.camera_offset}")
            object.__setattr__(self, "camera_offset", offset)

    def __len__(self) -> int:
        return len(self.keypoints)

    def get(self, name: str) -> Keypoint | None:
        """Look up a keypoint by name."""
        return self._index.get(name)

    def valid_keypoints(self, min_confidence: float) -> list[Keypoint]:
        """Keypoints strictly above the confidence threshold."""
        return [kp for kp in self.keypoints if kp.is_valid(min_confidence)]

    @classmethod
    def from_dict(cls, data: dict[str, Any], strict: bool = False) -> "PoseFrame":
        """Build a PoseFrame from detector output.

        Accepted ``keypoints`` layouts:
            - mapping of name -> {"x", "y", "confidence" | "score"[, "z"]}
            - list of dicts carrying a "name" key
            - Nx3 (or Nx4 with z) array, named by ``keypoint_names`` or COCO-17 order

        Args:
            data: Detector output with "keypoints" and "timestamp" entries.
            strict: Raise on the first invalid keypoint instead of dropping it.

        Returns:
            Validated PoseFrame.

        Raises:
            InvalidKeypointError: If strict and a keypoint is invalid, or if the
                payload itself is malformed (missing timestamp, frame confidence
                outside [0, 1]).
        """
        if "timestamp" not in data:
            raise InvalidKeypointError("Pose data is missing 'timestamp'")

        keypoints: list[Keypoint] = []
        rejected = 0

        for raw in _iter_raw_keypoints(data):
            try:
                keypoints.append(_keypoint_from_raw(raw))
            except (InvalidKeypointError, AttributeError, KeyError, TypeError, ValueError) as e:
                if strict:
                    if isinstance(e, InvalidKeypointError):
                        raise
                    raise InvalidKeypointError(f"Malformed keypoint {raw!r}: {e}") from e
                rejected += 1
                logger.warning(f"Dropping invalid keypoint: {e}")

        return cls(
            keypoints=tuple(keypoints),
            timestamp=float(data["timestamp"]),
            confidence=data.get("confidence"),
            camera_offset=_parse_offset(data.get("camera_offset")),
            rejected_keypoints=rejected,
        )

    def to_dict(self) -> dict[str, Any]:
        """Serialize to the keyed dict layout accepted by from_dict."""
        return {
            "keypoints": {
                kp.name: {"x": kp.x, "y": kp.y, "confidence": kp.confidence}
                | ({"z": kp.z} if kp.z is not None else {})
                for kp in self.keypoints
            },
            "timestamp": self.timestamp,
            "confidence": self.confidence,
            "camera_offset": self.camera_offset,
        }


def _is_finite(value: Any) -> bool:
    try:
        return math.isfinite(value)
    except TypeError:
        return False


def _parse_offset(offset: Any) -> tuple[float, float] | None:
    if offset is None:
        return None
    if isinstance(offset, dict):
        return (float(offset["x"]), float(offset["y"]))
    return (float(offset[0]), float(offset[1]))


def _iter_raw_keypoints(data: dict[str, Any]) -> Iterable[dict[str, Any]]:
    raw_keypoints = data.get("keypoints")
    if raw_keypoints is None:
        return []

    if isinstance(raw_keypoints, dict):
        return [{"name": name, **values} for name, values in raw_keypoints.items()]

    if isinstance(raw_keypoints, np.ndarray):
        names = data.get("keypoint_names")
        if names is None:
            names = COCO17_KEYPOINTS
        if raw_keypoints.ndim != 2 or raw_keypoints.shape[1] < 3:
            raise InvalidKeypointError(
                f"Keypoint array must be Nx3 or Nx4, got shape {raw_keypoints.shape}"
            )
        if len(names) < len(raw_keypoints):
            raise InvalidKeypointError(
                f"{len(raw_keypoints)} keypoints but only {len(names)} names"
            )
        rows = []
        for name, row in zip(names, raw_keypoints):
            entry = {"name": name, "x": row[0], "y": row[1]}
            if raw_keypoints.shape[1] >= 4:
                entry["z"] = row[2]
                entry["confidence"] = row[3]
            else:
                entry["confidence"] = row[2]
            rows.append(entry)
        return rows

    return list(raw_keypoints)


def _keypoint_from_raw(raw: dict[str, Any]) -> Keypoint:
    confidence = raw.get("confidence", raw.get("score"))
    if confidence is None:
        raise InvalidKeypointError(f"Keypoint '{raw.get('name')}' has no confidence")

    z = raw.get("z")
    return Keypoint(
        name=str(raw["name"]),
        x=float(raw["x"]),
        y=float(raw["y"]),
        confidence=float(confidence),
        z=float(z) if z is not None else None,
    )
