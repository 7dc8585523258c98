from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Any, List, Optional, Protocol

import cv2

from .errors import DetectionUnavailableError, MalformedInputError
from .keypoints import DEFAULT_NECK_OFFSET_FRACTION
from .model_assets import ensure_model_asset
from .orientation import face_detection_from_landmarks, hand_detection_from_landmarks
from .types import DetectionResult, FaceDetection, HandDetection

logger = logging.getLogger(__name__)


class LandmarkDetector(Protocol):
    """Anything that turns a frame into detections (or None when nothing is found)."""

    def detect(self, frame: Any) -> Optional[List[DetectionResult]]:
        ...


@dataclass(frozen=True)
class _SolutionsBackend:
    mp: object
    hands: Optional[object]
    face_mesh: Optional[object]


@dataclass(frozen=True)
class _TasksBackend:
    mp: object
    hand_landmarker: Optional[object]
    face_landmarker: Optional[object]


def _try_create_solutions_backend(
    static_image_mode: bool,
    max_num_hands: int,
    max_num_faces: int,
    detect_hands: bool,
    detect_face: bool,
    min_detection_confidence: float,
    min_tracking_confidence: float,
) -> Optional[_SolutionsBackend]:
    import mediapipe as mp  # type: ignore

    if not hasattr(mp, "solutions"):
        return None
    hands = None
    face_mesh = None
    if detect_hands:
        hands = mp.solutions.hands.Hands(
            static_image_mode=static_image_mode,
            max_num_hands=max_num_hands,
            min_detection_confidence=min_detection_confidence,
            min_tracking_confidence=min_tracking_confidence,
        )
    if detect_face:
        face_mesh = mp.solutions.face_mesh.FaceMesh(
            static_image_mode=static_image_mode,
            max_num_faces=max_num_faces,
            refine_landmarks=True,
            min_detection_confidence=min_detection_confidence,
            min_tracking_confidence=min_tracking_confidence,
        )
    return _SolutionsBackend(mp=mp, hands=hands, face_mesh=face_mesh)


def _try_create_tasks_backend(
    model_dir: str,
    max_num_hands: int,
    max_num_faces: int,
    detect_hands: bool,
    detect_face: bool,
    min_detection_confidence: float,
    min_tracking_confidence: float,
) -> _TasksBackend:
    """
    Fallback for MediaPipe distributions without `mp.solutions`.

    Needs `.task` model assets on disk (downloaded on first use).
    """

    import mediapipe as mp  # type: ignore
    from mediapipe.tasks.python import BaseOptions  # type: ignore
    from mediapipe.tasks.python import vision  # type: ignore

    hand_landmarker = None
    face_landmarker = None
    if detect_hands:
        options = vision.HandLandmarkerOptions(
            base_options=BaseOptions(model_asset_path=ensure_model_asset("hand_landmarker", model_dir)),
            running_mode=vision.RunningMode.VIDEO,
            num_hands=max_num_hands,
            min_hand_detection_confidence=min_detection_confidence,
            min_tracking_confidence=min_tracking_confidence,
        )
        hand_landmarker = vision.HandLandmarker.create_from_options(options)
    if detect_face:
        options = vision.FaceLandmarkerOptions(
            base_options=BaseOptions(model_asset_path=ensure_model_asset("face_landmarker", model_dir)),
            running_mode=vision.RunningMode.VIDEO,
            num_faces=max_num_faces,
            min_face_detection_confidence=min_detection_confidence,
            min_tracking_confidence=min_tracking_confidence,
        )
        face_landmarker = vision.FaceLandmarker.create_from_options(options)
    return _TasksBackend(mp=mp, hand_landmarker=hand_landmarker, face_landmarker=face_landmarker)


class MediaPipeLandmarkDetector:
    """
    Face mesh + hand landmark detector backed by MediaPipe.

    Input frames are expected as **BGR** images (OpenCV default). `detect()`
    returns None when nothing was found or when called again within
    `min_interval_ms` of the previous detection.
    """

    def __init__(
        self,
        detect_face: bool = True,
        detect_hands: bool = True,
        static_image_mode: bool = False,
        max_num_hands: int = 2,
        max_num_faces: int = 1,
        min_detection_confidence: float = 0.5,
        min_tracking_confidence: float = 0.5,
        min_interval_ms: float = 0.0,
        neck_offset_fraction: float = DEFAULT_NECK_OFFSET_FRACTION,
        tasks_model_dir: str = "models",
    ) -> None:
        if not (detect_face or detect_hands):
            raise ValueError("Enable at least one of detect_face / detect_hands")

        self._solutions: Optional[_SolutionsBackend] = _try_create_solutions_backend(
            static_image_mode=static_image_mode,
            max_num_hands=max_num_hands,
            max_num_faces=max_num_faces,
            detect_hands=detect_hands,
            detect_face=detect_face,
            min_detection_confidence=min_detection_confidence,
            min_tracking_confidence=min_tracking_confidence,
        )
        self._tasks: Optional[_TasksBackend] = None
        self._tasks_timestamp_ms = 0

        if self._solutions is None:
            logger.info("mediapipe has no `solutions` module; using the Tasks API")
            try:
                self._tasks = _try_create_tasks_backend(
                    model_dir=tasks_model_dir,
                    max_num_hands=max_num_hands,
                    max_num_faces=max_num_faces,
                    detect_hands=detect_hands,
                    detect_face=detect_face,
                    min_detection_confidence=min_detection_confidence,
                    min_tracking_confidence=min_tracking_confidence,
                )
            except (OSError, RuntimeError) as e:
                raise DetectionUnavailableError(
                    "Could not initialize the MediaPipe Tasks landmarkers.\n"
                    f"Model directory: {tasks_model_dir}\n"
                    "Download the .task models there and try again."
                ) from e

        self._min_interval_s = max(0.0, min_interval_ms) / 1000.0
        self._last_detect_s: Optional[float] = None
        self._neck_offset_fraction = neck_offset_fraction
        self._closed = False

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        if self._solutions is not None:
            for backend in (self._solutions.hands, self._solutions.face_mesh):
                if backend is not None:
                    backend.close()
        if self._tasks is not None:
            for backend in (self._tasks.hand_landmarker, self._tasks.face_landmarker):
                if backend is not None:
                    backend.close()

    def __enter__(self) -> "MediaPipeLandmarkDetector":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def _throttled(self) -> bool:
        now = time.monotonic()
        if self._last_detect_s is not None and now - self._last_detect_s < self._min_interval_s:
            return True
        self._last_detect_s = now
        return False

    def detect(self, frame_bgr) -> Optional[List[DetectionResult]]:
        if self._closed:
            raise DetectionUnavailableError("Detector is closed")
        if self._min_interval_s > 0 and self._throttled():
            return None

        frame_rgb = cv2.cvtColor(frame_bgr, cv2.COLOR_BGR2RGB)
        if self._solutions is not None:
            results = self._detect_solutions(frame_rgb)
        else:
            results = self._detect_tasks(frame_rgb)
        return results or None

    def _detect_solutions(self, frame_rgb) -> List[DetectionResult]:
        out: List[DetectionResult] = []
        backend = self._solutions
        if backend.face_mesh is not None:
            res = backend.face_mesh.process(frame_rgb)
            for face in res.multi_face_landmarks or []:
                out.append(self._safe_face(face.landmark, 1.0))
        if backend.hands is not None:
            res = backend.hands.process(frame_rgb)
            handedness_list = res.multi_handedness or []
            for i, hand_landmarks in enumerate(res.multi_hand_landmarks or []):
                label: Optional[str] = None
                score: Optional[float] = None
                if i < len(handedness_list) and handedness_list[i].classification:
                    c = handedness_list[i].classification[0]
                    label = getattr(c, "label", None)
                    score = float(getattr(c, "score", 0.0))
                out.append(self._safe_hand(hand_landmarks.landmark, label, score))
        return [d for d in out if d is not None]

    def _detect_tasks(self, frame_rgb) -> List[DetectionResult]:
        backend = self._tasks
        if backend is None:
            raise DetectionUnavailableError("No MediaPipe backend is loaded")
        mp = backend.mp
        mp_image = mp.Image(image_format=mp.ImageFormat.SRGB, data=frame_rgb)

        # VIDEO mode requires monotonically increasing timestamps.
        self._tasks_timestamp_ms += 33
        ts = self._tasks_timestamp_ms

        out: List[DetectionResult] = []
        if backend.face_landmarker is not None:
            result = backend.face_landmarker.detect_for_video(mp_image, ts)
            for landmarks in getattr(result, "face_landmarks", None) or []:
                out.append(self._safe_face(landmarks, 1.0))
        if backend.hand_landmarker is not None:
            result = backend.hand_landmarker.detect_for_video(mp_image, ts)
            handedness_list = getattr(result, "handedness", None) or []
            for i, landmarks in enumerate(getattr(result, "hand_landmarks", None) or []):
                label = None
                score = None
                if i < len(handedness_list) and handedness_list[i]:
                    cat0 = handedness_list[i][0]
                    label = getattr(cat0, "category_name", None) or getattr(cat0, "display_name", None)
                    score = float(getattr(cat0, "score", 0.0))
                out.append(self._safe_hand(landmarks, label, score))
        return [d for d in out if d is not None]

    def _safe_face(self, landmarks, confidence: float) -> Optional[FaceDetection]:
        try:
            return face_detection_from_landmarks(landmarks, confidence, self._neck_offset_fraction)
        except MalformedInputError as e:
            logger.warning("Dropping face detection: %s", e)
            return None

    def _safe_hand(self, landmarks, label: Optional[str], score: Optional[float]) -> Optional[HandDetection]:
        try:
            return hand_detection_from_landmarks(landmarks, label, score)
        except MalformedInputError as e:
            logger.warning("Dropping hand detection: %s", e)
            return None
