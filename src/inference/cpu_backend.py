"""
Ultralytics YOLO detector adapter.

Model loading and prediction are blocking calls, so both run in a worker
thread; the event loop driving the inference loop stays free while a frame
is being scored.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, List, Optional

import numpy as np

from models.detection import Detection, Region
from models.errors import ModelLoadError
from .backend import DetectorAdapter


@dataclass(frozen=True)
class YoloConfig:
    model: str = "yolov8n.pt"
    device: Optional[str] = None
    iou_threshold: float = 0.45


def _to_numpy(values: Any) -> np.ndarray:
    return values.cpu().numpy() if hasattr(values, "cpu") else np.asarray(values)


class UltralyticsYoloBackend(DetectorAdapter):
    def __init__(self, cfg: YoloConfig):
        super().__init__()
        self.cfg = cfg
        self._model = None

    async def initialize(self) -> None:
        if self._ready:
            return
        try:
            self._model = await asyncio.to_thread(self._load_model)
        except Exception as e:
            self._model = None
            raise ModelLoadError(f"Failed to load YOLO model '{self.cfg.model}': {e}") from e
        self._ready = True

    def _load_model(self):
        from ultralytics import YOLO
        import torch

        device = self.cfg.device or ("cuda" if torch.cuda.is_available() else "cpu")
        model = YOLO(self.cfg.model)
        model.to(device)

        logging.info(f"Model initialized: {self.cfg.model}")
        logging.info(f"Device: {device}")
        if device == "cpu":
            logging.warning("Running on CPU - inference will be slow")
        return model

    async def detect(
        self,
        frame: np.ndarray,
        frame_width: int,
        frame_height: int,
        threshold: float,
    ) -> List[Detection]:
        self._ensure_ready()
        results = await asyncio.to_thread(
            self._model.predict,
            source=frame,
            conf=threshold,
            iou=self.cfg.iou_threshold,
            verbose=False,
        )
        return self._parse_results(results, frame_width, frame_height, threshold)

    @staticmethod
    def _parse_results(
        results: Any,
        frame_width: int,
        frame_height: int,
        threshold: float,
    ) -> List[Detection]:
        if not results:
            return []

        r0 = results[0]
        names = getattr(r0, "names", None) or {}
        boxes = getattr(r0, "boxes", None)
        if boxes is None:
            return []

        xyxy = _to_numpy(boxes.xyxy)
        conf = _to_numpy(boxes.conf)
        cls = _to_numpy(boxes.cls)

        out: List[Detection] = []
        for (x1, y1, x2, y2), score, k in zip(xyxy, conf, cls):
            score = float(score)
            if score < threshold:
                continue
            x1 = min(max(float(x1), 0.0), float(frame_width))
            x2 = min(max(float(x2), 0.0), float(frame_width))
            y1 = min(max(float(y1), 0.0), float(frame_height))
            y2 = min(max(float(y2), 0.0), float(frame_height))
            class_id = int(k)
            out.append(
                Detection(
                    region=Region.from_xyxy(x1, y1, x2, y2),
                    category=names.get(class_id, str(class_id)),
                    confidence=min(score, 1.0),
                )
            )

        out.sort(key=lambda d: d.confidence, reverse=True)
        return out

    def dispose(self) -> None:
        if self._model is not None:
            logging.info(f"Releasing YOLO model: {self.cfg.model}")
        self._model = None
        self._ready = False
