import logging
import math
from typing import Any, List, Optional, Tuple

import cv2
import numpy as np

from .inference import InferenceBackend, gray_to_tensor
from .models import DetectionCandidate, Quad

logger = logging.getLogger(__name__)

# Network input is scaled to roughly this many pixels unless overridden
TARGET_AREA = 400.0 * 400.0
QR_CLASS = 1
MIN_SCORE = 1e-5


def detector_input_size(width: int, height: int, scale_factor: float = -1.0) -> Tuple[int, int]:
	"""Network input dims for an image of the given size.

	An override in (0, 1] is used as-is; anything else picks the factor that
	brings the area to TARGET_AREA, capped at 1.
	"""
	if 0 < scale_factor <= 1.0:
		factor = scale_factor
	else:
		factor = min(1.0, math.sqrt(TARGET_AREA / float(width * height)))
	return max(1, int(width * factor)), max(1, int(height * factor))


def full_image_candidate(width: int, height: int) -> DetectionCandidate:
	return DetectionCandidate(Quad.rectangle(0, 0, width - 1, height - 1), score=1.0)


def _proposal_rows(output: np.ndarray) -> np.ndarray:
	rows = np.asarray(output, dtype=np.float32)
	if rows.size == 0:
		return rows.reshape(0, 6)
	rows = rows.reshape(-1, rows.shape[-1])
	# Caffe DetectionOutput prefixes each row with the batch image id
	if rows.shape[1] == 7:
		rows = rows[:, 1:]
	return rows


class RegionDetector:
	"""SSD-style QR region proposer.

	With no model loaded it proposes the whole image as a single candidate.
	"""

	def __init__(self, backend: Optional[InferenceBackend] = None, model: Optional[Any] = None):
		self.backend = backend
		self.model = model

	@property
	def loaded(self) -> bool:
		return self.backend is not None and self.model is not None

	def detect(self, gray: np.ndarray, target_width: int, target_height: int) -> List[DetectionCandidate]:
		img_h, img_w = gray.shape[:2]
		if not self.loaded:
			return [full_image_candidate(img_w, img_h)]

		resized = cv2.resize(gray, (target_width, target_height), interpolation=cv2.INTER_CUBIC)
		output = self.backend.infer(self.model, gray_to_tensor(resized))  # type: ignore[union-attr]

		candidates: List[DetectionCandidate] = []
		for row in _proposal_rows(output):
			if len(row) < 6:
				continue
			cls, score = row[0], row[1]
			if cls != QR_CLASS or not score > MIN_SCORE:
				continue
			x0 = float(np.clip(row[2] * img_w, 0.0, img_w - 1.0))
			y0 = float(np.clip(row[3] * img_h, 0.0, img_h - 1.0))
			x1 = float(np.clip(row[4] * img_w, 0.0, img_w - 1.0))
			y1 = float(np.clip(row[5] * img_h, 0.0, img_h - 1.0))
			candidates.append(DetectionCandidate(Quad.rectangle(x0, y0, x1, y1), score=float(score)))
		logger.debug("detector proposed %d candidates at %dx%d", len(candidates), target_width, target_height)
		return candidates
