import logging
import math
from typing import Any, List, Optional

import cv2
import numpy as np

from .inference import InferenceBackend, gray_to_tensor

logger = logging.getLogger(__name__)

# Regions at or above this geometric size are upscaled with bicubic only
SR_MAX_SIZE = 160


def get_scale_list(width: int, height: int) -> List[float]:
	"""Scales to try for a cropped region, in order."""
	if width < 320 or height < 320:
		return [1.0, 2.0, 0.5]
	if width < 640 and height < 640:
		return [1.0, 0.5]
	return [0.5, 1.0]


def _resize(src: np.ndarray, width: int, height: int, interpolation: int) -> np.ndarray:
	return cv2.resize(src, (max(1, width), max(1, height)), interpolation=interpolation)


class SuperScale:
	def __init__(self, backend: Optional[InferenceBackend] = None, model: Optional[Any] = None):
		self.backend = backend
		self.model = model

	@property
	def net_loaded(self) -> bool:
		return self.backend is not None and self.model is not None

	def process_image_scale(self, src: np.ndarray, scale: float, use_sr: bool = True, sr_max_size: int = SR_MAX_SIZE) -> np.ndarray:
		if scale == 1.0:
			return src

		height, width = src.shape[:2]
		target_width = int(width * scale)
		target_height = int(height * scale)

		if scale == 2.0:
			if use_sr and int(math.sqrt(width * height * 1.0)) < sr_max_size and self.net_loaded:
				dst = self.super_resolution_scale(src)
				if dst is not None:
					return dst
			return _resize(src, target_width, target_height, cv2.INTER_CUBIC)
		if scale < 1.0:
			return _resize(src, target_width, target_height, cv2.INTER_LINEAR)
		return _resize(src, target_width, target_height, cv2.INTER_CUBIC)

	def super_resolution_scale(self, src: np.ndarray) -> Optional[np.ndarray]:
		"""Neural 2x upscale; None when inference fails or returns nothing usable."""
		try:
			prob = self.backend.infer(self.model, gray_to_tensor(src))  # type: ignore[union-attr]
			prob = np.asarray(prob, dtype=np.float32)
			if prob.ndim < 2 or prob.size == 0:
				logger.debug("super resolution returned shape %s, falling back", getattr(prob, "shape", None))
				return None
			out_h, out_w = prob.shape[-2], prob.shape[-1]
			plane = prob.reshape(-1, out_h, out_w)[0]
			return np.clip(plane * 255.0, 0.0, 255.0).astype(np.uint8)
		except Exception as e:
			logger.debug("super resolution failed, falling back to bicubic: %s", e)
			return None
