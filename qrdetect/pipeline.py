"""
Detect-and-decode pipeline

Per image:
1. Propose candidate regions (neural detector, or the whole image)
2. For each candidate: crop with padding, then walk the scale list
3. At each scale: resample, binarize, decode; the first scale that yields a
   symbol ends the candidate
4. Map symbol corners back to the input frame and drop duplicates
"""

import logging
import os
import time
from typing import List, Optional

import cv2
import numpy as np

from .align import Aligner
from .barcode_decoder import BarcodeDecoder, ZXingDecoder
from .binarizer import AdaptiveThresholdMeanBinarizer, binarize
from .dedup import Deduplicator
from .models import DecodeRecord, DetectionCandidate, Quad
from .region_detector import RegionDetector, detector_input_size
from .super_scale import SR_MAX_SIZE, SuperScale, get_scale_list

logger = logging.getLogger(__name__)

MIN_IMAGE_SIDE = 20  # images this small or smaller are not worth scanning
PADDING_W = 0.1
PADDING_H = 0.1
MIN_PADDING = 15


def to_gray(img: np.ndarray) -> np.ndarray:
	if img.ndim == 2:
		return img
	if img.ndim == 3 and img.shape[2] == 1:
		return img[:, :, 0]
	if img.ndim == 3 and img.shape[2] == 3:
		return cv2.cvtColor(img, cv2.COLOR_BGR2GRAY)
	if img.ndim == 3 and img.shape[2] == 4:
		return cv2.cvtColor(img, cv2.COLOR_BGRA2GRAY)
	raise ValueError(f"unsupported image shape {img.shape}")


class QrcodePipeline:
	def __init__(
		self,
		region_detector: Optional[RegionDetector] = None,
		super_scale: Optional[SuperScale] = None,
		decoder: Optional[BarcodeDecoder] = None,
		use_sr: bool = True,
		sr_max_size: int = SR_MAX_SIZE,
		scale_factor: float = -1.0,
		debug_dir: Optional[str] = None,
	):
		self.region_detector = region_detector or RegionDetector()
		self.super_scale = super_scale or SuperScale()
		self.decoder = decoder or ZXingDecoder()
		self.use_sr = use_sr
		self.sr_max_size = sr_max_size
		self.debug_dir = debug_dir
		self._adaptive = AdaptiveThresholdMeanBinarizer()
		self._scale_factor = -1.0
		self.set_scale_factor(scale_factor)

	@property
	def use_nn_detector(self) -> bool:
		return self.region_detector.loaded

	@property
	def scale_factor(self) -> float:
		return self._scale_factor

	def set_scale_factor(self, scale_factor: Optional[float]) -> None:
		"""Override the detector input scale; values outside (0, 1] restore the default."""
		if scale_factor is not None and 0 < scale_factor <= 1.0:
			self._scale_factor = float(scale_factor)
		else:
			self._scale_factor = -1.0

	def detect_and_decode(self, img: np.ndarray) -> List[DecodeRecord]:
		if img is None or img.ndim < 2:
			return []
		height, width = img.shape[:2]
		if width <= MIN_IMAGE_SIDE or height <= MIN_IMAGE_SIDE:
			return []

		start = time.perf_counter()
		gray = to_gray(img)
		candidates = self.detect(gray)
		records = self.decode(gray, candidates)
		logger.debug(
			"detect_and_decode %dx%d: %d candidates, %d results in %.3f seconds",
			width, height, len(candidates), len(records), time.perf_counter() - start,
		)
		return records

	def detect(self, gray: np.ndarray) -> List[DetectionCandidate]:
		height, width = gray.shape[:2]
		target_w, target_h = detector_input_size(width, height, self._scale_factor)
		return self.region_detector.detect(gray, target_w, target_h)

	def decode(self, gray: np.ndarray, candidates: List[DetectionCandidate]) -> List[DecodeRecord]:
		records: List[DecodeRecord] = []
		dedup = Deduplicator()
		for ci, candidate in enumerate(candidates):
			aligner = Aligner()
			cropped = aligner.crop(gray, candidate.quad, PADDING_W, PADDING_H, MIN_PADDING)
			if cropped.size == 0:
				continue
			for cur_scale in get_scale_list(cropped.shape[1], cropped.shape[0]):
				scaled = self.super_scale.process_image_scale(cropped, cur_scale, self.use_sr, self.sr_max_size)
				binary = binarize(scaled, self._adaptive)
				self._dump(ci, cur_scale, cropped, scaled, binary.to_pixels())
				symbols = self.decoder.decode(binary)
				logger.debug(
					"candidate %d scale %.1f: %dx%d %s, %d symbols",
					ci, cur_scale, binary.width, binary.height, binary.method, len(symbols),
				)
				if not symbols:
					continue
				for symbol in symbols:
					local = Quad.from_xy(symbol.points).scaled(cur_scale)
					quad = Quad.from_xy(aligner.warp_back(local.as_tuples()))
					if dedup.admit(quad):
						records.append(DecodeRecord(text=symbol.text, quad=quad))
					else:
						logger.debug("dropping duplicate %r at %s", symbol.text, quad.as_tuples()[0])
				break
		return records

	def _dump(self, ci: int, scale: float, cropped: np.ndarray, scaled: np.ndarray, binary: np.ndarray) -> None:
		if not self.debug_dir:
			return
		try:
			os.makedirs(self.debug_dir, exist_ok=True)
			tag = f"cand{ci:02d}_x{scale:.1f}"
			cv2.imwrite(os.path.join(self.debug_dir, f"{tag}_0crop.png"), cropped)
			cv2.imwrite(os.path.join(self.debug_dir, f"{tag}_1scaled.png"), scaled)
			cv2.imwrite(os.path.join(self.debug_dir, f"{tag}_2binary.png"), binary)
		except Exception:
			pass
