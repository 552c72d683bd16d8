"""
Binarizers

Turn a grayscale region into the bit matrix handed to the symbol decoder.
Two variants, picked by image size:

- GlobalHistogramBinarizer: one Otsu threshold for the whole region
- AdaptiveThresholdMeanBinarizer: Gaussian-weighted local mean minus a bias
"""

import logging
from dataclasses import dataclass
from typing import Optional

import cv2
import numpy as np

logger = logging.getLogger(__name__)

BLOCK_SIZE = 25  # minimum width/height for adaptive thresholding
BIAS = 10


class BinarizationError(Exception):
	pass


@dataclass
class BinaryImage:
	# True = dark module (a set bit in the decoder's matrix)
	bits: np.ndarray
	method: str = ""

	@property
	def width(self) -> int:
		return int(self.bits.shape[1])

	@property
	def height(self) -> int:
		return int(self.bits.shape[0])

	def to_pixels(self) -> np.ndarray:
		"""Render as uint8: dark -> 0, light -> 255."""
		return np.where(self.bits, 0, 255).astype(np.uint8)


class GlobalHistogramBinarizer:
	name = "global"

	def binarize(self, gray: np.ndarray) -> BinaryImage:
		threshold, _ = cv2.threshold(gray, 0, 255, cv2.THRESH_BINARY + cv2.THRESH_OTSU)
		return BinaryImage(bits=gray <= threshold, method=self.name)


def adaptive_block_size(width: int) -> int:
	bs = width // 10
	return bs + bs % 2 - 1


def gaussian_kernel(size: int) -> np.ndarray:
	sigma = 0.3 * (((size - 1) / 2.0) - 1) + 0.8
	if sigma < 0.1:
		sigma = 0.1
	x = np.arange(size, dtype=np.float64) - size // 2
	kernel = np.exp(-0.5 * (x / sigma) ** 2)
	return kernel / kernel.sum()


def gaussian_blur(image: np.ndarray, kernel_size: int) -> np.ndarray:
	"""Separable blur, horizontal pass first, edge pixels replicated."""
	kernel = gaussian_kernel(kernel_size)
	return cv2.sepFilter2D(
		image.astype(np.float64), cv2.CV_64F, kernel, kernel, borderType=cv2.BORDER_REPLICATE
	)


class AdaptiveThresholdMeanBinarizer:
	name = "adaptive"

	def __init__(self, bias: int = BIAS):
		self.bias = bias

	def binarize(self, gray: np.ndarray) -> BinaryImage:
		height, width = gray.shape[:2]
		if width < BLOCK_SIZE or height < BLOCK_SIZE:
			raise BinarizationError(f"{width}x{height} is below the {BLOCK_SIZE}px block size")
		bs = adaptive_block_size(width)
		if not (bs % 2 == 1 and bs > 1):
			raise BinarizationError(f"no valid block size for width {width}")

		# The threshold buffer is filled bottom-up and read back top-down, so
		# bit-matrix row 0 is image row 0 again.
		flipped = gray[::-1]
		mean = gaussian_blur(flipped, bs)
		light = flipped > (mean - self.bias)
		return BinaryImage(bits=~light[::-1], method=self.name)


_GLOBAL = GlobalHistogramBinarizer()


def binarize(gray: np.ndarray, adaptive: Optional[AdaptiveThresholdMeanBinarizer] = None) -> BinaryImage:
	"""Adaptive when the region is big enough, global histogram otherwise."""
	height, width = gray.shape[:2]
	if width >= BLOCK_SIZE and height >= BLOCK_SIZE:
		try:
			return (adaptive or AdaptiveThresholdMeanBinarizer()).binarize(gray)
		except BinarizationError as e:
			logger.debug("adaptive binarization unavailable, using global: %s", e)
	return _GLOBAL.binarize(gray)
