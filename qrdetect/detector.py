"""
QR code detector

Object-level entry point. Owns the loaded models and one pipeline, and
serializes calls: the inference nets are not safe to run from two threads at
once. Use separate detectors for parallel work.

Usage:
    from qrdetect.detector import QrcodeDetector

    with QrcodeDetector(model_dir="./models") as detector:
        for record in detector.detect("photo.jpg"):
            print(record.text, record.points)
"""

import logging
import os
import threading
from typing import List, Optional, Union

import numpy as np
from PIL import Image

from .barcode_decoder import create_decoder
from .config import DetectorSettings
from .errors import InvalidArgumentError, OutOfMemoryError
from .image_io import decode_image_bytes, load_image, pil_to_gray
from .inference import InferenceBackend, OpenCVDnnBackend, detector_model_files, sr_model_files, try_load_model
from .models import DecodeRecord
from .pipeline import QrcodePipeline
from .pixel_format import PixelFormat, to_grayscale
from .region_detector import RegionDetector
from .super_scale import SuperScale

logger = logging.getLogger(__name__)

ImageSource = Union[str, os.PathLike, bytes, bytearray, memoryview, Image.Image, np.ndarray]


class QrcodeDetector:
	def __init__(
		self,
		settings: Optional[DetectorSettings] = None,
		backend: Optional[InferenceBackend] = None,
		**overrides,
	):
		settings = settings or DetectorSettings()
		for key, value in overrides.items():
			if not hasattr(settings, key):
				raise TypeError(f"unknown setting {key!r}")
			setattr(settings, key, value)
		self.settings = settings
		self._lock = threading.Lock()

		detect_model = sr_model = None
		if settings.model_dir:
			backend = backend or OpenCVDnnBackend()
			if settings.use_nn_detector:
				detect_model = try_load_model(backend, detector_model_files(settings.model_dir), settings.strict_models)
			if settings.use_sr:
				sr_model = try_load_model(backend, sr_model_files(settings.model_dir), settings.strict_models)
		self.backend = backend

		self.pipeline = QrcodePipeline(
			region_detector=RegionDetector(backend, detect_model),
			super_scale=SuperScale(backend, sr_model),
			decoder=create_decoder(settings.decoder),
			use_sr=settings.use_sr,
			sr_max_size=settings.sr_max_size,
			scale_factor=settings.scale_factor,
			debug_dir=settings.debug_dir,
		)
		logger.debug(
			"detector ready: nn_detector=%s sr=%s decoder=%s",
			self.pipeline.use_nn_detector, self.pipeline.super_scale.net_loaded, settings.decoder,
		)

	def __enter__(self) -> "QrcodeDetector":
		return self

	def __exit__(self, *exc) -> None:
		self.close()

	def close(self) -> None:
		with self._lock:
			self.pipeline.region_detector.model = None
			self.pipeline.super_scale.model = None

	@property
	def scale_factor(self) -> float:
		return self.pipeline.scale_factor

	def set_scale_factor(self, scale_factor: Optional[float]) -> None:
		with self._lock:
			self.pipeline.set_scale_factor(scale_factor)

	def detect_gray(self, gray: np.ndarray) -> List[DecodeRecord]:
		with self._lock:
			try:
				return self.pipeline.detect_and_decode(gray)
			except MemoryError as e:
				raise OutOfMemoryError(str(e)) from e

	def detect(self, source: ImageSource) -> List[DecodeRecord]:
		"""Detect from a file path, encoded bytes, a PIL image or an array (gray, BGR or BGRA)."""
		if source is None:
			raise InvalidArgumentError("no image given")
		if isinstance(source, np.ndarray):
			if source.size == 0:
				raise InvalidArgumentError("empty image array")
			if source.ndim not in (2, 3) or (source.ndim == 3 and source.shape[2] not in (1, 3, 4)):
				raise InvalidArgumentError(f"unsupported image shape {source.shape}; expected gray, BGR or BGRA")
			return self.detect_gray(np.asarray(source, dtype=np.uint8))
		if isinstance(source, Image.Image):
			return self.detect_gray(pil_to_gray(source))
		if isinstance(source, (bytes, bytearray, memoryview)):
			return self.detect_gray(decode_image_bytes(source))
		if isinstance(source, (str, os.PathLike)):
			return self.detect_gray(load_image(source))
		raise InvalidArgumentError(f"unsupported image source {type(source).__name__}")

	def detect_pixels(
		self,
		pixels: Union[bytes, bytearray, memoryview, np.ndarray],
		fmt: Union[PixelFormat, int],
		width: int,
		height: int,
		stride: int = 0,
	) -> List[DecodeRecord]:
		return self.detect_gray(to_grayscale(pixels, fmt, width, height, stride))
