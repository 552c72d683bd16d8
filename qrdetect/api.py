"""
Handle-based API

Flat functions over opaque integer handles, for callers that cannot hold
Python objects (ctypes shims, RPC layers). Detectors and result sets live in
process-wide registries until released.

Text and point queries are two-phase: call without a buffer to learn the
required size, then call again with a buffer at least that large.

    det = create_detector(DetectorSettings(model_dir="./models"))
    res = detect_and_decode_path(det, "photo.jpg")
    for i in range(get_result_size(res)):
        buf = bytearray(get_result_text(res, i))
        get_result_text(res, i, buf)
    release_result(res)
    release_detector(det)
"""

import logging
import os
from typing import List, Optional, Union

import numpy as np

from .config import DetectorSettings, load_settings
from .detector import QrcodeDetector
from .errors import BufferTooSmallError, InvalidArgumentError, InvalidIndexError, OutOfMemoryError
from .handles import HandleRegistry
from .image_io import decode_image_bytes, load_image
from .models import DecodeRecord
from .pixel_format import PixelFormat

logger = logging.getLogger(__name__)

POINT_FLOATS = 8  # 4 corners, x and y each

_detectors: HandleRegistry[QrcodeDetector] = HandleRegistry("detector")
_results: HandleRegistry[List[DecodeRecord]] = HandleRegistry("result")


def create_detector(settings: Optional[DetectorSettings] = None) -> int:
	"""Create a detector; without explicit settings they come from .env and QRDETECT_* variables."""
	try:
		detector = QrcodeDetector(settings or load_settings())
	except MemoryError as e:
		raise OutOfMemoryError(str(e)) from e
	handle = _detectors.create(detector)
	logger.debug("created detector %#x (%d live)", handle, len(_detectors))
	return handle


def release_detector(handle: int) -> None:
	"""Release a detector. Unknown handles are ignored."""
	detector = _detectors.get(handle) if handle in _detectors else None
	if _detectors.release(handle) and detector is not None:
		detector.close()


def set_scale_factor(detector: int, factor: float) -> None:
	_detectors.get(detector).set_scale_factor(factor)


def get_scale_factor(detector: int) -> float:
	return _detectors.get(detector).scale_factor


def _store(records: List[DecodeRecord]) -> int:
	return _results.create(list(records))


def detect_and_decode_data(detector: int, data: Union[bytes, bytearray, memoryview]) -> int:
	det = _detectors.get(detector)
	if data is None:
		raise InvalidArgumentError("no image data")
	return _store(det.detect_gray(decode_image_bytes(data)))


def detect_and_decode_path(detector: int, path: Union[str, os.PathLike]) -> int:
	det = _detectors.get(detector)
	if path is None:
		raise InvalidArgumentError("no image path")
	return _store(det.detect_gray(load_image(path)))


def detect_and_decode_pixels(
	detector: int,
	pixels: Union[bytes, bytearray, memoryview, np.ndarray],
	fmt: Union[PixelFormat, int],
	width: int,
	height: int,
	stride: int = 0,
) -> int:
	det = _detectors.get(detector)
	return _store(det.detect_pixels(pixels, fmt, width, height, stride))


def get_result_size(result: int) -> int:
	return len(_results.get(result))


def _record(result: int, index: int) -> DecodeRecord:
	records = _results.get(result)
	if not isinstance(index, int) or index < 0 or index >= len(records):
		raise InvalidIndexError(f"index {index} out of range for {len(records)} results")
	return records[index]


def get_result_text(result: int, index: int, buffer: Optional[bytearray] = None) -> int:
	"""Copy the UTF-8 payload plus a NUL terminator into `buffer`.

	Returns the required size either way. An undersized buffer raises
	BufferTooSmallError and is left untouched.
	"""
	payload = _record(result, index).payload
	required = len(payload) + 1
	if buffer is None:
		return required
	if len(buffer) < required:
		raise BufferTooSmallError(required, len(buffer))
	buffer[: len(payload)] = payload
	buffer[len(payload)] = 0
	return required


def get_result_points(result: int, index: int, buffer=None) -> int:
	"""Copy corners as x0, y0, ..., x3, y3 into any writable float sequence."""
	flat = _record(result, index).quad.flatten()
	if buffer is None:
		return POINT_FLOATS
	if len(buffer) < POINT_FLOATS:
		raise BufferTooSmallError(POINT_FLOATS, len(buffer))
	for i, value in enumerate(flat):
		buffer[i] = value
	return POINT_FLOATS


def release_result(handle: int) -> None:
	"""Release a result set. Unknown handles are ignored."""
	_results.release(handle)
