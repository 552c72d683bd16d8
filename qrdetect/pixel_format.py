from enum import IntEnum
from typing import Union

import cv2
import numpy as np

from .errors import InvalidArgumentError


class PixelFormat(IntEnum):
	GRAY = 0  # 1 channel
	RGB = 1
	BGR = 2
	RGBA = 3
	BGRA = 4
	ARGB = 5
	ABGR = 6


BYTES_PER_PIXEL = {
	PixelFormat.GRAY: 1,
	PixelFormat.RGB: 3,
	PixelFormat.BGR: 3,
	PixelFormat.RGBA: 4,
	PixelFormat.BGRA: 4,
	PixelFormat.ARGB: 4,
	PixelFormat.ABGR: 4,
}

# (channel slice, cvtColor code) applied to the unpacked HxWxC view
_TO_GRAY = {
	PixelFormat.RGB: (slice(0, 3), cv2.COLOR_RGB2GRAY),
	PixelFormat.BGR: (slice(0, 3), cv2.COLOR_BGR2GRAY),
	PixelFormat.RGBA: (slice(0, 3), cv2.COLOR_RGB2GRAY),
	PixelFormat.BGRA: (slice(0, 3), cv2.COLOR_BGR2GRAY),
	# Leading alpha byte is skipped
	PixelFormat.ARGB: (slice(1, 4), cv2.COLOR_RGB2GRAY),
	PixelFormat.ABGR: (slice(1, 4), cv2.COLOR_BGR2GRAY),
}


def to_grayscale(
	pixels: Union[bytes, bytearray, memoryview, np.ndarray],
	fmt: Union[PixelFormat, int],
	width: int,
	height: int,
	stride: int = 0,
) -> np.ndarray:
	"""Unpack a packed pixel buffer into an HxW uint8 gray image.

	`stride` is the row pitch in bytes; 0 means tightly packed rows.
	"""
	try:
		fmt = PixelFormat(fmt)
	except ValueError:
		raise InvalidArgumentError(f"unknown pixel format {fmt}")
	if pixels is None or width <= 0 or height <= 0:
		raise InvalidArgumentError("pixels must be non-empty with positive width and height")

	bpp = BYTES_PER_PIXEL[fmt]
	row_bytes = width * bpp
	if stride <= 0:
		stride = row_bytes
	if stride < row_bytes:
		raise InvalidArgumentError(f"stride {stride} is smaller than a row ({row_bytes} bytes)")

	if isinstance(pixels, np.ndarray):
		buf = np.ascontiguousarray(pixels).reshape(-1).view(np.uint8)
	else:
		buf = np.frombuffer(pixels, dtype=np.uint8)
	needed = stride * (height - 1) + row_bytes
	if buf.size < needed:
		raise InvalidArgumentError(f"pixel buffer has {buf.size} bytes, need {needed}")

	rows = np.lib.stride_tricks.as_strided(buf, shape=(height, row_bytes), strides=(stride, 1))
	packed = np.ascontiguousarray(rows).reshape(height, width, bpp)
	if fmt == PixelFormat.GRAY:
		return packed[:, :, 0].copy()
	channels, code = _TO_GRAY[fmt]
	return cv2.cvtColor(np.ascontiguousarray(packed[:, :, channels]), code)
