import io
import os
import shutil
import subprocess
import sys
import tempfile
from typing import Union

import numpy as np
from PIL import Image, UnidentifiedImageError

from .errors import DecodeFailedError, InvalidArgumentError

# Register HEIC/HEIF with Pillow if available
try:
	import pillow_heif  # type: ignore
	pillow_heif.register_heif_opener()
except Exception:
	pillow_heif = None  # type: ignore

HEIF_EXT = (".heic", ".heif")


def _open_via_sips(path: str) -> Image.Image:
	"""On macOS, convert HEIC to JPEG via sips and open the result."""
	if sys.platform != "darwin":
		raise UnidentifiedImageError("sips fallback only on macOS")
	if shutil.which("sips") is None:
		raise UnidentifiedImageError("sips not available")
	with tempfile.NamedTemporaryFile(suffix=".jpg", delete=False) as tmp:
		tmp_path = tmp.name
	try:
		proc = subprocess.run(["sips", "-s", "format", "jpeg", path, "--out", tmp_path], capture_output=True)
		if proc.returncode != 0 or not os.path.exists(tmp_path):
			raise UnidentifiedImageError(f"sips failed: {proc.stderr.decode(errors='ignore')}")
		img = Image.open(tmp_path)
		img.load()
		return img
	finally:
		try:
			os.unlink(tmp_path)
		except Exception:
			pass


def pil_to_gray(img: Image.Image) -> np.ndarray:
	if img.mode != "L":
		img = img.convert("L")
	return np.array(img, dtype=np.uint8)


def load_image(path: Union[str, os.PathLike]) -> np.ndarray:
	"""Read an image file as a grayscale array."""
	path = os.fspath(path)
	if not path:
		raise InvalidArgumentError("empty image path")
	try:
		img = Image.open(path)
		img.load()
	except FileNotFoundError as e:
		raise DecodeFailedError(f"cannot read {path}: {e}") from e
	except (UnidentifiedImageError, OSError) as e:
		if os.path.splitext(path)[1].lower() in HEIF_EXT:
			try:
				img = _open_via_sips(path)
			except (UnidentifiedImageError, OSError) as sips_err:
				raise DecodeFailedError(f"cannot decode {path}: {sips_err}") from sips_err
		else:
			raise DecodeFailedError(f"cannot decode {path}: {e}") from e
	return pil_to_gray(img)


def decode_image_bytes(data: Union[bytes, bytearray, memoryview]) -> np.ndarray:
	"""Decode an encoded image (PNG, JPEG, ...) held in memory as grayscale."""
	if not data:
		raise InvalidArgumentError("empty image data")
	try:
		img = Image.open(io.BytesIO(bytes(data)))
		img.load()
	except (UnidentifiedImageError, OSError) as e:
		raise DecodeFailedError(f"cannot decode image data: {e}") from e
	return pil_to_gray(img)
