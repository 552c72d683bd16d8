"""
Symbol decoders

Take a binarized region and return every QR symbol found in it, with corner
points in that region's pixel frame.

- ZXingDecoder (default): zxing-cpp, fed the bit matrix as a 0/255 image with a
  fixed threshold so it does not re-binarize
- ZBarDecoder: pyzbar, when the optional dependency is installed
"""

import logging
from typing import List, Optional, Protocol, Sequence, Tuple

import numpy as np
import zxingcpp

from .binarizer import BinaryImage
from .models import DecodedSymbol

# Optional fallback deps
try:
	from pyzbar.pyzbar import ZBarSymbol, decode as zbar_decode  # type: ignore
except Exception:
	zbar_decode = None  # type: ignore
	ZBarSymbol = None  # type: ignore

logger = logging.getLogger(__name__)


class BarcodeDecoder(Protocol):
	name: str

	def decode(self, binary: BinaryImage) -> List[DecodedSymbol]:
		...


def _extract_quad(position) -> List[Tuple[float, float]]:
	"""Return the symbol corners as (x, y) in TL, TR, BR, BL order.

	Handles zxing-cpp bindings where `position` exposes top_left/topLeft style
	attributes or a plain `points` sequence.
	"""
	points: List[Tuple[float, float]] = []
	if position is None:
		return points
	for names in [
		("top_left", "top_right", "bottom_right", "bottom_left"),
		("topLeft", "topRight", "bottomRight", "bottomLeft"),
	]:
		pts: List[Tuple[float, float]] = []
		for n in names:
			p = getattr(position, n, None)
			if p is not None and hasattr(p, "x") and hasattr(p, "y"):
				pts.append((float(p.x), float(p.y)))
		if len(pts) == 4:
			return pts
	if hasattr(position, "points"):
		points = [(float(p.x), float(p.y)) for p in position.points]
	return points


def _read_barcodes(arr: np.ndarray):
	# Input is already binary; a fixed threshold keeps zxing from re-binarizing it
	return zxingcpp.read_barcodes(
		arr,
		formats=zxingcpp.BarcodeFormat.QRCode,
		binarizer=zxingcpp.Binarizer.FixedThreshold,
	)


class ZXingDecoder:
	name = "zxing-cpp"

	def decode(self, binary: BinaryImage) -> List[DecodedSymbol]:
		arr = np.ascontiguousarray(binary.to_pixels())
		try:
			results = _read_barcodes(arr)
		except (ValueError, RuntimeError) as e:
			logger.debug("zxing-cpp failed on %dx%d bitmap: %s", binary.width, binary.height, e)
			return []
		decoded: List[DecodedSymbol] = []
		for r in results:
			if getattr(r, "valid", True) is False:
				continue
			text = r.text or ""
			quad = _extract_quad(getattr(r, "position", None))
			if text and len(quad) == 4:
				decoded.append(DecodedSymbol(text=text, points=quad, decoder=self.name))
		return decoded


def order_corners(points: Sequence[Tuple[float, float]]) -> List[Tuple[float, float]]:
	"""Sort 4 corners into TL, TR, BR, BL."""
	pts = np.asarray(points, dtype=np.float64).reshape(-1, 2)
	s = pts.sum(axis=1)
	d = pts[:, 1] - pts[:, 0]
	tl, br = pts[np.argmin(s)], pts[np.argmax(s)]
	tr, bl = pts[np.argmin(d)], pts[np.argmax(d)]
	return [(float(p[0]), float(p[1])) for p in (tl, tr, br, bl)]


class ZBarDecoder:
	name = "zbar"

	def __init__(self):
		if zbar_decode is None:
			raise RuntimeError("pyzbar is not installed (pip install qrdetect[zbar])")

	def decode(self, binary: BinaryImage) -> List[DecodedSymbol]:
		arr = np.ascontiguousarray(binary.to_pixels())
		try:
			results = zbar_decode(arr, symbols=[ZBarSymbol.QRCODE])
		except Exception as e:
			logger.debug("zbar failed on %dx%d bitmap: %s", binary.width, binary.height, e)
			return []
		decoded: List[DecodedSymbol] = []
		for r in results:
			val = r.data.decode("utf-8", errors="replace")
			if not val:
				continue
			polygon = [(p.x, p.y) for p in (r.polygon or [])]
			if len(polygon) != 4:
				x, y, w, h = r.rect
				polygon = [(x, y), (x + w, y), (x + w, y + h), (x, y + h)]
			decoded.append(DecodedSymbol(text=val, points=order_corners(polygon), decoder=self.name))
		return decoded


def create_decoder(name: Optional[str] = None) -> BarcodeDecoder:
	key = (name or "zxing").lower()
	if key in ("zxing", "zxing-cpp", "zxingcpp"):
		return ZXingDecoder()
	if key in ("zbar", "pyzbar"):
		return ZBarDecoder()
	raise ValueError(f"Unknown decoder: {name}. Available: zxing, zbar")
