from typing import Iterable, List, Tuple

import numpy as np

from .models import Quad


class Aligner:
	"""Crops one candidate region and maps decoded points back out of it.

	One instance per candidate: the crop origin is written by `crop` and read
	by `warp_back`.
	"""

	def __init__(self, rotate90: bool = False):
		self.rotate90 = rotate90
		self.crop_x = 0
		self.crop_y = 0

	def crop(self, image: np.ndarray, quad: Quad, padding_w: float = 0.1, padding_h: float = 0.1, min_padding: int = 15) -> np.ndarray:
		img_h, img_w = image.shape[:2]
		x0, y0 = int(quad.points[0].x), int(quad.points[0].y)
		x2, y2 = int(quad.points[2].x), int(quad.points[2].y)

		width = x2 - x0 + 1
		height = y2 - y0 + 1
		padx = int(max(padding_w * width, float(min_padding)))
		pady = int(max(padding_h * height, float(min_padding)))

		self.crop_x = max(x0 - padx, 0)
		self.crop_y = max(y0 - pady, 0)
		end_x = min(x2 + padx, img_w - 1)
		end_y = min(y2 + pady, img_h - 1)

		# Even dims keep the resize kernels happy
		crop_w = max(end_x - self.crop_x + 1, 0) & -2
		crop_h = max(end_y - self.crop_y + 1, 0) & -2

		dst = image[self.crop_y:self.crop_y + crop_h, self.crop_x:self.crop_x + crop_w].copy()
		if self.rotate90:
			dst = np.ascontiguousarray(dst.T)
		return dst

	def warp_back(self, points: Iterable[Tuple[float, float]]) -> List[Tuple[float, float]]:
		out: List[Tuple[float, float]] = []
		for x, y in points:
			src_x = (y if self.rotate90 else x) + self.crop_x
			src_y = (x if self.rotate90 else y) + self.crop_y
			out.append((src_x, src_y))
		return out
