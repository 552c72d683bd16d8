import numpy as np
import pytest

from qrdetect.align import Aligner
from qrdetect.models import Quad


def _noise(w, h, seed=0):
	return np.random.default_rng(seed).integers(0, 256, size=(h, w), dtype=np.uint8)


@pytest.mark.parametrize("seed", range(20))
def test_crop_is_even_and_inside(seed):
	rng = np.random.default_rng(seed)
	w, h = int(rng.integers(21, 700)), int(rng.integers(21, 700))
	x0, x1 = sorted(rng.integers(0, w, size=2).tolist())
	y0, y1 = sorted(rng.integers(0, h, size=2).tolist())
	image = _noise(w, h, seed)

	aligner = Aligner()
	crop = aligner.crop(image, Quad.rectangle(x0, y0, x1, y1))

	ch, cw = crop.shape
	assert cw % 2 == 0 and ch % 2 == 0
	assert 0 <= aligner.crop_x and aligner.crop_x + cw <= w
	assert 0 <= aligner.crop_y and aligner.crop_y + ch <= h


def test_crop_padding():
	image = _noise(400, 400)
	aligner = Aligner()
	crop = aligner.crop(image, Quad.rectangle(100, 120, 299, 219))
	# 10% of 200 wide is 20; 10% of 100 high is below the 15px floor
	assert (aligner.crop_x, aligner.crop_y) == (80, 105)
	assert crop.shape == (130, 240)


def test_warp_back_inverts_crop():
	image = _noise(300, 250, seed=3)
	aligner = Aligner()
	crop = aligner.crop(image, Quad.rectangle(50, 60, 200, 180))
	for x, y in [(0, 0), (10, 7), (crop.shape[1] - 1, crop.shape[0] - 1)]:
		(sx, sy), = aligner.warp_back([(x, y)])
		assert image[int(sy), int(sx)] == crop[y, x]


def test_rotated_crop():
	image = _noise(300, 250, seed=4)
	aligner = Aligner(rotate90=True)
	plain = Aligner().crop(image, Quad.rectangle(50, 60, 200, 180))
	rotated = aligner.crop(image, Quad.rectangle(50, 60, 200, 180))
	assert rotated.shape == plain.shape[::-1]
	(sx, sy), = aligner.warp_back([(5, 9)])
	assert image[int(sy), int(sx)] == rotated[9, 5]
