"""
Shared fixtures: synthetic QR images and deterministic stand-ins for the
inference engine and the symbol decoder.
"""

import os
from typing import Callable, Dict, List, Tuple

import numpy as np
import pytest
import qrcode

from qrdetect.models import DecodedSymbol


def qr_matrix(text: str) -> np.ndarray:
	qr = qrcode.QRCode(border=0, box_size=1, error_correction=qrcode.constants.ERROR_CORRECT_M)
	qr.add_data(text)
	qr.make(fit=True)
	return np.array(qr.get_matrix(), dtype=bool)


def draw_qr(canvas: np.ndarray, text: str, origin: Tuple[int, int], module: int = 5) -> Tuple[int, int, int, int]:
	"""Paint a QR symbol (dark = 0) onto a white canvas; returns its x0, y0, x1, y1 box."""
	matrix = qr_matrix(text)
	block = np.kron(matrix, np.ones((module, module), dtype=bool))
	x, y = origin
	h, w = block.shape
	canvas[y:y + h, x:x + w][block] = 0
	return x, y, x + w, y + h


@pytest.fixture
def render_qr() -> Callable[..., Tuple[np.ndarray, List[Tuple[int, int, int, int]]]]:
	"""Factory: render_qr(("HELLO", (x, y)), ..., size=(w, h), module=5)."""

	def _render(*symbols, size=(400, 400), module=5):
		canvas = np.full((size[1], size[0]), 255, dtype=np.uint8)
		boxes = [draw_qr(canvas, text, origin, module) for text, origin in symbols]
		return canvas, boxes

	return _render


@pytest.fixture
def hello_image(render_qr):
	return render_qr(("HELLO", (150, 150)))


class FakeBackend:
	"""Inference stand-in. Models are keyed by weights file name; outputs are
	arrays or callables taking the input tensor."""

	def __init__(self, outputs: Dict[str, object] = None, fail_load: bool = False):
		self.outputs = outputs or {}
		self.fail_load = fail_load
		self.calls: List[Tuple[str, tuple]] = []

	def load_weights(self, files):
		if self.fail_load:
			raise RuntimeError("corrupt weights")
		return os.path.basename(files.weights)

	def infer(self, model, tensor):
		self.calls.append((model, tensor.shape))
		out = self.outputs[model]
		if isinstance(out, Exception):
			raise out
		return out(tensor) if callable(out) else out


class FakeDecoder:
	"""Returns scripted symbols per call; records the bitmap sizes it saw."""
	name = "fake"

	def __init__(self, script: List[List[DecodedSymbol]]):
		self.script = list(script)
		self.seen: List[Tuple[int, int]] = []

	def decode(self, binary):
		self.seen.append((binary.width, binary.height))
		if not self.script:
			return []
		return self.script.pop(0)


@pytest.fixture
def fake_backend():
	return FakeBackend


@pytest.fixture
def fake_decoder():
	return FakeDecoder


@pytest.fixture
def model_dir(tmp_path):
	"""A directory holding placeholder files for both models."""
	for name in ("detect.prototxt", "detect.caffemodel", "sr.prototxt", "sr.caffemodel"):
		(tmp_path / name).write_bytes(b"placeholder")
	return str(tmp_path)


@pytest.fixture(autouse=True)
def _isolated_env(monkeypatch, tmp_path_factory):
	# Keep .env files and QRDETECT_* settings from the developer's shell out of tests
	for key in list(os.environ):
		if key.startswith("QRDETECT_"):
			monkeypatch.delenv(key, raising=False)
	monkeypatch.chdir(tmp_path_factory.mktemp("cwd"))
