"""
Inference backends

The pipeline only ever feeds a tensor in and reads a tensor back, so the
engine is injected. `OpenCVDnnBackend` runs the Caffe models through cv2.dnn;
tests use a deterministic stand-in with the same two methods.
"""

import logging
import os
from dataclasses import dataclass
from typing import Any, Optional, Protocol

import cv2
import numpy as np

from .errors import ModelLoadError

logger = logging.getLogger(__name__)

DETECT_CONFIG = "detect.prototxt"
DETECT_WEIGHTS = "detect.caffemodel"
SR_CONFIG = "sr.prototxt"
SR_WEIGHTS = "sr.caffemodel"


@dataclass
class ModelFiles:
	weights: str
	config: Optional[str] = None

	def exists(self) -> bool:
		if not os.path.isfile(self.weights):
			return False
		return self.config is None or os.path.isfile(self.config)


class InferenceBackend(Protocol):
	def load_weights(self, files: ModelFiles) -> Any:
		...

	def infer(self, model: Any, tensor: np.ndarray) -> np.ndarray:
		...


class OpenCVDnnBackend:
	"""cv2.dnn backend. Nets are not safe to share between threads."""

	def __init__(self, num_threads: int = 1):
		self.num_threads = num_threads

	def load_weights(self, files: ModelFiles) -> Any:
		if files.config:
			net = cv2.dnn.readNet(files.weights, files.config)
		else:
			net = cv2.dnn.readNet(files.weights)
		if net is None or net.empty():
			raise ModelLoadError(f"cv2.dnn could not load {files.weights}")
		net.setPreferableBackend(cv2.dnn.DNN_BACKEND_OPENCV)
		net.setPreferableTarget(cv2.dnn.DNN_TARGET_CPU)
		if self.num_threads > 0:
			cv2.setNumThreads(self.num_threads)
		return net

	def infer(self, model: Any, tensor: np.ndarray) -> np.ndarray:
		model.setInput(np.ascontiguousarray(tensor, dtype=np.float32))
		return model.forward()


def detector_model_files(model_dir: str) -> ModelFiles:
	return ModelFiles(
		weights=os.path.join(model_dir, DETECT_WEIGHTS),
		config=os.path.join(model_dir, DETECT_CONFIG),
	)


def sr_model_files(model_dir: str) -> ModelFiles:
	return ModelFiles(
		weights=os.path.join(model_dir, SR_WEIGHTS),
		config=os.path.join(model_dir, SR_CONFIG),
	)


def try_load_model(backend: InferenceBackend, files: ModelFiles, strict: bool = False) -> Optional[Any]:
	"""Load a model, returning None when it is missing or broken.

	With `strict=True` the failure is raised as ModelLoadError instead.
	"""
	if not files.exists():
		msg = f"model files not found: {files.weights}" + (f", {files.config}" if files.config else "")
		if strict:
			raise ModelLoadError(msg)
		logger.warning(msg)
		return None
	try:
		return backend.load_weights(files)
	except ModelLoadError:
		if strict:
			raise
		logger.warning("failed to load model %s", files.weights)
		return None
	except Exception as e:
		if strict:
			raise ModelLoadError(f"failed to load {files.weights}: {e}") from e
		logger.warning("failed to load model %s: %s", files.weights, e)
		return None


def gray_to_tensor(gray: np.ndarray) -> np.ndarray:
	"""uint8 HxW -> float32 1x1xHxW scaled to [0, 1]."""
	t = gray.astype(np.float32) * (1.0 / 255.0)
	return t.reshape(1, 1, gray.shape[0], gray.shape[1])
