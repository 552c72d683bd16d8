import logging

import numpy as np
import pytest

from qrdetect.errors import ModelLoadError
from qrdetect.inference import (
	ModelFiles,
	OpenCVDnnBackend,
	detector_model_files,
	gray_to_tensor,
	sr_model_files,
	try_load_model,
)


def test_model_file_names(tmp_path):
	det = detector_model_files(str(tmp_path))
	sr = sr_model_files(str(tmp_path))
	assert det.weights.endswith("detect.caffemodel") and det.config.endswith("detect.prototxt")
	assert sr.weights.endswith("sr.caffemodel") and sr.config.endswith("sr.prototxt")
	assert not det.exists()


def test_tensor_layout():
	gray = np.array([[0, 255], [51, 102], [153, 204]], np.uint8)
	t = gray_to_tensor(gray)
	assert t.shape == (1, 1, 3, 2)
	assert t.dtype == np.float32
	assert t[0, 0, 1].tolist() == pytest.approx([0.2, 0.4])


def test_missing_files_warn(tmp_path, fake_backend, caplog):
	with caplog.at_level(logging.WARNING):
		assert try_load_model(fake_backend(), detector_model_files(str(tmp_path))) is None
	assert "detect.caffemodel" in caplog.text


def test_load_errors_wrapped(model_dir, fake_backend):
	files = detector_model_files(model_dir)
	assert try_load_model(fake_backend(fail_load=True), files) is None
	with pytest.raises(ModelLoadError, match="corrupt weights"):
		try_load_model(fake_backend(fail_load=True), files, strict=True)


def test_opencv_rejects_garbage_weights(model_dir):
	files = ModelFiles(weights=f"{model_dir}/detect.caffemodel", config=f"{model_dir}/detect.prototxt")
	assert try_load_model(OpenCVDnnBackend(), files) is None
	with pytest.raises(ModelLoadError):
		try_load_model(OpenCVDnnBackend(), files, strict=True)
