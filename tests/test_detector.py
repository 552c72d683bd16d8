import logging
import threading
import time

import numpy as np
import pytest

from qrdetect.config import DetectorSettings
from qrdetect.detector import QrcodeDetector
from qrdetect.errors import InvalidArgumentError, ModelLoadError
from qrdetect.pixel_format import PixelFormat


def test_missing_models_degrade(tmp_path, caplog):
	with caplog.at_level(logging.WARNING, logger="qrdetect.inference"):
		det = QrcodeDetector(DetectorSettings(model_dir=str(tmp_path)))
	assert not det.pipeline.use_nn_detector
	assert not det.pipeline.super_scale.net_loaded
	assert "model files not found" in caplog.text


def test_missing_models_strict(tmp_path):
	with pytest.raises(ModelLoadError):
		QrcodeDetector(DetectorSettings(model_dir=str(tmp_path), strict_models=True))


def test_broken_models_strict(model_dir, fake_backend):
	with pytest.raises(ModelLoadError):
		QrcodeDetector(DetectorSettings(model_dir=model_dir, strict_models=True), backend=fake_backend(fail_load=True))


def test_models_loaded_through_backend(model_dir, fake_backend):
	backend = fake_backend()
	det = QrcodeDetector(DetectorSettings(model_dir=model_dir), backend=backend)
	assert det.pipeline.use_nn_detector
	assert det.pipeline.region_detector.model == "detect.caffemodel"
	assert det.pipeline.super_scale.model == "sr.caffemodel"


def test_flags_skip_model_loading(model_dir, fake_backend):
	det = QrcodeDetector(DetectorSettings(model_dir=model_dir, use_nn_detector=False, use_sr=False), backend=fake_backend())
	assert not det.pipeline.use_nn_detector
	assert not det.pipeline.super_scale.net_loaded


def test_close_releases_models(model_dir, fake_backend):
	with QrcodeDetector(DetectorSettings(model_dir=model_dir), backend=fake_backend()) as det:
		assert det.pipeline.use_nn_detector
	assert not det.pipeline.use_nn_detector
	assert not det.pipeline.super_scale.net_loaded


def test_network_region_with_real_decode(model_dir, fake_backend, hello_image):
	gray, boxes = hello_image
	x0, y0, _x1, _y1 = boxes[0]
	# Proposal is a loose box around the symbol at (150, 150)-(255, 255)
	row = [0, 1, 0.95, 0.125, 0.125, 0.875, 0.875]
	backend = fake_backend({
		"detect.caffemodel": np.array(row, np.float32).reshape(1, 1, 1, 7),
		"sr.caffemodel": RuntimeError("unused"),
	})
	det = QrcodeDetector(DetectorSettings(model_dir=model_dir), backend=backend)
	records = det.detect(gray)
	assert [r.text for r in records] == ["HELLO"]
	assert abs(records[0].points[0][0] - x0) <= 5
	assert abs(records[0].points[0][1] - y0) <= 5


def test_scale_factor_roundtrip():
	det = QrcodeDetector(use_nn_detector=False)
	assert det.scale_factor == -1.0
	det.set_scale_factor(0.5)
	assert det.scale_factor == 0.5
	det.set_scale_factor(-3)
	assert det.scale_factor == -1.0


def test_bad_sources():
	det = QrcodeDetector()
	with pytest.raises(InvalidArgumentError):
		det.detect(None)
	with pytest.raises(InvalidArgumentError):
		det.detect(12345)
	with pytest.raises(InvalidArgumentError):
		det.detect(np.zeros((0, 0), np.uint8))


def test_unknown_setting():
	with pytest.raises(TypeError):
		QrcodeDetector(colour=True)


def test_detect_pixels(hello_image):
	gray, _ = hello_image
	rgba = np.dstack([gray, gray, gray, np.full_like(gray, 255)])
	det = QrcodeDetector()
	records = det.detect_pixels(rgba.tobytes(), PixelFormat.RGBA, 400, 400)
	assert [r.text for r in records] == ["HELLO"]


def test_calls_are_serialized():
	det = QrcodeDetector()
	active = []
	overlap = []

	class SlowDecoder:
		name = "slow"

		def decode(self, binary):
			active.append(1)
			if len(active) > 1:
				overlap.append(True)
			time.sleep(0.01)
			active.pop()
			return []

	det.pipeline.decoder = SlowDecoder()
	img = np.full((100, 100), 255, np.uint8)
	threads = [threading.Thread(target=det.detect, args=(img,)) for _ in range(4)]
	for t in threads:
		t.start()
	for t in threads:
		t.join()
	assert overlap == []


@pytest.mark.parametrize("shape", [(100, 100, 2), (100, 100, 5), (4, 100, 100, 3), (100,)])
def test_unsupported_array_shapes(shape):
	det = QrcodeDetector(use_nn_detector=False, use_sr=False)
	with pytest.raises(InvalidArgumentError):
		det.detect(np.zeros(shape, np.uint8))


def test_single_channel_array(hello_image):
	gray, _ = hello_image
	det = QrcodeDetector(use_nn_detector=False, use_sr=False)
	assert [r.text for r in det.detect(gray[:, :, None])] == ["HELLO"]
