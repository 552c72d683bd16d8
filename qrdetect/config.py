import logging
import os
from dataclasses import dataclass
from typing import Optional

from dotenv import load_dotenv

ENV_PREFIX = "QRDETECT_"
DEFAULT_SR_MAX_SIZE = 160
DECODERS = ("zxing", "zbar")


@dataclass
class DetectorSettings:
	model_dir: Optional[str] = None  # holds detect.* and sr.* model files
	use_nn_detector: bool = True
	use_sr: bool = True
	sr_max_size: int = DEFAULT_SR_MAX_SIZE
	scale_factor: float = -1.0  # (0, 1] overrides the detector input scale
	decoder: str = "zxing"
	strict_models: bool = False  # raise instead of degrading when models fail to load
	debug_dir: Optional[str] = None


def _load_env_chain() -> None:
	load_dotenv()
	if os.path.exists(".env.local"):
		load_dotenv(dotenv_path=".env.local", override=True)
	elif os.path.exists("env.local"):
		load_dotenv(dotenv_path="env.local", override=True)


def _env(name: str) -> Optional[str]:
	val = os.environ.get(ENV_PREFIX + name, "").strip()
	return val or None


def _env_bool(name: str, default: bool) -> bool:
	val = _env(name)
	if val is None:
		return default
	return val.lower() in ("1", "true", "yes", "on")


def _env_number(name: str, default, cast):
	val = _env(name)
	if val is None:
		return default
	try:
		return cast(val)
	except ValueError:
		logging.getLogger(__name__).warning("ignoring %s%s=%r: not a number", ENV_PREFIX, name, val)
		return default


def load_settings(**overrides) -> DetectorSettings:
	"""Settings from .env files and QRDETECT_* variables; keyword overrides win when not None."""
	_load_env_chain()
	settings = DetectorSettings(
		model_dir=_env("MODEL_DIR"),
		use_nn_detector=_env_bool("USE_NN_DETECTOR", True),
		use_sr=_env_bool("USE_SR", True),
		sr_max_size=_env_number("SR_MAX_SIZE", DEFAULT_SR_MAX_SIZE, int),
		scale_factor=_env_number("SCALE_FACTOR", -1.0, float),
		decoder=(_env("DECODER") or "zxing").lower(),
		strict_models=_env_bool("STRICT_MODELS", False),
		debug_dir=_env("DEBUG_DIR"),
	)
	for key, value in overrides.items():
		if not hasattr(settings, key):
			raise TypeError(f"unknown setting {key!r}")
		if value is not None:
			setattr(settings, key, value)
	return settings


def log_level_from_env(default: str = "WARNING") -> int:
	_load_env_chain()
	name = (_env("LOG_LEVEL") or default).upper()
	return getattr(logging, name, logging.WARNING)
