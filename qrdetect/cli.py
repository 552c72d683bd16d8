import argparse
import json
import logging
import os
import sys
import time
from typing import List, Optional

from tqdm import tqdm

from .config import DECODERS, load_settings, log_level_from_env
from .detector import QrcodeDetector
from .errors import DecodeFailedError, ModelLoadError
from .image_discovery import discover_all
from .image_io import load_image


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
	p = argparse.ArgumentParser(description="Detect and decode QR codes in images")
	p.add_argument("src", nargs="+", help="Image file, folder, or .zip of images")
	p.add_argument("--model-dir", help="Folder with detect.prototxt/.caffemodel and sr.prototxt/.caffemodel")
	p.add_argument("--no-detector", dest="use_nn_detector", action="store_false", default=None, help="Skip the neural detector and scan the whole image")
	p.add_argument("--no-sr", dest="use_sr", action="store_false", default=None, help="Use bicubic instead of super-resolution for 2x upscales")
	p.add_argument("--scale-factor", type=float, help="Detector input scale in (0, 1]; other values keep the size-based default")
	p.add_argument("--decoder", choices=DECODERS, help="Bitmap decoder (default: zxing)")
	p.add_argument("--strict-models", dest="strict_models", action="store_true", default=None, help="Fail if model files cannot be loaded")
	p.add_argument("--json", action="store_true", help="Print one JSON document with all results")
	p.add_argument("--limit", type=int, default=0, help="Process only first N images")
	p.add_argument("--debug-dumps", help="Directory to save crops, rescaled and binarized images per attempt")
	p.add_argument("-v", "--verbose", action="count", default=0, help="-v for info, -vv for debug logging")
	return p.parse_args(argv)


def _configure_logging(verbose: int) -> None:
	if verbose >= 2:
		level = logging.DEBUG
	elif verbose == 1:
		level = logging.INFO
	else:
		level = log_level_from_env()
	logging.basicConfig(level=level, format="%(asctime)s %(levelname)s %(name)s: %(message)s")


def _format_points(points) -> str:
	return " ".join(f"({x:.1f},{y:.1f})" for x, y in points)


def main(argv: Optional[List[str]] = None) -> int:
	args = parse_args(argv)
	_configure_logging(args.verbose)

	settings = load_settings(
		model_dir=args.model_dir,
		use_nn_detector=args.use_nn_detector,
		use_sr=args.use_sr,
		scale_factor=args.scale_factor,
		decoder=args.decoder,
		strict_models=args.strict_models,
	)

	try:
		paths = discover_all(args.src)
	except FileNotFoundError as e:
		raise SystemExit(str(e))
	if args.limit:
		paths = paths[: args.limit]
	if not paths:
		raise SystemExit("No images found.")

	try:
		detector = QrcodeDetector(settings)
	except ModelLoadError as e:
		raise SystemExit(f"Cannot load models: {e}")

	report = []
	decoded_images = 0
	with detector:
		for path in tqdm(paths, desc="Scanning images", disable=args.json or len(paths) < 2):
			try:
				gray = load_image(path)
			except DecodeFailedError as e:
				print(f"{path}: {e}", file=sys.stderr)
				continue
			decoded_images += 1

			# Per-image dump directory so attempts don't overwrite each other
			if args.debug_dumps:
				base = os.path.splitext(os.path.basename(path))[0]
				detector.pipeline.debug_dir = os.path.join(args.debug_dumps, base)

			start = time.perf_counter()
			records = detector.detect_gray(gray)
			elapsed = time.perf_counter() - start

			if args.json:
				report.append({
					"path": path,
					"seconds": round(elapsed, 4),
					"results": [{"text": r.text, "points": r.points} for r in records],
				})
				continue
			print(f"{path}\t{elapsed:.3f}s\t{len(records)} result(s)")
			for r in records:
				print(f"  text={r.text}\tpoints={_format_points(r.points)}")

	if args.json:
		print(json.dumps(report, indent=2, ensure_ascii=False))
	return 0 if decoded_images else 1


if __name__ == "__main__":
	sys.exit(main())
