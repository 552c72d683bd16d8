import os
import tempfile
import zipfile
from typing import Iterable, List

SUPPORTED_EXT = {".png", ".jpg", ".jpeg", ".bmp", ".tif", ".tiff", ".webp", ".heic", ".heif"}


def _is_image_name(name: str) -> bool:
	# macOS resource forks (._name) and hidden files are never images
	if name.startswith("."):
		return False
	return os.path.splitext(name)[1].lower() in SUPPORTED_EXT


def discover_images(src_path: str) -> List[str]:
	"""Return absolute image paths for a single file, a folder, or a zip archive.

	- A zip is extracted to a temp dir that lives for the process lifetime.
	- Folder and zip contents come back sorted for determinism.
	"""
	abspath = os.path.abspath(src_path)
	if not os.path.exists(abspath):
		raise FileNotFoundError(f"Source path not found: {abspath}")

	if zipfile.is_zipfile(abspath):
		dir_to_scan = tempfile.mkdtemp(prefix="qrdetect_zip_")
		with zipfile.ZipFile(abspath) as zf:
			zf.extractall(dir_to_scan)
	elif os.path.isfile(abspath):
		return [abspath] if _is_image_name(os.path.basename(abspath)) else []
	else:
		dir_to_scan = abspath

	found: List[str] = []
	for root, _dirs, files in os.walk(dir_to_scan):
		if "__MACOSX" in root:
			continue
		found.extend(os.path.join(root, name) for name in files if _is_image_name(name))
	return sorted(found)


def discover_all(sources: Iterable[str]) -> List[str]:
	"""discover_images over several sources, keeping first-seen order and dropping repeats."""
	seen = set()
	out: List[str] = []
	for src in sources:
		for path in discover_images(src):
			if path not in seen:
				seen.add(path)
				out.append(path)
	return out
