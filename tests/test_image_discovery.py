import os
import zipfile

import pytest

from qrdetect.image_discovery import discover_all, discover_images


@pytest.fixture
def tree(tmp_path):
	(tmp_path / "sub").mkdir()
	(tmp_path / "__MACOSX").mkdir()
	for rel in ["b.png", "a.JPG", "sub/c.heic", "notes.txt", "._a.JPG", ".hidden.png", "__MACOSX/x.png"]:
		(tmp_path / rel).write_bytes(b"x")
	return tmp_path


def test_folder(tree):
	found = discover_images(str(tree))
	assert [os.path.relpath(p, tree) for p in found] == ["a.JPG", "b.png", os.path.join("sub", "c.heic")]


def test_single_file(tree):
	assert discover_images(str(tree / "b.png")) == [str(tree / "b.png")]
	assert discover_images(str(tree / "notes.txt")) == []


def test_zip(tree, tmp_path_factory):
	archive = tmp_path_factory.mktemp("zips") / "imgs.zip"
	with zipfile.ZipFile(archive, "w") as zf:
		zf.writestr("one.png", b"x")
		zf.writestr("deep/two.webp", b"x")
		zf.writestr("readme.md", b"x")
	found = discover_images(str(archive))
	assert sorted(os.path.basename(p) for p in found) == ["one.png", "two.webp"]
	assert all(os.path.exists(p) for p in found)


def test_missing(tmp_path):
	with pytest.raises(FileNotFoundError):
		discover_images(str(tmp_path / "absent"))


def test_discover_all_dedupes(tree):
	found = discover_all([str(tree / "b.png"), str(tree)])
	assert found[0] == str(tree / "b.png")
	assert len(found) == len(set(found)) == 3
