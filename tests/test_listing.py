import os
from pathlib import Path

from fsserve.listing import DirectoryLister
from fsserve.paths import PathResolver


def test_entries_are_sorted_and_typed(site: Path):
	lister = DirectoryLister(PathResolver(site))
	entries = lister.entries(site)
	names = [_.path.name for _ in entries]
	assert names == sorted(names)
	kinds = {_.path.name: _.isDirectory for _ in entries}
	assert kinds["docs"] is True
	assert kinds["empty"] is True
	assert kinds["hello.txt"] is False


def test_broken_links_are_skipped(tmp_path: Path):
	(tmp_path / "real.txt").write_text("real")
	os.symlink(tmp_path / "nowhere", tmp_path / "broken")
	lister = DirectoryLister(PathResolver(tmp_path))
	assert [_.path.name for _ in lister.entries(tmp_path)] == ["real.txt"]


def test_listing_links_are_relative_to_root(site: Path):
	(site / "docs" / "a b.txt").write_text("spaced")
	(site / "docs" / "nested").mkdir()
	lister = DirectoryLister(PathResolver(site))
	page = lister.list(site / "docs")
	assert page.startswith("<!DOCTYPE html>")
	assert '<base href="/">' in page
	assert 'href="docs/guide.txt"' in page
	assert 'href="docs/a%20b.txt"' in page
	assert 'href="docs/nested/"' in page
	# Folders come before files
	assert page.index("docs/nested/") < page.index("docs/guide.txt")
	assert page.index("Folders") < page.index("Files")


def test_listing_escapes_names(tmp_path: Path):
	(tmp_path / "<b>.txt").write_text("x")
	page = DirectoryLister(PathResolver(tmp_path)).list(tmp_path)
	assert "<b>.txt" not in page
	assert "&lt;b&gt;.txt" in page
	assert 'href="%3Cb%3E.txt"' in page


def test_listing_names_that_are_not_utf8(tmp_path: Path):
	(tmp_path / os.fsdecode(b"bad\xff.txt")).write_text("x")
	(tmp_path / "good.txt").write_text("y")
	page = DirectoryLister(PathResolver(tmp_path)).list(tmp_path)
	# The page can be encoded, and links carry the original bytes
	page.encode("utf8")
	assert 'href="bad%FF.txt"' in page
	assert "bad\\xff.txt" in page
	assert 'href="good.txt"' in page


# EOF
