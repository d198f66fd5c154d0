import os
from pathlib import Path

import pytest

from fsserve.paths import PathResolver


@pytest.mark.parametrize(
	"url",
	["/../etc/passwd", "/a/../../b", "/%2e%2e/secret", "/%2E%2E%2Fsecret", "/..hidden"],
)
def test_traversal_is_unsafe(url: str):
	assert not PathResolver.IsSafe(url)


@pytest.mark.parametrize("url", ["", "/", "/a/b.txt", "/a.b/c", "/%20x"])
def test_regular_urls_are_safe(url: str):
	assert PathResolver.IsSafe(url)


def test_resolve_maps_urls_under_root(tmp_path: Path):
	resolver = PathResolver(tmp_path)
	assert resolver.resolve("/") == tmp_path
	assert resolver.resolve("/a/b.txt") == tmp_path / "a" / "b.txt"
	assert resolver.resolve("/a%20b.txt?x=1#top") == tmp_path / "a b.txt"
	# A double slash is not a host
	assert resolver.resolve("//x/y") == tmp_path / "x" / "y"
	assert resolver.resolve("http://localhost/a.txt") == tmp_path / "a.txt"


def test_resolve_keeps_bytes_that_are_not_utf8(tmp_path: Path):
	resolver = PathResolver(tmp_path)
	assert resolver.resolve("/bad%FF.txt") == tmp_path / os.fsdecode(b"bad\xff.txt")
	assert resolver.resolve("/caf%C3%A9") == tmp_path / "caf\u00e9"


def test_resolve_rejects_escapes(tmp_path: Path):
	resolver = PathResolver(tmp_path / "root")
	assert resolver.resolve("/../outside") is None
	assert resolver.resolve("/%2e%2e/outside") is None
	assert resolver.resolve("/a\x00b") is None


def test_relative(tmp_path: Path):
	resolver = PathResolver(tmp_path)
	assert resolver.relative(tmp_path) == "/"
	assert resolver.relative(tmp_path / "a" / "b c") == "/a/b c"
	assert resolver.contains(tmp_path / "a")
	assert not resolver.contains(tmp_path.parent)


# EOF
