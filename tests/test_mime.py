import pytest

from fsserve.mime import MIME_TYPES, MimeRegistry


def test_known_extensions():
	mime = MimeRegistry()
	assert mime.resolve("html") == "text/html"
	assert mime.resolve(".HTML") == "text/html"
	assert mime.resolve("woff2") == "font/woff2"
	assert mime.forPath("assets/app.js") == "application/javascript"


def test_unknown_and_missing_extensions_use_defaults():
	mime = MimeRegistry()
	assert mime.resolve("xyz") == "application/octet-stream"
	assert mime.forPath("README") == "application/octet-stream"
	assert MimeRegistry.Normalize("") == "."
	assert MimeRegistry.Normalize(None) == "."


def test_overrides_extend_and_replace():
	mime = MimeRegistry({"md": "text/markdown", "txt": "text/plain; charset=utf-8"})
	assert mime.resolve("md") == "text/markdown"
	assert mime.resolve("txt") == "text/plain; charset=utf-8"
	assert mime.resolve("css") == "text/css"
	assert "md" in mime
	# The defaults are left untouched
	assert "md" not in MIME_TYPES
	assert MIME_TYPES["txt"] == "text/plain"


def test_empty_content_type_disables_extension():
	mime = MimeRegistry({"ttf": ""})
	assert mime.resolve("ttf") is None
	assert mime.forPath("font.ttf") is None
	assert mime.resolve("otf") == "font/otf"


def test_override_keys_are_normalized():
	assert MimeRegistry({"TTF": ""}).resolve("ttf") is None
	assert MimeRegistry({".ttf": ""}).forPath("font.ttf") is None
	assert MimeRegistry({".Md": "text/markdown"}).resolve("md") == "text/markdown"
	assert MimeRegistry({".": "text/plain"}).forPath("README") == "text/plain"


def test_empty_wildcard_disables_unknown_extensions():
	mime = MimeRegistry({"*": ""})
	assert mime.resolve("xyz") is None
	assert mime.resolve("html") == "text/html"
	# Files without extension have their own entry
	assert mime.forPath("README") == "application/octet-stream"


def test_registry_is_immutable():
	mime = MimeRegistry()
	with pytest.raises(TypeError):
		mime.types["exe"] = "application/x-msdownload"  # type: ignore[index]


# EOF
