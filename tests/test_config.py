import io
import json
import ssl
from pathlib import Path

import pytest

from fsserve import tls
from fsserve.__main__ import configure, main
from fsserve.config import (
	ConfigurationError,
	ServerConfig,
	interpolate,
	loadMimeTypes,
	parseHeader,
	parseMimeTypes,
	parsePort,
)
from fsserve.utils import logging
from fsserve.utils.logging import LogLevel, parseLevel


def test_interpolate(monkeypatch):
	monkeypatch.setenv("SITE_ROOT", "/srv/www")
	monkeypatch.delenv("NOT_DEFINED", raising=False)
	assert interpolate("%SITE_ROOT%/public") == "/srv/www/public"
	assert interpolate("%NOT_DEFINED%/public") == "/public"
	assert interpolate("plain") == "plain"
	assert interpolate(None) is None


def test_parse_mime_types():
	assert parseMimeTypes('{"md": "text/markdown", "ttf": ""}') == {
		"md": "text/markdown",
		"ttf": "",
	}
	with pytest.raises(ConfigurationError):
		parseMimeTypes("{md: text/markdown}")
	with pytest.raises(ConfigurationError):
		parseMimeTypes('["md"]')
	with pytest.raises(ConfigurationError):
		parseMimeTypes('{"md": 1}')


def test_load_mime_types(tmp_path: Path):
	path = tmp_path / "mime.json"
	path.write_text(json.dumps({"md": "text/markdown", "csv": "text/csv"}))
	assert loadMimeTypes() is None
	assert loadMimeTypes(path=path) == {"md": "text/markdown", "csv": "text/csv"}
	# Inline overrides win over the file
	assert loadMimeTypes('{"md": "text/x-markdown"}', path) == {
		"md": "text/x-markdown",
		"csv": "text/csv",
	}
	with pytest.raises(ConfigurationError):
		loadMimeTypes(path=tmp_path / "missing.json")


def test_parse_header():
	assert parseHeader("X-Frame-Options: DENY") == ("X-Frame-Options", "DENY")
	assert parseHeader("Link : <a>; rel=x:y") == ("Link", "<a>; rel=x:y")
	with pytest.raises(ConfigurationError):
		parseHeader("no separator")
	with pytest.raises(ConfigurationError):
		parseHeader(": value")


def test_parse_port():
	assert parsePort("8080") == 8080
	assert parsePort(443) == 443
	assert parsePort(None) is None
	assert parsePort("") is None
	with pytest.raises(ConfigurationError):
		parsePort("http")
	with pytest.raises(ConfigurationError):
		parsePort("70000")


def test_listen_port():
	assert ServerConfig(port=None).listenPort == 80
	assert ServerConfig(port=None, tls=tls.TLSMaterial.Fallback()).listenPort == 443
	assert ServerConfig(port=8080, tls=tls.TLSMaterial.Fallback()).listenPort == 8080


def test_configure(monkeypatch, tmp_path: Path):
	monkeypatch.setenv("SITE", str(tmp_path))
	config, logRequests = configure(
		[
			"--path",
			"%SITE%/public",
			"--default-file-name",
			"",
			"--port",
			"8000",
			"--mime-map",
			'{"md": "text/markdown"}',
			"--not-found-file",
			"/404.html",
			"--directory-listing",
			"--header",
			"X-A: 1",
			"--header",
			"X-B: 2",
			"--quiet",
		]
	)
	assert config.root == f"{tmp_path}/public"
	assert config.defaultDocument == ""
	assert config.port == 8000
	assert config.mimeTypes == {"md": "text/markdown"}
	assert config.notFound == "/404.html"
	assert config.directoryListing
	assert config.headers == (("X-A", "1"), ("X-B", "2"))
	assert config.tls is None
	assert not logRequests


def test_configure_defaults():
	config, _ = configure([])
	assert config.root == "."
	assert config.defaultDocument == "index.html"
	assert not config.directoryListing
	assert config.notFound is None
	assert config.mimeTypes is None
	assert config.headers == ()


def test_configure_rejects_bad_port(monkeypatch):
	# `PORT` is only parsed once the configuration is built
	monkeypatch.setattr("fsserve.__main__.PORT", "nope")
	with pytest.raises(ConfigurationError):
		configure([])
	config, _ = configure(["--port", "8081"])
	assert config.port == 8081


def test_configure_tls():
	config, _ = configure(["--use-ssl"])
	assert config.tls is not None
	assert config.tls.isFallback
	cert = str(tls.FALLBACK_CERTIFICATE)
	key = str(tls.FALLBACK_KEY)
	config, _ = configure(["--use-ssl", "--ssl-cert-file", cert, "--ssl-key-file", key])
	assert config.tls is not None
	assert not config.tls.isFallback
	with pytest.raises(ConfigurationError):
		configure(["--use-ssl", "--ssl-cert-file", cert])


def test_tls_context():
	assert isinstance(tls.context(tls.TLSMaterial.Fallback()), ssl.SSLContext)
	with pytest.raises(ConfigurationError):
		tls.context(tls.TLSMaterial(b"not a certificate", b"not a key"))
	with pytest.raises(ConfigurationError):
		tls.TLSMaterial.Load("/nonexistent/cert.pem", "/nonexistent/key.pem")


def test_main_rejects_bad_configuration():
	stream = io.StringIO()
	previous = logging.ERR
	logging.setErrorStream(stream)
	try:
		assert main(["--mime-map", "{"]) == 1
	finally:
		logging.setErrorStream(previous)
	assert "Malformed MIME map" in stream.getvalue()


def test_main_rejects_bad_port():
	stream = io.StringIO()
	previous = logging.ERR
	logging.setErrorStream(stream)
	try:
		assert main(["--port", "nope"]) == 1
	finally:
		logging.setErrorStream(previous)
	assert "Expected a port number" in stream.getvalue()


def test_log_levels():
	assert parseLevel("debug") == LogLevel.Debug
	assert parseLevel("WARNING") == LogLevel.Warning
	assert parseLevel("verbose") == LogLevel.Info
	assert parseLevel(None, LogLevel.Error) == LogLevel.Error


def test_log_level_filters_entries():
	stream = io.StringIO()
	previous_stream, previous_level = logging.ERR, logging.LOG_LEVEL
	logging.setErrorStream(stream)
	logging.setLevel("warning")
	try:
		assert not logging.logged(logging.info)
		assert logging.logged(logging.error)
		logging.info("Hidden")
		logging.warning("Shown", Path="/a b")
	finally:
		logging.setErrorStream(previous_stream)
		logging.setLevel(previous_level)
	output = stream.getvalue()
	assert "Hidden" not in output
	assert "Shown" in output
	assert "'/a b'" in output


# EOF
