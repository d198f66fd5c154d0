import argparse
import sys

from . import tls
from .config import (
	DEFAULT_DOCUMENT,
	HOST,
	LOG_REQUESTS,
	PORT,
	ConfigurationError,
	ServerConfig,
	interpolate,
	loadMimeTypes,
	parseHeader,
	parsePort,
)
from .dispatcher import RequestDispatcher
from .events import LogObserver, NullObserver, Observer
from .server import run
from .utils.logging import error, info


def parser() -> argparse.ArgumentParser:
	parser = argparse.ArgumentParser(
		prog="fsserve",
		description="Serves the files of a directory over HTTP(S)",
		formatter_class=argparse.ArgumentDefaultsHelpFormatter,
	)
	parser.add_argument(
		"--path",
		action="store",
		dest="path",
		help="The directory to serve, %%NAME%% is replaced by the environment variable",
		default=".",
	)
	parser.add_argument(
		"--default-file-name",
		action="store",
		dest="defaultDocument",
		metavar="NAME",
		help="File served for directories, an empty name disables it",
		default=DEFAULT_DOCUMENT,
	)
	parser.add_argument(
		"--host",
		action="store",
		dest="host",
		help="The address to listen on",
		default=HOST,
	)
	parser.add_argument(
		"-p",
		"--port",
		action="store",
		dest="port",
		help="The port to listen on (`PORT`), 443 with TLS and 80 otherwise",
		default=PORT,
	)
	parser.add_argument(
		"--use-ssl",
		action="store_true",
		dest="useSSL",
		help="Serves over TLS",
	)
	parser.add_argument(
		"--ssl-cert-file",
		action="store",
		dest="certificate",
		metavar="FILE",
		help="PEM certificate chain, a self-signed one is used when not given",
	)
	parser.add_argument(
		"--ssl-key-file",
		action="store",
		dest="key",
		metavar="FILE",
		help="PEM private key for the certificate",
	)
	parser.add_argument(
		"--mime-map",
		action="store",
		dest="mimeMap",
		metavar="JSON",
		help='Extension to content type overrides, like \'{"md":"text/markdown"}\'',
	)
	parser.add_argument(
		"--mime-map-file",
		action="store",
		dest="mimeMapFile",
		metavar="FILE",
		help="JSON file with extension to content type overrides",
	)
	parser.add_argument(
		"--not-found-file",
		action="store",
		dest="notFound",
		metavar="PATH",
		help="Path of the page served instead of a 404, relative to the root",
	)
	parser.add_argument(
		"--directory-listing",
		action="store_true",
		dest="directoryListing",
		help="Lists the contents of directories",
	)
	parser.add_argument(
		"--header",
		action="append",
		dest="headers",
		metavar="'NAME: VALUE'",
		help="Header added to every response that isn't a 404 (can be repeated)",
	)
	parser.add_argument(
		"-q",
		"--quiet",
		action="store_true",
		dest="quiet",
		help="Does not log requests",
	)
	return parser


def configure(args: list[str] | None = None) -> tuple[ServerConfig, bool]:
	"""Parses the command line into a server configuration, and tells if
	requests should be logged. Raises `ConfigurationError` when the
	configuration can't be used."""
	options = parser().parse_args(args=args)
	material: tls.TLSMaterial | None = (
		tls.TLSMaterial.Load(
			interpolate(options.certificate), interpolate(options.key)
		)
		if options.useSSL
		else None
	)
	config = ServerConfig(
		root=interpolate(options.path) or ".",
		defaultDocument=options.defaultDocument,
		directoryListing=options.directoryListing,
		notFound=interpolate(options.notFound) or None,
		mimeTypes=loadMimeTypes(options.mimeMap, interpolate(options.mimeMapFile)),
		host=options.host,
		port=parsePort(options.port),
		tls=material,
		headers=tuple(parseHeader(_) for _ in options.headers or ()),
	)
	return config, LOG_REQUESTS and not options.quiet


def main(args: list[str] | None = None) -> int:
	try:
		config, logRequests = configure(args)
		ssl_context = tls.context(config.tls) if config.tls else None
	except ConfigurationError as e:
		error(str(e), "CONFIG")
		return 1
	observer: Observer = LogObserver() if logRequests else NullObserver()
	info(
		"Serving files",
		icon="📂",
		Root=config.root,
		Listing=config.directoryListing,
		Default=config.defaultDocument or None,
	)
	run(
		RequestDispatcher(config, observer),
		host=config.host,
		port=config.listenPort,
		sslContext=ssl_context,
	)
	return 0


if __name__ == "__main__":
	sys.exit(main(sys.argv[1:]))

# EOF
