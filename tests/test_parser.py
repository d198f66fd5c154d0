from fsserve.http.model import HTTPHeaders, HTTPProcessingStatus, HTTPRequest
from fsserve.http.parser import HTTPParser
from fsserve.utils.io import LineParser


def requests(atoms) -> list[HTTPRequest]:
	return [_ for _ in atoms if isinstance(_, HTTPRequest)]


def test_line_parser_across_chunks():
	parser = LineParser()
	lines: list[bytes] = []
	for chunk in [b"GET / HTTP/1.1\r\nHost: a\r", b"\nConnection: close", b"\r\n\r\n"]:
		offset = 0
		while offset < len(chunk):
			line, read = parser.feed(chunk, offset)
			offset += read
			if line is not None:
				lines.append(line)
	assert lines == [b"GET / HTTP/1.1", b"Host: a", b"Connection: close", b""]


def test_request_fed_in_small_chunks():
	parser = HTTPParser()
	atoms = []
	for chunk in [
		b"GET /time/5",
		b"?a=1 HTTP/1.1\r\nHost: ",
		b"127.0.0.1\r",
		b"\nConn",
		b"ection: close\r\n",
		b"\r",
		b"\n",
	]:
		atoms += list(parser.feed(chunk))
	assert isinstance(atoms[-2], HTTPHeaders)
	(req,) = requests(atoms)
	assert req.method == "GET"
	assert req.path == "/time/5"
	assert req.query == "a=1"
	assert req.url == "/time/5?a=1"
	assert req.protocol == "HTTP/1.1"
	assert req.header("connection") == "close"
	assert req.header("Host") == "127.0.0.1"


def test_pipelined_requests():
	parser = HTTPParser()
	atoms = list(
		parser.feed(b"GET /a HTTP/1.1\r\nHost: x\r\n\r\nGET /b HTTP/1.1\r\nHost: x\r\n\r\n")
	)
	assert [_.path for _ in requests(atoms)] == ["/a", "/b"]


def test_request_bodies_are_skipped():
	parser = HTTPParser()
	atoms = list(
		parser.feed(
			b"POST /form HTTP/1.1\r\nContent-Length: 5\r\n\r\nhello"
			b"GET /next HTTP/1.1\r\n\r\n"
		)
	)
	assert HTTPProcessingStatus.Body in atoms
	assert [(_.method, _.path) for _ in requests(atoms)] == [
		("POST", "/form"),
		("GET", "/next"),
	]


def test_parsers_have_no_flush_of_partial_lines():
	# A partial line is kept until its CRLF arrives, it is never flushed
	assert not hasattr(LineParser(), "flush")
	assert "Complete" not in HTTPProcessingStatus.__members__


def test_malformed_request_line():
	atoms = list(HTTPParser().feed(b"garbage\r\n\r\n"))
	assert atoms == [HTTPProcessingStatus.BadFormat]


# EOF
