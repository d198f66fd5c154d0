import os
import ssl
import tempfile
from pathlib import Path
from typing import NamedTuple

from .config import ConfigurationError
from .utils.logging import warning

# A self-signed certificate for `localhost`, used when TLS is requested
# without a certificate.
FALLBACK_CERTIFICATE: Path = Path(__file__).parent / "data" / "fallback.crt.pem"
FALLBACK_KEY: Path = Path(__file__).parent / "data" / "fallback.key.pem"


class TLSMaterial(NamedTuple):
	"""PEM-encoded certificate chain and private key."""

	certificate: bytes
	key: bytes
	isFallback: bool = False

	@staticmethod
	def Fallback() -> "TLSMaterial":
		return TLSMaterial(
			FALLBACK_CERTIFICATE.read_bytes(), FALLBACK_KEY.read_bytes(), True
		)

	@staticmethod
	def Load(
		certificate: str | Path | None, key: str | Path | None
	) -> "TLSMaterial":
		"""Loads the material from the given files, or returns the fallback
		material when none are given."""
		if not certificate and not key:
			warning("No TLS certificate given, using the built-in self-signed one")
			return TLSMaterial.Fallback()
		elif not (certificate and key):
			raise ConfigurationError(
				"TLS needs both a certificate and a key file, only one was given"
			)
		try:
			return TLSMaterial(Path(certificate).read_bytes(), Path(key).read_bytes())
		except OSError as e:
			raise ConfigurationError(f"Could not read TLS material: {e}") from e


def context(material: TLSMaterial) -> ssl.SSLContext:
	"""Creates a server-side SSL context for the given material."""
	ctx = ssl.create_default_context(ssl.Purpose.CLIENT_AUTH)
	# `load_cert_chain` only accepts paths, so the material goes through a
	# private temporary directory.
	with tempfile.TemporaryDirectory(prefix="fsserve") as tmp:
		cert_path = os.path.join(tmp, "cert.pem")
		key_path = os.path.join(tmp, "key.pem")
		for path, data in (
			(cert_path, material.certificate),
			(key_path, material.key),
		):
			fd = os.open(path, os.O_WRONLY | os.O_CREAT | os.O_EXCL, 0o600)
			with os.fdopen(fd, "wb") as f:
				f.write(data)
		try:
			ctx.load_cert_chain(cert_path, key_path)
		except ssl.SSLError as e:
			raise ConfigurationError(f"Invalid TLS certificate or key: {e}") from e
	return ctx


# EOF
