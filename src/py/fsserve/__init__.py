from .config import ConfigurationError, ServerConfig  # NOQA: F401
from .dispatcher import RequestDispatcher  # NOQA: F401
from .events import LogObserver, NullObserver, Observer, Observers  # NOQA: F401
from .http.model import HTTPRequest, HTTPResponse  # NOQA: F401
from .mime import MimeRegistry  # NOQA: F401
from .paths import PathResolver  # NOQA: F401
from .server import run  # NOQA: F401

__version__ = "1.0.0"

# EOF
