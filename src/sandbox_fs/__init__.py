"""sandbox-fs: sandboxed file reads, chunked reads and fuzzy edits over a shell backend."""

import logging
from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("sandbox-fs")
except PackageNotFoundError:
    # running from a source checkout
    __version__ = "0.0.0.dev0"

__all__ = ["__version__"]

# Silent unless the CLI (or a host application) configures logging.
logging.getLogger(__name__).addHandler(logging.NullHandler())
