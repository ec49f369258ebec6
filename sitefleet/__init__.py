"""Site fleet update service."""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("sitefleet")
except PackageNotFoundError:
    __version__ = "0.0.0-dev"
