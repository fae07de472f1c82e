"""Dynmap tile acquisition: endpoint discovery and bounded tile downloads."""

from .errors import (
    ConfigParseError,
    DynmapError,
    EndpointFetchError,
    EndpointParseError,
    TileHttpMiss,
    TileTransportError,
)
from .models import Catalog, ImageMap, Map, Tile, TileCoord, TileMap, UrlDescriptor, World
from .services.endpoints import DynmapEndpoint
from .services.tiles import TileDownloader, run_download
from .utils import sanitize_filename
from .version import __version__

__all__ = [
    "__version__",
    "Catalog",
    "ConfigParseError",
    "DynmapEndpoint",
    "DynmapError",
    "EndpointFetchError",
    "EndpointParseError",
    "ImageMap",
    "Map",
    "Tile",
    "TileCoord",
    "TileDownloader",
    "TileHttpMiss",
    "TileMap",
    "TileTransportError",
    "UrlDescriptor",
    "World",
    "run_download",
    "sanitize_filename",
]
