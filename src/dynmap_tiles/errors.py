from __future__ import annotations


class DynmapError(Exception):
    pass


class EndpointFetchError(DynmapError):
    """Bootstrap script or configuration document could not be retrieved."""


class EndpointParseError(DynmapError):
    """Bootstrap script does not embed a usable URL descriptor."""


class ConfigParseError(DynmapError):
    """Configuration document is not a valid catalog."""


class UnknownWorldError(KeyError):
    pass


class UnknownMapError(KeyError):
    pass


class TileError(DynmapError):
    """
    Per-tile failure. Raised inside a single fetch unit and handled there;
    never escapes a download batch.
    """


class TileHttpMiss(TileError):
    def __init__(self, uri: str, status_code: int, reason: str = "") -> None:
        super().__init__(f"{uri} - HTTP {status_code} {reason}".rstrip())
        self.uri = uri
        self.status_code = status_code
        self.reason = reason


class TileTransportError(TileError):
    pass
