import json

import httpx
import pytest

from dynmap_tiles.models import Tile, TileMap

BASE_URL = "https://dynmap.example/map/"

BOOTSTRAP_SCRIPT = """
var config = {
  url : {"Tiles": "tiles/", "Configuration": "standalone/dynmap_config.json?_={timestamp}"}};
"""

CATALOG = {
    "title": "Example Server",
    "defaultworld": "world",
    "updaterate": 2000,
    "worlds": [
        {
            "name": "world",
            "title": "Overworld",
            "maps": [
                {"name": "flat", "title": "Flat", "prefix": "flat", "perspective": "iso_S_90_lowres",
                 "scale": 4, "image-format": "png", "azimuth": 180},
                {"name": "surface", "title": "Surface", "prefix": "t"},
            ],
        },
        {
            "name": "world_nether",
            "title": "Nether",
            "maps": [{"name": "flat", "prefix": "nt"}],
        },
    ],
}


class FakeDynmapServer:
    """Serves the bootstrap script and catalog, records every requested URL."""

    def __init__(self, script: str = BOOTSTRAP_SCRIPT, catalog=None) -> None:
        self.script = script
        self.catalog_body = json.dumps(CATALOG if catalog is None else catalog)
        self.requests: list[httpx.URL] = []
        self.config_status = 200

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request.url)
        if request.url.path == "/map/standalone/config.js":
            return httpx.Response(200, text=self.script)
        if request.url.path == "/map/standalone/dynmap_config.json" or "/cfg/" in request.url.path:
            return httpx.Response(self.config_status, text=self.catalog_body)
        return httpx.Response(404)

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self)


@pytest.fixture
def server() -> FakeDynmapServer:
    return FakeDynmapServer()


def make_tile_map(count: int, title: str = "world - flat") -> TileMap:
    return TileMap(
        title,
        [
            ((i, -i), Tile(f"https://dynmap.example/map/tiles/world/flat/0_0/{i}_{-i}.png", f"{i}_{-i}.png"))
            for i in range(1, count + 1)
        ],
    )


# standalone/config.js as served by Dynmap's JSON web server
DYNMAP_CONFIG_JS = """var config = {
 url : {
  configuration: 'standalone/dynmap_config.json?_={timestamp}',
  update: 'standalone/dynmap_{world}.json?_={timestamp}',
  sendmessage: 'standalone/sendmessage.php',
  login: 'standalone/login.php',
  register: 'standalone/register.php',
  tiles: 'tiles/',
  markers: 'tiles/'
 }
};
"""
