import pytest
from pydantic import ValidationError

from dynmap_tiles.models import Catalog, Map, Tile, TileCoord, TileMap, UrlDescriptor

from conftest import CATALOG


def test_url_descriptor_accepts_both_key_spellings():
    upper = UrlDescriptor.model_validate({"Tiles": "tiles/", "Configuration": "c/{timestamp}"})
    lower = UrlDescriptor.model_validate({"tiles": "tiles/", "configuration": "c/{timestamp}"})
    assert upper == lower
    assert upper.tiles == "tiles/"


@pytest.mark.parametrize(
    "payload",
    [
        {"Tiles": "tiles/"},
        {"Tiles": "tiles/", "Configuration": 12},
        {"Tiles": None, "Configuration": "c.json"},
        {"Tiles": "tiles/", "Configuration": ""},
    ],
)
def test_url_descriptor_rejects_bad_shapes(payload):
    with pytest.raises(ValidationError):
        UrlDescriptor.model_validate(payload)


def test_catalog_keeps_render_metadata():
    catalog = Catalog.model_validate(CATALOG)
    flat = catalog.worlds[0].maps[0]
    assert catalog.default_world == "world"
    assert flat.image_format == "png"
    assert flat.scale == 4
    assert flat.model_extra == {"azimuth": 180}
    assert catalog.map_keys() == [("world", "flat"), ("world", "surface"), ("world_nether", "flat")]


def test_map_requires_name():
    with pytest.raises(ValidationError):
        Map.model_validate({"title": "nameless"})


def test_tile_uri_resolves_relative_paths():
    tile = Tile("world/flat/0_0/1_1.png", "1_1.png")
    assert tile.tile_uri() == "world/flat/0_0/1_1.png"
    assert tile.tile_uri("https://dynmap.example/map/tiles") == (
        "https://dynmap.example/map/tiles/world/flat/0_0/1_1.png"
    )
    absolute = Tile("https://cdn.example/t.png", "t.png")
    assert absolute.tile_uri("https://dynmap.example/map/tiles/") == "https://cdn.example/t.png"


def test_tile_map_normalizes_coordinates_and_keeps_order():
    tiles = TileMap("flat", [((2, 0), Tile("b", "b.png")), ((0, 1), Tile("a", "a.png"))])
    assert list(tiles) == [TileCoord(2, 0), TileCoord(0, 1)]
    assert tiles[(0, 1)].remote_uri == "a"
    assert tiles[TileCoord(2, 0)].relative_path == "b.png"
    assert len(tiles) == 2


def test_tile_map_is_read_only():
    tiles = TileMap("flat", {(0, 0): Tile("a", "a.png")})
    with pytest.raises(TypeError):
        tiles[(1, 1)] = Tile("b", "b.png")  # type: ignore[index]


def test_tile_map_rejects_duplicates():
    with pytest.raises(ValueError):
        TileMap("flat", [((0, 0), Tile("a", "a.png")), (TileCoord(0, 0), Tile("b", "b.png"))])


@pytest.mark.parametrize(
    "entries",
    [
        [((0, 0), "not a tile")],
        [(("x", 0), Tile("a", "a.png"))],
        [((0, 0, 0), Tile("a", "a.png"))],
    ],
)
def test_tile_map_rejects_malformed_entries(entries):
    with pytest.raises(TypeError):
        TileMap("flat", entries)
