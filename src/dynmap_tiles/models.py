from __future__ import annotations

from collections.abc import Iterable, Iterator, Mapping
from dataclasses import dataclass
from pathlib import Path
from types import MappingProxyType
from typing import Dict, List, NamedTuple, Optional, Tuple, Union
from urllib.parse import urljoin

from pydantic import AliasChoices, BaseModel, ConfigDict, Field


class UrlDescriptor(BaseModel):
    """
    Relative URL templates embedded in ``standalone/config.js``.
    The server spells the keys either ``Tiles`` or ``tiles``.
    """

    tiles: str = Field(validation_alias=AliasChoices("Tiles", "tiles"))
    configuration: str = Field(
        validation_alias=AliasChoices("Configuration", "configuration"),
        min_length=1,
    )

    model_config = ConfigDict(extra="ignore", strict=True)


class Map(BaseModel):
    name: str
    title: Optional[str] = None
    prefix: Optional[str] = None
    perspective: Optional[str] = None
    scale: Optional[int] = None
    image_format: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("image-format", "image_format"),
    )
    icon: Optional[str] = None

    # render metadata we do not model explicitly is kept as extra fields
    model_config = ConfigDict(extra="allow")


class World(BaseModel):
    name: str
    title: Optional[str] = None
    maps: List[Map] = Field(default_factory=list)

    model_config = ConfigDict(extra="allow")


class Catalog(BaseModel):
    worlds: List[World]
    title: Optional[str] = None
    default_world: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("defaultworld", "default_world"),
    )

    model_config = ConfigDict(extra="allow")

    def map_keys(self) -> List[Tuple[str, str]]:
        return [(world.name, m.name) for world in self.worlds for m in world.maps]


class TileCoord(NamedTuple):
    dx: int
    dy: int


@dataclass(frozen=True)
class Tile:
    remote_uri: str
    relative_path: str

    def tile_uri(self, base: Optional[str] = None) -> str:
        if base is None:
            return self.remote_uri
        if not base.endswith("/"):
            base += "/"
        return urljoin(base, self.remote_uri)


CoordLike = Union[TileCoord, Tuple[int, int]]


class TileMap(Mapping):
    """
    Read-only, ordered ``TileCoord -> Tile`` mapping for one map selection.
    ``title`` namespaces the local cache directory.
    """

    def __init__(
        self,
        title: str,
        tiles: Union[Mapping[CoordLike, Tile], Iterable[Tuple[CoordLike, Tile]]],
    ) -> None:
        if not isinstance(title, str):
            raise TypeError(f"TileMap title must be str, got {type(title).__name__}")
        items = tiles.items() if isinstance(tiles, Mapping) else tiles
        data: Dict[TileCoord, Tile] = {}
        for raw_key, tile in items:
            key = _to_coord(raw_key)
            if not isinstance(tile, Tile):
                raise TypeError(f"TileMap value for {key} is not a Tile: {tile!r}")
            if key in data:
                raise ValueError(f"Duplicate tile coordinate {key}")
            data[key] = tile
        self.title = title
        self._tiles = MappingProxyType(data)

    def __getitem__(self, key: CoordLike) -> Tile:
        return self._tiles[_to_coord(key)]

    def __iter__(self) -> Iterator[TileCoord]:
        return iter(self._tiles)

    def __len__(self) -> int:
        return len(self._tiles)

    def __repr__(self) -> str:
        return f"TileMap(title={self.title!r}, tiles={len(self)})"


ImageMap = Dict[TileCoord, Path]


def _to_coord(raw: CoordLike) -> TileCoord:
    if isinstance(raw, TileCoord):
        return raw
    try:
        dx, dy = raw
    except (TypeError, ValueError):
        raise TypeError(f"Tile coordinate must be a (dx, dy) pair, got {raw!r}") from None
    if not isinstance(dx, int) or not isinstance(dy, int):
        raise TypeError(f"Tile coordinate must hold integers, got {raw!r}")
    return TileCoord(dx, dy)
