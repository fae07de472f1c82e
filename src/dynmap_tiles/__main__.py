import argparse
import json
import logging
import sys
from pathlib import Path
from typing import List, Optional

from .config import DEFAULT_CACHE_ROOT, DEFAULT_CONCURRENCY, LOG_LEVEL
from .di import get_container
from .errors import DynmapError
from .models import Tile, TileMap
from .services.tiles import run_download

logger = logging.getLogger("dynmap_tiles")


def _prepare_logging() -> None:
    logging.basicConfig(
        level=getattr(logging, LOG_LEVEL, logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def _parse_args(argv: Optional[List[str]]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="dynmap_tiles",
        description="List Dynmap worlds/maps and download tile sets.",
    )
    parser.add_argument("url", help="Dynmap base URL, e.g. https://example.org/map/")
    parser.add_argument("--tile-map", type=Path, help="JSON file describing the tiles to fetch")
    parser.add_argument("--concurrency", type=int, default=DEFAULT_CONCURRENCY)
    parser.add_argument("--cache-root", type=Path, default=DEFAULT_CACHE_ROOT)
    parser.add_argument("--no-cache", action="store_true", help="re-download tiles that exist locally")
    return parser.parse_args(argv)


def load_tile_map(path: Path, tiles_url: Optional[str] = None) -> TileMap:
    """
    Read ``{"title": ..., "tiles": [{"dx", "dy", "uri", "path"}, ...]}``.
    Relative tile URIs are resolved against ``tiles_url``.
    """
    payload = json.loads(path.read_text(encoding="utf-8"))
    entries = []
    for raw in payload.get("tiles", []):
        tile = Tile(remote_uri=str(raw["uri"]), relative_path=str(raw["path"]))
        if tiles_url:
            tile = Tile(tile.tile_uri(tiles_url), tile.relative_path)
        entries.append(((int(raw["dx"]), int(raw["dy"])), tile))
    return TileMap(str(payload.get("title", path.stem)), entries)


def main(argv: Optional[List[str]] = None) -> None:
    _prepare_logging()
    args = _parse_args(argv)
    endpoint = get_container().endpoint(args.url)
    try:
        config = endpoint.refresh_config()
    except DynmapError as exc:
        logger.error("Could not read server configuration: %s", exc)
        sys.exit(1)

    if args.tile_map is None:
        for world_name, map_name in config.map_keys():
            print(f"{world_name}/{map_name}")
        return

    tile_map = load_tile_map(args.tile_map, endpoint.tiles_url)
    total = len(tile_map)
    done = 0

    def report(count: int) -> None:
        nonlocal done
        done += count
        print(f"\r{done}/{total}", end="", flush=True)

    files = run_download(
        tile_map,
        report,
        concurrency=max(1, args.concurrency),
        use_cache=not args.no_cache,
        cache_root=args.cache_root,
    )
    print()
    print(f"{len(files)} of {total} tiles available under {args.cache_root.resolve()}")
    if len(files) < total:
        sys.exit(2)


if __name__ == "__main__":
    main()
