from __future__ import annotations

import asyncio
import logging
import os
import threading
from pathlib import Path
from typing import Callable, List, Optional, Tuple

import aiofiles
import httpx

from ..config import DEFAULT_CACHE_ROOT, DEFAULT_CONCURRENCY
from ..errors import TileHttpMiss, TileTransportError
from ..models import ImageMap, Tile, TileCoord, TileMap
from ..utils import make_tile_path, sanitize_filename
from .http import build_async_http_client

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[int], None]

_PART_SUFFIX = ".part"


class TileDownloader:
    """
    Fetches every tile of a TileMap into ``cache_root/<title>/<tile path>``.

    At most ``concurrency`` requests are in flight at once. Tiles that fail
    (HTTP status, transport or filesystem error) are logged and left out of
    the returned ImageMap; the batch itself always completes.
    """

    def __init__(
        self,
        concurrency: int = DEFAULT_CONCURRENCY,
        use_cache: bool = True,
        cache_root: Path | str = DEFAULT_CACHE_ROOT,
        client: Optional[httpx.AsyncClient] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        if concurrency < 1:
            raise ValueError(f"concurrency must be positive, got {concurrency}")
        self.concurrency = concurrency
        self.use_cache = use_cache
        self.cache_root = Path(cache_root)
        self._client = client
        self._owns_client = client is None
        self._transport = transport
        self._cancel_flag = threading.Event()
        # one entry per running batch
        self._batches: List[Tuple[asyncio.AbstractEventLoop, List[asyncio.Task]]] = []

    @property
    def client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = build_async_http_client(self.concurrency, self._transport)
        return self._client

    async def __aenter__(self) -> "TileDownloader":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None

    def cancel(self) -> None:
        """
        Abort every batch currently running on this downloader. Safe to call
        from any thread; pending units stop waiting for a slot and in-flight
        requests are interrupted. Each `download()` call starts uncancelled,
        so a cancel issued before a batch starts does not affect it.
        """
        self._cancel_flag.set()
        for loop, tasks in list(self._batches):
            if not loop.is_closed():
                loop.call_soon_threadsafe(_cancel_all, tasks)

    async def download(
        self,
        tile_map: TileMap,
        on_progress: Optional[ProgressCallback] = None,
    ) -> ImageMap:
        if not isinstance(tile_map, TileMap):
            raise TypeError(f"Expected TileMap, got {type(tile_map).__name__}")

        logger.info("Download started: %d tiles", len(tile_map))
        self._cancel_flag.clear()
        files: ImageMap = {}
        client = self.client
        sem = asyncio.Semaphore(self.concurrency)

        async def fetch_unit(coord: TileCoord, tile: Tile) -> None:
            path = await self._fetch_tile(client, sem, coord, tile, tile_map.title)
            if path is not None:
                files[coord] = path
            if on_progress is not None:
                on_progress(1)

        tasks = [asyncio.create_task(fetch_unit(coord, tile)) for coord, tile in tile_map.items()]
        batch = (asyncio.get_running_loop(), tasks)
        self._batches.append(batch)
        try:
            await asyncio.gather(*tasks)
        except BaseException:
            for task in tasks:
                task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)
            raise
        finally:
            self._batches.remove(batch)

        logger.info("Download done: %d of %d tiles", len(files), len(tile_map))
        return files

    async def _fetch_tile(
        self,
        client: httpx.AsyncClient,
        sem: asyncio.Semaphore,
        coord: TileCoord,
        tile: Tile,
        title: str,
    ) -> Optional[Path]:
        if not sanitize_filename(tile.relative_path):
            logger.warning("Tile %s has no usable file name: %r", tile.remote_uri, tile.relative_path)
            return None
        local_file = make_tile_path(self.cache_root, title, tile.relative_path)
        try:
            if self.use_cache and local_file.is_file():
                logger.debug("Cached tile: %s", local_file.name)
                return local_file.resolve()
        except OSError as exc:
            logger.warning("Tile failed: %s - %s", local_file, exc)
            return None

        if self._cancel_flag.is_set():
            raise asyncio.CancelledError()
        try:
            async with sem:
                return await self._stream_to_file(client, coord, tile, local_file)
        except TileHttpMiss as exc:
            logger.warning("Tile miss: %s", exc)
        except TileTransportError as exc:
            logger.warning("Tile failed: %s", exc)
        return None

    @staticmethod
    async def _stream_to_file(
        client: httpx.AsyncClient,
        coord: TileCoord,
        tile: Tile,
        local_file: Path,
    ) -> Path:
        uri = tile.remote_uri
        # distinct tile paths can sanitize to the same file; each unit writes its own part file
        part_file = local_file.with_name(f"{local_file.name}.{coord.dx}_{coord.dy}{_PART_SUFFIX}")
        logger.debug("Downloading tile: %s", uri)
        try:
            async with client.stream("GET", uri) as resp:
                if not resp.is_success:
                    raise TileHttpMiss(uri, resp.status_code, resp.reason_phrase)
                local_file.parent.mkdir(parents=True, exist_ok=True)
                async with aiofiles.open(part_file, "wb") as fh:
                    async for chunk in resp.aiter_bytes():
                        await fh.write(chunk)
            os.replace(part_file, local_file)
            return local_file.resolve()
        except (httpx.HTTPError, httpx.InvalidURL, httpx.StreamError) as exc:
            _discard(part_file)
            raise TileTransportError(f"{uri} - {exc}") from exc
        except OSError as exc:
            _discard(part_file)
            raise TileTransportError(f"{local_file} - {exc}") from exc
        except asyncio.CancelledError:
            _discard(part_file)
            raise


def _cancel_all(tasks: List[asyncio.Task]) -> None:
    for task in tasks:
        task.cancel()


def _discard(path: Path) -> None:
    try:
        path.unlink()
    except FileNotFoundError:
        pass
    except OSError as exc:
        logger.debug("Could not remove %s: %s", path, exc)


def run_download(
    tile_map: TileMap,
    on_progress: Optional[ProgressCallback] = None,
    **options,
) -> ImageMap:
    """Run one batch on a fresh event loop; ``options`` go to TileDownloader."""

    async def _run() -> ImageMap:
        async with TileDownloader(**options) as downloader:
            return await downloader.download(tile_map, on_progress)

    return asyncio.run(_run())
