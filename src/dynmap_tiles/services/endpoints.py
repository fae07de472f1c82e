from __future__ import annotations

import logging
import re
import threading
import time
from dataclasses import dataclass
from types import MappingProxyType
from typing import Mapping, Optional, Tuple

import chompjs
import httpx
from pydantic import ValidationError

from ..config import BOOTSTRAP_PATH
from ..errors import (
    ConfigParseError,
    EndpointFetchError,
    EndpointParseError,
    UnknownMapError,
    UnknownWorldError,
)
from ..models import Catalog, Map, UrlDescriptor, World
from ..utils import apply_timestamp
from .http import build_http_client

logger = logging.getLogger(__name__)

_URL_MARKER = re.compile(r"url\s*:\s*(?=\{)", re.IGNORECASE)

MapKey = Tuple[str, str]


@dataclass(frozen=True)
class _CatalogState:
    descriptor: UrlDescriptor
    config: Catalog
    worlds: Mapping[str, World]
    maps: Mapping[MapKey, Map]


def parse_url_descriptor(script: str) -> UrlDescriptor:
    """
    Two-stage parse of the bootstrap script:
    - find the ``url :`` marker and decode the object literal after it
      (JSON or the JavaScript form real servers emit, with bare keys and
      single-quoted strings);
    - validate that object against the URL descriptor schema.
    """
    payload: object = None
    decode_error: Optional[ValueError] = None
    found = False
    for match in _URL_MARKER.finditer(script):
        found = True
        try:
            payload = chompjs.parse_js_object(script[match.end():])
            break
        except ValueError as exc:
            decode_error = exc
    else:
        if not found:
            raise EndpointParseError("Bootstrap script has no 'url : {...}' payload")
        raise EndpointParseError(f"URL payload is not a valid object literal: {decode_error}") from decode_error

    try:
        return UrlDescriptor.model_validate(payload)
    except ValidationError as exc:
        raise EndpointParseError(f"URL payload has unexpected shape: {exc}") from exc


def build_lookups(config: Catalog) -> Tuple[Mapping[str, World], Mapping[MapKey, Map]]:
    worlds: dict[str, World] = {}
    maps: dict[MapKey, Map] = {}
    for world in config.worlds:
        if world.name in worlds:
            raise ConfigParseError(f"Duplicate world name: {world.name}")
        worlds[world.name] = world
        for m in world.maps:
            key = (world.name, m.name)
            if key in maps:
                raise ConfigParseError(f"Duplicate map name {m.name} in world {world.name}")
            maps[key] = m
    return MappingProxyType(worlds), MappingProxyType(maps)


class DynmapEndpoint:
    """
    Resolves the tile and configuration endpoints of one Dynmap server and
    keeps the last fetched catalog. Every refresh hits the network twice.
    """

    def __init__(
        self,
        url: str,
        transport: Optional[httpx.BaseTransport] = None,
    ) -> None:
        self.url = url if url.endswith("/") else url + "/"
        self._transport = transport
        self._state: Optional[_CatalogState] = None
        self._ts_lock = threading.Lock()
        self._last_ts = 0
        logger.info("Dynmap URL: %s", self.url)

    @property
    def config(self) -> Optional[Catalog]:
        state = self._state
        return state.config if state else None

    @property
    def worlds(self) -> Mapping[str, World]:
        state = self._state
        return state.worlds if state else MappingProxyType({})

    @property
    def maps(self) -> Mapping[MapKey, Map]:
        state = self._state
        return state.maps if state else MappingProxyType({})

    @property
    def tiles_url(self) -> Optional[str]:
        state = self._state
        return f"{self.url}{state.descriptor.tiles}" if state else None

    def world(self, name: str) -> World:
        try:
            return self.worlds[name]
        except KeyError:
            raise UnknownWorldError(name) from None

    def map(self, world: str, name: str) -> Map:
        if world not in self.worlds:
            raise UnknownWorldError(world)
        try:
            return self.maps[(world, name)]
        except KeyError:
            raise UnknownMapError((world, name)) from None

    def refresh_config(self) -> Catalog:
        with build_http_client(self.url, self._transport) as client:
            script = self._get_text(client, BOOTSTRAP_PATH)
            descriptor = parse_url_descriptor(script)

            config_path = apply_timestamp(descriptor.configuration, self._next_timestamp())
            body = self._get_text(client, config_path)

        try:
            config = Catalog.model_validate_json(body)
        except ValidationError as exc:
            raise ConfigParseError(f"Configuration at {config_path} is not a catalog: {exc}") from exc
        worlds, maps = build_lookups(config)

        # single assignment: readers see either the old or the new catalog
        self._state = _CatalogState(descriptor=descriptor, config=config, worlds=worlds, maps=maps)
        logger.info("Catalog refreshed: %d worlds, %d maps", len(worlds), len(maps))
        return config

    def _next_timestamp(self) -> int:
        with self._ts_lock:
            now = int(time.time() * 1000)
            if now <= self._last_ts:
                now = self._last_ts + 1
            self._last_ts = now
            return now

    @staticmethod
    def _get_text(client: httpx.Client, path: str) -> str:
        logger.info("Fetching: %s", path)
        try:
            resp = client.get(path)
        except httpx.HTTPError as exc:
            raise EndpointFetchError(f"{path}: {exc}") from exc
        if not resp.is_success:
            raise EndpointFetchError(f"{path}: HTTP {resp.status_code}")
        return resp.text
