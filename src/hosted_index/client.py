"""Entry point: one transport, many indices."""

from __future__ import annotations

from .config import Config
from .index import SearchIndex
from .transport import ApiWrapper, HttpApiWrapper


class SearchClient:
    """Owns the request layer and hands out ``SearchIndex`` objects bound to it.

    Args:
        config: Runtime config. Uses defaults (env vars) if None.
        api: Request layer to use instead of an ``HttpApiWrapper`` built
            from ``config``.
    """

    def __init__(self, config: Config | None = None, api: ApiWrapper | None = None) -> None:
        if config is None:
            config = Config()
        if api is None:
            config.require_credentials()
            api = HttpApiWrapper(config)
        self._config = config
        self._api = api

    @property
    def config(self) -> Config:
        return self._config

    def init_index(self, name: str) -> SearchIndex:
        return SearchIndex(name, self._api, self._config)

    def close(self) -> None:
        self._api.close()

    def __enter__(self) -> SearchClient:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()
