import logging
from typing import Any, Dict, Mapping, Optional

from bandiera.cache import FlagCache, RedisCache, TTLCache
from bandiera.metrics import CACHE_LOOKUPS
from bandiera.models import FlagQuery, cache_key
from bandiera.params import sanitize_params
from bandiera.query import QueryEngine
from bandiera.schemas import AllEnvelope, CacheStrategy, ClientConfig, FeatureEnvelope, GroupEnvelope
from bandiera.transport import Transport

Params = Optional[Mapping[str, Any]]


class BandieraClient:
    """Feature flag lookups against a Bandiera server.

    None of the public methods raise on network trouble: a failed lookup
    logs a warning and answers ``False`` (single feature) or ``{}``.
    """

    def __init__(
        self,
        config: Optional[ClientConfig] = None,
        logger: Optional[logging.Logger] = None,
        cache: Optional[FlagCache] = None,
        transport: Optional[Transport] = None,
    ):
        self.config = config or ClientConfig()
        self.logger = logger or logging.getLogger("bandiera")
        self.transport = transport or Transport(self.config.base_uri, self.config.client_name)
        self.engine = QueryEngine(self.transport, self.logger)
        self.cache = cache
        if self.cache is None and self.config.cache_enabled:
            if self.config.redis_url:
                self.cache = RedisCache.from_url(self.config.redis_url)
            else:
                self.cache = TTLCache()

    @property
    def cache_strategy(self) -> CacheStrategy:
        return self.config.cache_strategy

    def is_enabled(self, group: str, feature: str, params: Params = None, timeout: Optional[float] = None) -> bool:
        return self.get_feature(group, feature, params, timeout)

    def get_feature(self, group: str, feature: str, params: Params = None, timeout: Optional[float] = None) -> bool:
        query = FlagQuery(group, feature, sanitize_params(params))
        if self.cache is None:
            return self._fetch_feature(query, timeout)

        cached = self.cache.get(query.key)
        if cached is not None:
            CACHE_LOOKUPS.labels("hit").inc()
            self.logger.debug("flag cache hit for %s", query.key)
            return cached
        CACHE_LOOKUPS.labels("miss").inc()
        self.logger.debug("flag cache miss for %s, fetching by %s", query.key, self.cache_strategy.value)

        if self.cache_strategy is CacheStrategy.GROUP:
            return self.get_features_for_group(group, query.params, timeout).get(feature, False)
        if self.cache_strategy is CacheStrategy.ALL:
            return self.get_all(query.params, timeout).get(group, {}).get(feature, False)
        return self._fetch_feature(query, timeout)

    def get_features_for_group(self, group: str, params: Params = None, timeout: Optional[float] = None) -> Dict[str, bool]:
        query = FlagQuery(group, None, sanitize_params(params))
        result = self.engine.execute(
            "get_features_for_group",
            f"/v2/groups/{group}/features",
            query.params,
            self._timeout(timeout),
            {},
            GroupEnvelope,
            f"{group} / {query.params}",
        )
        if result.fetched:
            self._store_group(group, result.value, query.params)
        return result.value

    def get_all(self, params: Params = None, timeout: Optional[float] = None) -> Dict[str, Dict[str, bool]]:
        clean = sanitize_params(params)
        result = self.engine.execute(
            "get_all", "/v2/all", clean, self._timeout(timeout), {}, AllEnvelope, f"{clean}"
        )
        if result.fetched:
            for group, features in result.value.items():
                self._store_group(group, features, clean)
        return result.value

    def _fetch_feature(self, query: FlagQuery, timeout: Optional[float]) -> bool:
        result = self.engine.execute(
            "get_feature",
            f"/v2/groups/{query.group}/features/{query.feature}",
            query.params,
            self._timeout(timeout),
            False,
            FeatureEnvelope,
            f"{query.group} / {query.feature} / {query.params}",
        )
        if result.fetched and self.cache is not None:
            self.cache.put(query.key, result.value, self.config.cache_ttl)
        return result.value

    def _store_group(self, group: str, features: Dict[str, bool], params: Dict[str, Any]) -> None:
        if self.cache is None:
            return
        for feature, enabled in features.items():
            self.cache.put(cache_key(group, feature, params), enabled, self.config.cache_ttl)

    def _timeout(self, timeout: Optional[float]) -> float:
        return self.config.timeout if timeout is None else timeout
