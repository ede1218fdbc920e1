import os

from bandiera.schemas import ClientConfig

VERSION = "0.1.0"
USER_AGENT = f"Bandiera Python Client / {VERSION}"

# env var -> ClientConfig field
ENV_FIELDS = {
    "BANDIERA_URI": "base_uri",
    "BANDIERA_TIMEOUT": "timeout",
    "BANDIERA_CLIENT_NAME": "client_name",
    "BANDIERA_CACHE_ENABLED": "cache_enabled",
    "BANDIERA_CACHE_STRATEGY": "cache_strategy",
    "BANDIERA_CACHE_TTL": "cache_ttl",
    "BANDIERA_REDIS_URL": "redis_url",
}


def load_config(**overrides) -> ClientConfig:
    values = {}
    for env_key, field in ENV_FIELDS.items():
        raw = os.getenv(env_key)
        if raw:
            values[field] = raw
    values.update(overrides)
    return ClientConfig(**values)
