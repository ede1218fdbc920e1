import json
from dataclasses import dataclass, field
from typing import Any, Dict, Optional


def cache_key(group: str, feature: Optional[str], params: Dict[str, Any]) -> str:
    # exact values take part in the key: 1, "1" and True serialize differently
    return json.dumps([group, feature, params], sort_keys=True, separators=(",", ":"), default=str)


@dataclass(frozen=True)
class FlagQuery:
    group: str
    feature: Optional[str]
    params: Dict[str, Any] = field(default_factory=dict)

    @property
    def key(self) -> str:
        return cache_key(self.group, self.feature, self.params)


@dataclass
class QueryResult:
    value: Any
    fetched: bool
    warning: Optional[str] = None
