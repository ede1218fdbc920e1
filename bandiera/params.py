from typing import Any, Dict, Mapping, Optional

_SIZED = (str, bytes, list, tuple, dict, set, frozenset)


def _is_blank(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, _SIZED):
        return len(value) == 0
    return False


def sanitize_params(params: Optional[Mapping[str, Any]]) -> Dict[str, Any]:
    """Copy of ``params`` without None or empty values. False and 0 are kept."""
    if not params:
        return {}
    return {key: value for key, value in params.items() if not _is_blank(value)}


def encode_params(params: Mapping[str, Any]) -> Dict[str, str]:
    encoded = {}
    for key, value in params.items():
        if isinstance(value, bool):
            encoded[key] = "true" if value else "false"
        else:
            encoded[key] = str(value)
    return encoded
