"""Deterministic cache key construction."""

from typing import Any, Mapping, Optional


def build_key(namespace: str, prefix: str, params: Optional[Mapping[str, Any]] = None) -> str:
    """
    Build a cache key of the form ``namespace:prefix:k1=v1&k2=v2``.

    Parameter names are sorted so the same request always maps to the
    same key regardless of argument order. Values are stringified with
    ``str()``.

    Examples:
    - build_key('ns', 'prediction', {'date': '2025-12-31', 'airport': 'LIS'})
      -> 'ns:prediction:airport=LIS&date=2025-12-31'
    - build_key('ns', 'prediction') -> 'ns:prediction:'
    """
    params = params or {}
    query = '&'.join(f'{name}={params[name]}' for name in sorted(params))
    return f'{namespace}:{prefix}:{query}'
