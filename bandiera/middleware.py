"""Resolve Bandiera flags once per request.

Routes read the result from ``request.state.bandiera`` (or via the
``get_flags`` dependency) instead of calling the server per lookup. The
user identity is expected on ``request.state``, put there by whatever
middleware handles sessions and visitor ids.
"""
from typing import Dict, Iterable, Optional

from fastapi import FastAPI, Request
from starlette.concurrency import run_in_threadpool

from bandiera.client import BandieraClient

Flags = Dict[str, Dict[str, bool]]


def identity_params(request: Request, uuid_key: str, user_key: str, user_group_attr: str) -> Dict[str, Optional[str]]:
    user = getattr(request.state, user_key, None)
    user_group = getattr(user, user_group_attr, None) if user is not None else None
    return {"user_group": user_group, "user_id": getattr(request.state, uuid_key, None)}


def resolve_flags(client: BandieraClient, groups: Iterable[str], params: Dict[str, Optional[str]]) -> Flags:
    groups = list(groups)
    if not groups:
        return client.get_all(params)
    return {group: client.get_features_for_group(group, params) for group in groups}


def setup_bandiera(
    app: FastAPI,
    client: Optional[BandieraClient],
    groups: Optional[Iterable[str]] = None,
    uuid_key: str = "uuid",
    user_key: str = "current_user",
    user_group_attr: str = "email",
):
    if client is None:
        raise ValueError("You must supply a BandieraClient")
    groups = list(groups or [])

    @app.middleware("http")
    async def bandiera_middleware(request: Request, call_next):
        params = identity_params(request, uuid_key, user_key, user_group_attr)
        request.state.bandiera = await run_in_threadpool(resolve_flags, client, groups, params)
        return await call_next(request)


def get_flags(request: Request) -> Flags:
    return getattr(request.state, "bandiera", {})
