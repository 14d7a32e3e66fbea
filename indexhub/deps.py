"""Dependency helpers for router modules."""

from fastapi import Header
from starlette.requests import Request


def get_server(request: Request):
    return request.app.state.server


async def get_caller(request: Request, x_api_key: str = Header(default="")) -> dict:
    """The account behind the X-API-Key header; 401 when missing or unknown."""
    return await get_server(request).auth.get_current_account(x_api_key)
