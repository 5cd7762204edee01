# mcp_server.py
import asyncio
import logging
from typing import Any, Optional

import httpx
import uvicorn
from mcp.server.fastmcp import FastMCP

from config import API_HOST, API_PORT, AUTH_TOKEN

import main as main_app_module  # noqa: E402

API_BASE = f"http://localhost:{API_PORT}"  # FastAPI address used by bridge
app = main_app_module.app

logger = logging.getLogger(__name__)

# create MCP server (bridge)
mcp = FastMCP("SpotMatch MCP Bridge")


# helper to call the HTTP endpoints
async def call_api(method: str, endpoint: str, json=None, params=None, transport=None):
    url = f"{API_BASE}{endpoint}"
    headers = {"Authorization": f"Bearer {AUTH_TOKEN}"}
    async with httpx.AsyncClient(timeout=10.0, transport=transport) as client:
        if method.lower() == "post":
            resp = await client.post(url, json=json, headers=headers)
        elif method.lower() == "put":
            resp = await client.put(url, json=json, headers=headers)
        elif method.lower() == "get":
            resp = await client.get(url, params=params, headers=headers)
        else:
            raise ValueError("unsupported method")
    try:
        return resp.json()
    except ValueError:
        return {"status_code": resp.status_code, "text": resp.text}


# MCP tools that proxy to HTTP endpoints
@mcp.tool()
async def get_feed(
    user_id: str,
    radius_km: Optional[float] = None,
    goals: Optional[str] = None,
    level: Optional[str] = None,
    same_gym_only: bool = False,
) -> dict:
    """Training partners near the user, best match first. ``goals`` is comma separated."""
    params = {"user_id": user_id, "same_gym_only": same_gym_only}
    if radius_km is not None:
        params["radius_km"] = radius_km
    if goals:
        params["goals"] = goals
    if level:
        params["level"] = level
    return await call_api("get", "/feed", params=params)


@mcp.tool()
async def like_user(user_id: str, to_user_id: str) -> dict:
    return await call_api("post", "/swipe/like", json={"user_id": user_id, "to_user_id": to_user_id})


@mcp.tool()
async def pass_user(user_id: str, to_user_id: str) -> dict:
    return await call_api("post", "/swipe/pass", json={"user_id": user_id, "to_user_id": to_user_id})


@mcp.tool()
async def block_user(user_id: str, blocked_user_id: str) -> dict:
    return await call_api("post", "/users/block", json={"user_id": user_id, "blocked_user_id": blocked_user_id})


@mcp.tool()
async def get_matches(user_id: str) -> Any:
    return await call_api("get", "/matches", params={"user_id": user_id})


@mcp.tool()
async def get_profile(user_id: str, viewer_id: Optional[str] = None) -> dict:
    params = {"viewer_id": viewer_id} if viewer_id else None
    return await call_api("get", f"/users/{user_id}", params=params)


def api_server() -> uvicorn.Server:
    """The HTTP API as an in-process uvicorn server, so the bridge has something to call."""
    return uvicorn.Server(uvicorn.Config(app, host=API_HOST, port=API_PORT, log_level="info"))


async def main():
    logging.basicConfig(level=logging.INFO)
    server = api_server()
    serving = asyncio.create_task(server.serve())
    while not server.started:
        if serving.done():
            # startup failed, e.g. the port is taken
            serving.result()
            return
        await asyncio.sleep(0.05)

    try:
        await mcp.run_stdio_async()
    finally:
        server.should_exit = True
        await serving


if __name__ == "__main__":
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        logger.info("Bridge stopped")
