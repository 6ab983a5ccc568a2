# mcp_server.py
import asyncio
import logging
import httpx
import uvicorn
from mcp.server.fastmcp import FastMCP

from config import API_HOST, API_PORT, LOG_LEVEL

import main as main_app_module
app = main_app_module.app

API_BASE = f"http://localhost:{API_PORT}"  # FastAPI address used by bridge

logger = logging.getLogger(__name__)

# create MCP server (bridge)
mcp = FastMCP("DevMatch MCP Bridge")


def _api_client() -> httpx.AsyncClient:
    return httpx.AsyncClient(base_url=API_BASE, timeout=10.0)


# helper to call the HTTP endpoints
async def call_api(method: str, endpoint: str, json=None, params=None):
    async with _api_client() as client:
        if method.lower() == "post":
            resp = await client.post(endpoint, json=json)
        elif method.lower() == "get":
            resp = await client.get(endpoint, params=params)
        else:
            raise ValueError("unsupported method")
    if resp.is_error:
        logger.warning("%s %s -> %s", method.upper(), endpoint, resp.status_code)
    try:
        return resp.json()
    except ValueError:
        return {"status_code": resp.status_code, "text": resp.text}


# MCP tools that proxy to HTTP endpoints
@mcp.tool()
async def create_interaction(actor_id: int, target_id: int, kind: str) -> dict:
    """Like or pass on another developer. Returns the match when the like is mutual."""
    payload = {"actor_id": actor_id, "target_id": target_id, "kind": kind}
    return await call_api("post", "/interactions", json=payload)


@mcp.tool()
async def send_message(match_id: int, sender_id: int, content: str) -> dict:
    payload = {"match_id": match_id, "sender_id": sender_id, "content": content}
    return await call_api("post", "/messages", json=payload)


@mcp.tool()
async def list_match_messages(match_id: int, limit: int = 50, offset: int = 0):
    return await call_api("get", f"/matches/{match_id}/messages",
                          params={"limit": limit, "offset": offset})


@mcp.tool()
async def get_user_matches(user_id: int):
    return await call_api("get", f"/users/{user_id}/matches")


# Run uvicorn programmatically + MCP server (stdio)
async def run_uvicorn():
    """Run FastAPI app (main.app) via uvicorn so both run in the same process."""
    config = uvicorn.Config(app, host=API_HOST, port=API_PORT, log_level=LOG_LEVEL.lower(),
                            access_log=False)  # stdout belongs to the stdio transport
    server = uvicorn.Server(config)
    await server.serve()


async def main():
    logging.basicConfig(level=LOG_LEVEL)
    uvicorn_task = asyncio.create_task(run_uvicorn())
    # give uvicorn a moment to start before MCP begins handling calls
    await asyncio.sleep(0.5)

    await mcp.run_stdio_async()

    # If MCP stops, shut down uvicorn
    uvicorn_task.cancel()
    try:
        await uvicorn_task
    except asyncio.CancelledError:
        pass


if __name__ == "__main__":
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        logger.info("Shutting down.")
