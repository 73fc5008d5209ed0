"""Health check, settings and connection check endpoints."""

from fastapi import APIRouter, Request

from otherworld import storage
from otherworld.llm import HttpLLM

from .models import CheckConnectionBody

router = APIRouter()


@router.get("/health")
async def health():
    """Health check."""
    return {"status": "ok"}


@router.post("/check-connection")
async def check_connection(body: CheckConnectionBody):
    """Quick health check against an LLM provider URL."""
    import httpx

    url = f"{body.provider_url.rstrip('/')}/api/v1/model"
    headers: dict[str, str] = {}
    if body.api_key:
        headers["Authorization"] = f"Bearer {body.api_key}"
    try:
        async with httpx.AsyncClient(timeout=5) as client:
            resp = await client.get(url, headers=headers)
            resp.raise_for_status()
        return {"ok": True}
    except httpx.HTTPError:
        return {"ok": False}


@router.get("/settings")
async def get_settings():
    """Get app settings (LLM connection, pacing)."""
    return storage.get_config()


@router.patch("/settings")
async def update_settings(request: Request, body: dict):
    """Update app settings (partial merge). Connection and pacing apply immediately."""
    config = storage.update_config(body)
    session = request.app.state.session
    session.set_llm(HttpLLM.from_connection(config["llm_connection"]))
    session.set_pacing(config["pacing_ms"])
    return config
