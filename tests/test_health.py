from datetime import datetime
from typing import Any

import pytest


@pytest.mark.asyncio
async def test_healthz(test_client: Any) -> None:
    """Verify that the health check endpoint responds with 200 OK."""
    client, _, _, _ = test_client
    response = await client.get("/healthz", headers={"Authorization": ""})
    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "ok"
    assert datetime.fromisoformat(body["timestamp"]).tzinfo is not None


@pytest.mark.asyncio
async def test_unknown_route_is_404(test_client: Any) -> None:
    client, _, _, _ = test_client
    response = await client.get("/does-not-exist")
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_cors_preflight_allows_dev_origin(test_client: Any) -> None:
    client, _, _, _ = test_client
    response = await client.options(
        "/links",
        headers={
            "Origin": "http://localhost:5173",
            "Access-Control-Request-Method": "GET",
        },
    )
    assert response.status_code == 200
    assert (
        response.headers["access-control-allow-origin"] == "http://localhost:5173"
    )
