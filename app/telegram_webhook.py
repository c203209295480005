from __future__ import annotations

import os
from typing import Any

from fastapi import FastAPI, Header, Request
from fastapi.responses import JSONResponse

from app.config import load_config
from stores.analytics import normalize_response, store_groups_response, top_stores_response
from stores.normalizer import StoreNormalizer
from telegrambot.webhook_handler import TelegramWebhookHandler

DEFAULT_CONFIG_PATH = "config.yaml"

CONFIG_PATH = os.getenv("EXPENSEBOT_CONFIG_PATH", DEFAULT_CONFIG_PATH)
CONFIG = load_config(CONFIG_PATH)
HANDLER = TelegramWebhookHandler(CONFIG)
NORMALIZER = StoreNormalizer.from_config(CONFIG)
TOP_STORES_LIMIT = int(CONFIG.get("store_normalizer", {}).get("top_stores_limit", 5))

app = FastAPI(title="Expense Bot Webhook", version="0.1.0")
WEBHOOK_PATH = str(CONFIG.get("telegram", {}).get("webhook_path", "/webhook/telegram"))


@app.get("/healthz")
async def healthz() -> dict[str, Any]:
    return {"ok": True}


@app.post(WEBHOOK_PATH)
async def telegram_webhook(
    request: Request,
    x_telegram_bot_api_secret_token: str | None = Header(default=None),
) -> JSONResponse:
    body = await request.body()
    status_code, payload = HANDLER.handle(body=body, secret_token=x_telegram_bot_api_secret_token)
    return JSONResponse(status_code=status_code, content=payload)


@app.post("/analytics/top-stores")
async def top_stores(request: Request) -> JSONResponse:
    status_code, payload = top_stores_response(NORMALIZER, await _json_body(request), TOP_STORES_LIMIT)
    return JSONResponse(status_code=status_code, content=payload)


@app.post("/analytics/store-groups")
async def store_groups(request: Request) -> JSONResponse:
    status_code, payload = store_groups_response(NORMALIZER, await _json_body(request))
    return JSONResponse(status_code=status_code, content=payload)


@app.post("/analytics/normalize")
async def normalize(request: Request) -> JSONResponse:
    status_code, payload = normalize_response(NORMALIZER, await _json_body(request))
    return JSONResponse(status_code=status_code, content=payload)


async def _json_body(request: Request) -> Any:
    try:
        return await request.json()
    except Exception:
        return None
