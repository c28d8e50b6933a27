from __future__ import annotations

from typing import Any, Dict, Optional

from fastapi import FastAPI
from pydantic import BaseModel

from .logs import log_event
from .storage import MemoryStorage, Storage


class KeyRequest(BaseModel):
    key: str


class KeyValueRequest(BaseModel):
    key: str
    value: str


class PatternRequest(BaseModel):
    prefix: str = ""


def create_back_app(storage: Optional[Storage] = None) -> FastAPI:
    """Serve one storage over HTTP, the way each trib-back process does."""
    store: Storage = storage if storage is not None else MemoryStorage()
    back = FastAPI(title="Tribbler backend")

    @back.get("/health")
    def health() -> Dict[str, Any]:
        return {"status": "ok", "storage": type(store).__name__}

    @back.post("/get")
    def get(req: KeyRequest) -> Dict[str, Any]:
        return {"value": store.get(req.key)}

    @back.post("/set")
    def set_(req: KeyValueRequest) -> Dict[str, Any]:
        return {"value": store.set(req.key, req.value)}

    @back.post("/keys")
    def keys(req: PatternRequest) -> Dict[str, Any]:
        return {"value": store.keys(req.prefix)}

    @back.post("/list-get")
    def list_get(req: KeyRequest) -> Dict[str, Any]:
        return {"value": store.list_get(req.key)}

    @back.post("/list-append")
    def list_append(req: KeyValueRequest) -> Dict[str, Any]:
        return {"value": store.list_append(req.key, req.value)}

    @back.post("/list-remove")
    def list_remove(req: KeyValueRequest) -> Dict[str, Any]:
        return {"value": store.list_remove(req.key, req.value)}

    log_event("backend_app_created", storage=type(store).__name__)
    return back


app = create_back_app()
