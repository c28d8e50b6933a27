from __future__ import annotations

import os
import threading
import time
from typing import Dict, List, Optional

from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel, Field

from .errors import TribblerError
from .front import FrontServer, new_front, parse_backs
from .logs import log_event, recent_logs
from .tribs import MAX_TRIB_LEN, Trib

TRIB_BACKS = parse_backs(os.getenv("TRIB_BACKS", "memory"))
TRIB_BACKEND_TIMEOUT_SECONDS = float(os.getenv("TRIB_BACKEND_TIMEOUT_SECONDS", "2.0"))
TRIB_MONGO_DB = os.getenv("TRIB_MONGO_DB", "tribbler").strip()
TRIB_POPULATE = os.getenv("TRIB_POPULATE", "0").strip() == "1"


class UserRequest(BaseModel):
    user: str = Field(min_length=1, max_length=64)


class WhoWhomRequest(BaseModel):
    who: str = Field(min_length=1, max_length=64)
    whom: str = Field(min_length=1, max_length=64)


class PostRequest(BaseModel):
    who: str = Field(min_length=1, max_length=64)
    # Length is checked by the front so the error carries the trib limit.
    message: str = Field(max_length=MAX_TRIB_LEN * 4)
    clock: int = Field(default=0, ge=0)


app = FastAPI(title="Tribbler API")

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

front: Optional[FrontServer] = None
front_lock = threading.Lock()

endpoint_metrics: Dict[str, dict] = {}


def _get_front() -> FrontServer:
    global front
    with front_lock:
        if front is None:
            front = new_front(TRIB_BACKS, timeout=TRIB_BACKEND_TIMEOUT_SECONDS, mongo_db=TRIB_MONGO_DB)
        return front


def _record_endpoint_metric(endpoint: str, latency_ms: float, ok: bool) -> None:
    m = endpoint_metrics.setdefault(
        endpoint,
        {"count": 0, "errors": 0, "latency_total_ms": 0.0, "latency_p95_buffer": []},
    )
    m["count"] += 1
    if not ok:
        m["errors"] += 1
    m["latency_total_ms"] += latency_ms
    m["latency_p95_buffer"].append(latency_ms)
    if len(m["latency_p95_buffer"]) > 400:
        m["latency_p95_buffer"] = m["latency_p95_buffer"][-400:]


def _http_error(ex: TribblerError) -> HTTPException:
    return HTTPException(status_code=ex.status_code, detail=ex.to_detail())


def _trib_payload(tribs: List[Trib]) -> List[dict]:
    return [t.model_dump() for t in tribs]


def _populate(server: FrontServer) -> None:
    server.sign_up("h8liu")
    server.sign_up("fenglu")
    server.sign_up("rkapoor")
    server.post("h8liu", "Hello, world.")
    server.post("h8liu", "Just tribble it.")
    server.post("fenglu", "Double tribble.")
    server.post("rkapoor", "Triple tribble.")
    server.follow("fenglu", "h8liu")
    server.follow("fenglu", "rkapoor")
    server.follow("rkapoor", "h8liu")


@app.on_event("startup")
def startup() -> None:
    server = _get_front()
    log_event("front_started", backs=TRIB_BACKS)
    if TRIB_POPULATE:
        try:
            _populate(server)
            log_event("front_populated")
        except TribblerError as ex:
            log_event("front_populate_failed", error=str(ex))


@app.get("/health")
def health() -> dict:
    started = time.perf_counter()
    ok = True
    try:
        server = _get_front()
        return {
            "status": "ok",
            "backend_count": len(server.router.backends),
            "clock": server.clock.now(),
        }
    except Exception:
        ok = False
        raise
    finally:
        _record_endpoint_metric("/health", (time.perf_counter() - started) * 1000, ok)


@app.post("/api/add-user")
def add_user(req: UserRequest) -> dict:
    started = time.perf_counter()
    ok = True
    try:
        server = _get_front()
        try:
            server.sign_up(req.user)
            return {"users": server.list_users()}
        except TribblerError as ex:
            raise _http_error(ex) from ex
    except Exception:
        ok = False
        raise
    finally:
        _record_endpoint_metric("/api/add-user", (time.perf_counter() - started) * 1000, ok)


@app.get("/api/list-users")
def list_users() -> dict:
    started = time.perf_counter()
    ok = True
    try:
        try:
            return {"users": _get_front().list_users()}
        except TribblerError as ex:
            raise _http_error(ex) from ex
    except Exception:
        ok = False
        raise
    finally:
        _record_endpoint_metric("/api/list-users", (time.perf_counter() - started) * 1000, ok)


@app.post("/api/list-tribs")
def list_tribs(req: UserRequest) -> dict:
    started = time.perf_counter()
    ok = True
    try:
        try:
            return {"tribs": _trib_payload(_get_front().tribs(req.user))}
        except TribblerError as ex:
            raise _http_error(ex) from ex
    except Exception:
        ok = False
        raise
    finally:
        _record_endpoint_metric("/api/list-tribs", (time.perf_counter() - started) * 1000, ok)


@app.post("/api/list-home")
def list_home(req: UserRequest) -> dict:
    started = time.perf_counter()
    ok = True
    try:
        try:
            return {"tribs": _trib_payload(_get_front().home(req.user))}
        except TribblerError as ex:
            raise _http_error(ex) from ex
    except Exception:
        ok = False
        raise
    finally:
        _record_endpoint_metric("/api/list-home", (time.perf_counter() - started) * 1000, ok)


@app.post("/api/is-following")
def is_following(req: WhoWhomRequest) -> dict:
    started = time.perf_counter()
    ok = True
    try:
        try:
            return {"v": _get_front().is_following(req.who, req.whom)}
        except TribblerError as ex:
            raise _http_error(ex) from ex
    except Exception:
        ok = False
        raise
    finally:
        _record_endpoint_metric("/api/is-following", (time.perf_counter() - started) * 1000, ok)


@app.post("/api/follow")
def follow(req: WhoWhomRequest) -> dict:
    started = time.perf_counter()
    ok = True
    try:
        try:
            _get_front().follow(req.who, req.whom)
            return {"v": True}
        except TribblerError as ex:
            raise _http_error(ex) from ex
    except Exception:
        ok = False
        raise
    finally:
        _record_endpoint_metric("/api/follow", (time.perf_counter() - started) * 1000, ok)


@app.post("/api/unfollow")
def unfollow(req: WhoWhomRequest) -> dict:
    started = time.perf_counter()
    ok = True
    try:
        try:
            _get_front().unfollow(req.who, req.whom)
            return {"v": True}
        except TribblerError as ex:
            raise _http_error(ex) from ex
    except Exception:
        ok = False
        raise
    finally:
        _record_endpoint_metric("/api/unfollow", (time.perf_counter() - started) * 1000, ok)


@app.post("/api/following")
def following(req: UserRequest) -> dict:
    started = time.perf_counter()
    ok = True
    try:
        try:
            return {"users": _get_front().following(req.user)}
        except TribblerError as ex:
            raise _http_error(ex) from ex
    except Exception:
        ok = False
        raise
    finally:
        _record_endpoint_metric("/api/following", (time.perf_counter() - started) * 1000, ok)


@app.post("/api/post")
def post(req: PostRequest) -> dict:
    started = time.perf_counter()
    ok = True
    try:
        try:
            trib = _get_front().post(req.who, req.message, req.clock)
            return {"v": True, "trib": trib.model_dump()}
        except TribblerError as ex:
            raise _http_error(ex) from ex
    except Exception:
        ok = False
        raise
    finally:
        _record_endpoint_metric("/api/post", (time.perf_counter() - started) * 1000, ok)


@app.get("/api/monitoring/dashboard")
def monitoring_dashboard() -> dict:
    started = time.perf_counter()
    ok = True
    try:
        metrics_payload = {}
        for endpoint, value in endpoint_metrics.items():
            count = value.get("count", 0)
            p95_buffer = sorted(value.get("latency_p95_buffer", []))
            p95_idx = int(0.95 * (len(p95_buffer) - 1)) if p95_buffer else 0
            p95 = p95_buffer[p95_idx] if p95_buffer else 0.0
            metrics_payload[endpoint] = {
                "count": count,
                "errors": value.get("errors", 0),
                "avg_latency_ms": round(value.get("latency_total_ms", 0.0) / max(count, 1), 2),
                "p95_latency_ms": round(p95, 2),
            }

        server = _get_front()
        return {
            "backs": TRIB_BACKS,
            "backend_count": len(server.router.backends),
            "clock": server.clock.now(),
            "traffic_metrics": metrics_payload,
            "recent_logs": list(recent_logs)[:80],
        }
    except Exception:
        ok = False
        raise
    finally:
        _record_endpoint_metric("/api/monitoring/dashboard", (time.perf_counter() - started) * 1000, ok)
