# sync_agent/api.py
"""
Local status API

Read-only view of the sync state for probes and operators. Served only after
registration succeeds.
"""

import logging
from typing import Any, Optional

from fastapi import FastAPI, HTTPException
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from . import __version__
from .sync_client import SyncClient, SyncState

logger = logging.getLogger('sync-agent.api')


class StatusResponse(BaseModel):
    state: str
    ip_address: str
    port: int
    namespace: str
    service_name: Optional[str] = None
    heartbeat_interval_seconds: float
    rules_version: Optional[str] = None
    registered_at: Optional[str] = None
    last_heartbeat_at: Optional[str] = None
    last_heartbeat_ok: Optional[bool] = None


class RulesResponse(BaseModel):
    version: str
    rules: Any


def _iso(value) -> Optional[str]:
    return value.isoformat() if value else None


def create_app(sync_client: SyncClient, rules_store) -> FastAPI:
    app = FastAPI(title="Sync Agent", version=__version__)

    @app.get("/health")
    def health_check():
        return {"status": "ok", "service": "sync-agent"}

    @app.get("/status", response_model=StatusResponse)
    def get_status():
        identity = sync_client.identity
        status = StatusResponse(
            state=sync_client.state.value,
            ip_address=identity.ip_address,
            port=identity.port,
            namespace=identity.namespace,
            service_name=identity.service_name,
            heartbeat_interval_seconds=sync_client.heartbeat_interval,
            rules_version=rules_store.current_version(),
            registered_at=_iso(sync_client.registered_at),
            last_heartbeat_at=_iso(sync_client.last_heartbeat_at),
            last_heartbeat_ok=sync_client.last_heartbeat_ok,
        )

        if sync_client.state != SyncState.REGISTERED:
            return JSONResponse(status_code=503, content=status.model_dump())
        return status

    @app.get("/rules", response_model=RulesResponse)
    def get_rules():
        version = rules_store.current_version()
        if version is None:
            raise HTTPException(status_code=404, detail="No rules loaded")
        return RulesResponse(version=version, rules=rules_store.get_rules())

    return app
