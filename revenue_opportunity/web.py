"""FastAPI app for the revenue opportunity flow.

One FlowRunner per session, held in memory for the life of the process.
Clients post tagged messages and read back the encoded model.
"""

import logging
import uuid
from typing import Any, Callable

from fastapi import FastAPI, HTTPException

from .config import Settings
from .main import FlowRunner, LiveLookups, Lookups
from .serialize import decode_message, encode_model

logger = logging.getLogger(__name__)


def create_app(lookups_factory: Callable[[], Lookups] | None = None) -> FastAPI:
    if lookups_factory is None:
        settings = Settings.from_env()
        settings.validate()

        def lookups_factory():
            return LiveLookups(settings)

    app = FastAPI(title="Restaurant Revenue Opportunity")
    sessions: dict[str, FlowRunner] = {}

    def _runner(session_id: str) -> FlowRunner:
        runner = sessions.get(session_id)
        if runner is None:
            raise HTTPException(status_code=404, detail="Session not found.")
        return runner

    def _body(session_id: str, runner: FlowRunner) -> dict[str, Any]:
        return {"id": session_id, "pending_lookups": runner.pending, **encode_model(runner.model)}

    @app.post("/api/sessions", status_code=201)
    async def create_session():
        session_id = uuid.uuid4().hex
        sessions[session_id] = FlowRunner(lookups_factory())
        logger.info("Created session %s", session_id)
        return _body(session_id, sessions[session_id])

    @app.get("/api/sessions/{session_id}")
    async def read_session(session_id: str):
        return _body(session_id, _runner(session_id))

    @app.post("/api/sessions/{session_id}/messages")
    async def post_message(session_id: str, payload: dict[str, Any], wait: bool = False):
        """Apply one message. With ?wait=true, also wait for the lookups it started."""
        runner = _runner(session_id)
        try:
            msg = decode_message(payload)
        except ValueError as e:
            raise HTTPException(status_code=422, detail=str(e))

        runner.send(msg)
        if wait:
            await runner.settle()
        return _body(session_id, runner)

    return app


app = create_app()
