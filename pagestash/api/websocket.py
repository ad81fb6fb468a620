"""WebSocket endpoint for live bulk-import progress.

A client connects to ``/ws/batches/{batch_id}`` and receives:

1. the current batch snapshot (``{"type": "status", ...}``), then
2. one ``{"type": "progress", completed, total, url, status, item_id}``
   message per processed URL, and
3. a ``{"type": "finished", ...}`` message when the batch ends.

Authentication uses the same session rules as the REST API; a token may
also be passed as ``?token=`` because browsers cannot set headers on a
WebSocket upgrade.
"""

from __future__ import annotations

import contextlib
from typing import Any

import structlog
from fastapi import WebSocket, WebSocketDisconnect, status

from pagestash.api.auth import resolve_user_id
from pagestash.pipeline.progress_tracker import ProgressTracker
from pagestash.utils.errors import AuthenticationError
from pagestash.utils.logging import get_logger

_logger: structlog.BoundLogger = get_logger(__name__)


async def websocket_batch_progress(websocket: WebSocket, batch_id: str) -> None:
    """Stream a batch's progress events to the client."""
    progress_tracker: ProgressTracker = websocket.app.state.progress_tracker

    try:
        user_id = resolve_user_id(websocket, websocket.app.state.settings)
    except AuthenticationError:
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
        return

    await websocket.accept()
    _logger.info("websocket_connected", batch_id=batch_id)

    async def _on_progress(bid: str, message: dict[str, Any]) -> None:
        # The socket may already be gone; cleanup happens in the finally below.
        with contextlib.suppress(Exception):
            await websocket.send_json({"batch_id": bid, **message})

    snapshot = progress_tracker.get_status(batch_id, user_id=user_id)
    if snapshot is None:
        await websocket.send_json({"type": "error", "batch_id": batch_id, "detail": "Batch not found"})
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
        return

    progress_tracker.register_listener(batch_id, _on_progress)
    try:
        await websocket.send_json({"type": "status", **snapshot})
        while True:
            await websocket.receive_text()
    except WebSocketDisconnect:
        _logger.info("websocket_disconnected", batch_id=batch_id)
    finally:
        progress_tracker.unregister_listener(batch_id, _on_progress)
        _logger.debug("websocket_listener_cleaned_up", batch_id=batch_id)
