from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, WebSocket, WebSocketDisconnect

from soundfly.application.use_cases.bridge_use_cases import DispatchBridgeMessage, UnknownChannelError
from soundfly.container import bridge_dispatcher, notification_service
from soundfly.infrastructure.metrics.metrics import record_bridge_message

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/bridge")


@router.post("/{channel}")
async def bridge_message(
    channel: str,
    payload: dict,
    dispatch: DispatchBridgeMessage = Depends(bridge_dispatcher),
) -> dict:
    try:
        result = await dispatch(channel, payload or {})
    except UnknownChannelError as exc:
        raise HTTPException(status_code=404, detail=str(exc))
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc))
    record_bridge_message(result["channel"], result["command"], result.get("ok", False))
    return result


@router.websocket("/ws")
async def bridge_ws(
    ws: WebSocket,
    dispatch: DispatchBridgeMessage = Depends(bridge_dispatcher),
    notifier=Depends(notification_service),
) -> None:
    """Bidirectional channel: page messages in, replies and pushed events out."""
    await ws.accept()
    await notifier.register(ws)
    try:
        while True:
            data = await ws.receive_json()
            if not isinstance(data, dict):
                await ws.send_json({"type": "reply", "ok": False, "error": "expected an object"})
                continue
            request_id = data.pop("id", None)
            channel = str(data.pop("channel", ""))
            try:
                result = await dispatch(channel, data)
                record_bridge_message(result["channel"], result["command"], result.get("ok", False))
            except (LookupError, ValueError) as exc:
                result = {"ok": False, "channel": channel, "error": str(exc)}
            await ws.send_json({"type": "reply", "id": request_id, **result})
    except WebSocketDisconnect:
        pass
    except Exception as exc:  # noqa: BLE001
        logger.warning("bridge websocket closed with error: %s", exc)
    finally:
        await notifier.unregister(ws)
