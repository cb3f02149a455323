from __future__ import annotations

from fastapi import APIRouter, Query, WebSocket, WebSocketDisconnect

from goodcall.realtime.hub import hub


router = APIRouter(tags=["realtime"])


@router.websocket("/ws")
async def realtime_socket(websocket: WebSocket, user_id: str | None = Query(default=None, alias="userId")) -> None:
    await websocket.accept()
    connection = await hub.connect(websocket, user_id)
    try:
        while True:
            raw = await websocket.receive_text()
            await hub.handle_message(connection, raw)
    except WebSocketDisconnect:
        pass
    finally:
        hub.disconnect(connection.socket_id)
