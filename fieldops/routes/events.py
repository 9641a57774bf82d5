from typing import Optional

from fastapi import APIRouter, WebSocket, WebSocketDisconnect

from ..services.events import hub


router = APIRouter(tags=["events"])


@router.websocket("/ws/events")
async def ws_events(websocket: WebSocket, topics: Optional[str] = None):
    await websocket.accept()
    wanted = [t.strip() for t in topics.split(",") if t.strip()] if topics else None
    subscribed = await hub.connect(websocket, wanted)
    await websocket.send_json({"event": "connected", "data": {"topics": sorted(subscribed)}})

    try:
        while True:
            data = await websocket.receive_text()
            # Keep-alives only; viewers never publish
            if data and data.strip().lower() in {"ping", "keepalive"}:
                await websocket.send_text("pong")
    except WebSocketDisconnect:
        await hub.disconnect(websocket)
    except Exception:
        await hub.disconnect(websocket)
        try:
            await websocket.close()
        except Exception:
            pass
