"""
WebSocket endpoint shared by the camera device and the viewers.

Each connection gets a ConnectionSession; the first JSON frame decides its role.
The device connects to the server root, viewers may use either path.
"""
import logging

from fastapi import APIRouter, Depends, WebSocket

from camrelay.api.deps import get_relay
from camrelay.services.connection import ClientConnection
from camrelay.services.relay import Relay
from camrelay.services.session import ConnectionSession

router = APIRouter(tags=["relay"])
logger = logging.getLogger("camrelay.ws")


def _peer(websocket: WebSocket) -> str:
    client = websocket.client
    if client is None:
        return "unknown"
    return f"{client.host}:{client.port}"


async def relay_socket(websocket: WebSocket, relay: Relay = Depends(get_relay)):
    await websocket.accept()
    conn = ClientConnection(websocket, label=_peer(websocket))
    session = ConnectionSession(conn, relay.registry)
    logger.info("New WebSocket client %s awaiting identification", conn.label)

    code, reason = 1006, ""
    try:
        while not session.closed:
            message = await websocket.receive()
            if message["type"] == "websocket.disconnect":
                code = message.get("code", 1000)
                reason = message.get("reason") or ""
                break
            raw = message.get("text")
            if raw is None:
                raw = message.get("bytes")
            await session.handle_message(raw)
    except Exception as exc:
        session.handle_error(exc)
    finally:
        await session.handle_close(code, reason)


router.add_api_websocket_route("/ws", relay_socket)
router.add_api_websocket_route("/", relay_socket)
