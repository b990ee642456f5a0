import threading
from typing import Any, Dict, List


class SocketIOTransport:
    """Delivers channel messages through a Flask-SocketIO server."""

    def __init__(self, socketio, namespace: str = '/'):
        self._socketio = socketio
        self.namespace = namespace

    def emit(self, event: str, payload: Any, to: str) -> None:
        self._socketio.emit(event, payload, to=to, namespace=self.namespace)


class Channels:
    """Named broadcast groups: room code -> connections, in join order.

    Delivery goes through ``transport.emit(event, payload, to)`` one
    connection at a time, so the groups do not depend on the transport's own
    notion of rooms.
    """

    def __init__(self, transport):
        self.transport = transport
        self._members: Dict[str, List[str]] = {}
        self._lock = threading.Lock()

    def join(self, channel: str, connection_id: str) -> None:
        with self._lock:
            members = self._members.setdefault(channel, [])
            if connection_id not in members:
                members.append(connection_id)

    def leave(self, channel: str, connection_id: str) -> None:
        with self._lock:
            members = self._members.get(channel)
            if members and connection_id in members:
                members.remove(connection_id)

    def leave_all(self, connection_id: str) -> None:
        with self._lock:
            for members in self._members.values():
                if connection_id in members:
                    members.remove(connection_id)

    def close(self, channel: str) -> None:
        with self._lock:
            self._members.pop(channel, None)

    def members(self, channel: str) -> List[str]:
        with self._lock:
            return list(self._members.get(channel, ()))

    def send(self, connection_id: str, event: str, payload: Any) -> None:
        self.transport.emit(event, payload, to=connection_id)

    def broadcast(self, channel: str, event: str, payload: Any) -> None:
        for connection_id in self.members(channel):
            self.transport.emit(event, payload, to=connection_id)
