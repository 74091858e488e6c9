"""
PairRelay
Copyright (C) 2024 thiccaxe

This program is free software: you can redistribute it and/or modify
it under the terms of the GNU Affero General Public License as published
by the Free Software Foundation, either version 3 of the License, or
(at your option) any later version.

This program is distributed in the hope that it will be useful,
but WITHOUT ANY WARRANTY; without even the implied warranty of
MERCHANTABILITY or FITNESS FOR A PARTICULAR PURPOSE.  See the
GNU Affero General Public License for more details.

You should have received a copy of the GNU Affero General Public License
along with this program.  If not, see <https://www.gnu.org/licenses/>.
"""

import asyncio
import dataclasses
import logging
from typing import Optional

from websockets.asyncio.server import ServerConnection
from websockets.protocol import State

from protocol import Role


def is_open(connection: Optional[ServerConnection]) -> bool:
    return connection is not None and connection.state is State.OPEN


@dataclasses.dataclass
class Peer:
    """
    One websocket connection as seen by the relay. Anonymous until code and role are set,
    and they are never changed after that.
    """
    connection: ServerConnection
    code: Optional[str] = None
    role: Optional[Role] = None

    @property
    def joined(self) -> bool:
        return self.code is not None and self.role is not None


@dataclasses.dataclass
class Session:
    code: str
    connections: dict[Role, ServerConnection] = dataclasses.field(default_factory=dict)

    def is_empty(self) -> bool:
        return not self.connections

    def present(self, role: Role) -> bool:
        return is_open(self.connections.get(role))


@dataclasses.dataclass
class PresenceSnapshot:
    recipients: list[ServerConnection]
    client_present: bool
    control_present: bool


class SessionTable:
    """
    Pairing code -> Session. Every read-modify-write holds the lock; nothing here awaits
    network I/O, so callers send after the method returns.
    """

    def __init__(self):
        self._sessions: dict[str, Session] = dict()
        self._lock = asyncio.Lock()

    def __contains__(self, code: str) -> bool:
        return code in self._sessions

    def __len__(self) -> int:
        return len(self._sessions)

    def get(self, code: str) -> Optional[Session]:
        return self._sessions.get(code)

    async def bind(self, code: str, role: Role, connection: ServerConnection) -> Optional[ServerConnection]:
        """Put connection in the (code, role) slot. Returns whoever held the slot before."""
        async with self._lock:
            session = self._sessions.get(code)
            if session is None:
                session = Session(code)
                self._sessions[code] = session
                logging.debug(f"Session {code=} created")
            previous = session.connections.get(role)
            session.connections[role] = connection
        if previous is connection:
            return None
        return previous

    async def unbind(self, code: str, role: Role, connection: ServerConnection) -> bool:
        """
        Vacate the slot if connection still owns it. Returns whether the session survives.
        """
        async with self._lock:
            session = self._sessions.get(code)
            if session is None:
                return False
            if session.connections.get(role) is connection:
                del session.connections[role]
            if session.is_empty():
                del self._sessions[code]
                logging.debug(f"Session {code=} removed")
                return False
            return True

    async def target(self, code: str, role: Role) -> Optional[ServerConnection]:
        async with self._lock:
            session = self._sessions.get(code)
            if session is None:
                return None
            return session.connections.get(role)

    async def presence(self, code: str) -> Optional[PresenceSnapshot]:
        async with self._lock:
            session = self._sessions.get(code)
            if session is None:
                return None
            return PresenceSnapshot(
                recipients=list(session.connections.values()),
                client_present=session.present(Role.CLIENT),
                control_present=session.present(Role.CONTROLLER),
            )


class ServerData:

    def __init__(self):
        self.sessions = SessionTable()
        self.shutdown_event = asyncio.Event()
