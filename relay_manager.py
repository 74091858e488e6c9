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
import logging

import websockets
from websockets.asyncio.server import ServerConnection

import protocol
from protocol import Role, ErrorCode, Join, InvalidJoin, Ignored, Malformed, InboundMessage, RoutedMessage
from server_data import ServerData, Peer, is_open


class RelayManager:
    """
    Joins peers into sessions and forwards controller commands to the paired client.
    Delivery is best effort: nothing is queued for a peer that is not there.
    """

    def __init__(self, data: ServerData):
        self._data = data
        self._closing: set[asyncio.Task] = set()

    @property
    def sessions(self):
        return self._data.sessions

    async def handle_message(self, peer: Peer, message: InboundMessage):
        if isinstance(message, Malformed):
            logging.debug(f"Dropped malformed message: {message.reason}")
            return
        if isinstance(message, (Join, InvalidJoin)):
            await self.join(peer, message)
            return

        if not peer.joined:
            await self.send(peer.connection, protocol.error(ErrorCode.NOT_JOINED))
            return
        if isinstance(message, Ignored):
            logging.debug(f"Ignoring unknown message type {message.type!r}")
            return
        await self.route(peer, message)

    async def join(self, peer: Peer, message):
        if peer.joined:
            logging.debug(f"Ignoring join from peer already in {peer.code=} as {peer.role}")
            return
        if isinstance(message, InvalidJoin):
            logging.debug(f"Invalid join: {message.reason}")
            await self.send(peer.connection, protocol.error(ErrorCode.INVALID_JOIN))
            return

        # the old holder is out of the slot from here on, closing it only tells it so.
        # its close handshake runs as a background task
        previous = await self.sessions.bind(message.code, message.role, peer.connection)
        peer.code, peer.role = message.code, message.role
        logging.info(f"{message.role.value} joined session {message.code}")
        await self.send(peer.connection, protocol.joined(message.code, message.role_name))

        if previous is not None:
            logging.info(f"Closing stale {message.role.value} of session {message.code}")
            self.close_stale(previous)
        await self.broadcast_peer_status(message.code)

    def close_stale(self, connection: ServerConnection) -> asyncio.Task:
        task = asyncio.create_task(connection.close())
        self._closing.add(task)
        task.add_done_callback(self._stale_closed)
        return task

    def _stale_closed(self, task: asyncio.Task):
        self._closing.discard(task)
        if task.cancelled():
            return
        if task.exception() is not None:
            logging.warning(f"Closing a stale connection failed: {task.exception()!r}")

    async def wait_closing(self):
        if self._closing:
            await asyncio.gather(*self._closing, return_exceptions=True)

    async def route(self, peer: Peer, message: RoutedMessage):
        if peer.role is not Role.CONTROLLER:
            logging.debug(f"Ignoring {type(message).__name__} sent by a {peer.role.value}")
            return

        target = await self.sessions.target(peer.code, Role.CLIENT)
        if not is_open(target) or not await self.send(target, message.forward()):
            logging.debug(f"No client in session {peer.code} for {type(message).__name__}")
            await self.send(peer.connection, protocol.error(ErrorCode.CLIENT_NOT_CONNECTED))
            return

        await self.send(peer.connection, message.ack())

    async def connection_closed(self, peer: Peer):
        if not peer.joined:
            return
        logging.info(f"{peer.role.value} left session {peer.code}")
        if await self.sessions.unbind(peer.code, peer.role, peer.connection):
            await self.broadcast_peer_status(peer.code)

    async def broadcast_peer_status(self, code: str):
        snapshot = await self.sessions.presence(code)
        if snapshot is None:
            return
        packet = protocol.peer_status(snapshot.client_present, snapshot.control_present)
        for connection in snapshot.recipients:
            await self.send(connection, packet)

    async def send(self, connection: ServerConnection, packet: dict) -> bool:
        try:
            await connection.send(protocol.encode_message(packet))
        except websockets.exceptions.ConnectionClosed:
            logging.debug(f"Could not send {packet.get('type')}: connection closed")
            return False
        return True
