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

import logging
from typing import Optional

import websockets
from websockets.asyncio.server import serve, Server, ServerConnection

from protocol import decode_message
from relay_manager import RelayManager
from server_data import Peer


class WebsocketServer:

    def __init__(self, config, manager: RelayManager):
        self._config = config
        self._manager = manager
        self._websocket_server = None
        self._server: Optional[Server] = None

    @property
    def port(self) -> Optional[int]:
        """Port actually bound, useful when websocket_port is 0."""
        if self._server is None:
            return None
        for sock in self._server.sockets:
            return sock.getsockname()[1]
        return None

    async def handler(self, websocket: ServerConnection):
        peer = Peer(websocket)
        logging.debug(f"Websocket connected from {websocket.remote_address}")
        try:
            async for message in websocket:
                await self._parse_message(peer, message)
        except websockets.exceptions.ConnectionClosed:
            logging.debug(f"Websocket connection closed")
        finally:
            await self._manager.connection_closed(peer)

    async def _parse_message(self, peer: Peer, message):
        decoded = decode_message(message)
        logging.debug(f"Received message: {decoded}")
        await self._manager.handle_message(peer, decoded)

    async def __aenter__(self):
        logging.debug(f"Starting websocket server")
        ping_interval = self._config["server"]["ping_interval"] or None
        self._websocket_server = serve(
            self.handler,
            self._config["server"]["host"] or None,
            int(self._config["server"]["websocket_port"]),
            ping_interval=ping_interval,
            ping_timeout=ping_interval,
            close_timeout=self._config["server"]["close_timeout"],
        )
        self._server = await self._websocket_server.__aenter__()
        logging.info(f"Relay listening on port {self.port}")
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        if self._websocket_server is not None:
            logging.debug(f"Stopping websocket server")
            await self._websocket_server.__aexit__(exc_type, exc_val, exc_tb)
            await self._manager.wait_closing()
            self._websocket_server = None
            self._server = None
