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
import socket
from typing import Optional

import zeroconf
from zeroconf import IPVersion
from zeroconf.asyncio import AsyncZeroconf, AsyncServiceInfo

SERVICE_TYPE = "_pair-relay._tcp.local."


class ZeroconfManager:

    def __init__(self):
        self._zeroconf = AsyncZeroconf(ip_version=IPVersion.V4Only)

    async def register_service(self, service: AsyncServiceInfo):
        await self._zeroconf.async_register_service(service)

    async def unregister_all_services(self):
        await self._zeroconf.async_unregister_all_services()

    async def close(self):
        await self._zeroconf.async_close()


class PairRelayZeroconf:
    """Advertises the relay's websocket port on the LAN when [mdns] enabled = true."""
    _service: AsyncServiceInfo

    def __init__(self, config, port: Optional[int] = None):
        self._config = config
        self._port = port
        self._manager: Optional[ZeroconfManager] = None

    @property
    def enabled(self) -> bool:
        return bool(self._config["mdns"]["enabled"])

    def set_port(self, port: int):
        self._port = port

    async def resolve_address(self) -> str:
        if self._config["mdns"]["address"]:
            return self._config["mdns"]["address"]
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, socket.gethostbyname, socket.gethostname())

    def service_info(self, address: Optional[str] = None) -> AsyncServiceInfo:
        name = self._config["server"]["name"]
        address = address or self._config["mdns"]["address"]
        port = self._port if self._port is not None else int(self._config["server"]["websocket_port"])
        return AsyncServiceInfo(
            SERVICE_TYPE,
            f"{name}.{SERVICE_TYPE}",
            addresses=[socket.inet_aton(address)],
            port=port,
            properties={
                "path": "/",
                "roles": "control,client",
            },
            server=f"{name}.local."
        )

    async def start(self):
        if not self.enabled:
            logging.debug("mDNS disabled.")
            return
        try:
            self._service = self.service_info(await self.resolve_address())
            self._manager = ZeroconfManager()
            await self._manager.register_service(self._service)
            logging.info(f"Advertising {self._service.name} on port {self._service.port}")
        except (zeroconf.Error, OSError) as e:
            logging.exception(e)
            logging.warning("Could not register mDNS service, continuing without it")
            await self.stop()

    async def stop(self):
        if self._manager is None:
            return
        await self._manager.unregister_all_services()
        await self._manager.close()
        self._manager = None
        logging.debug(f"Unregistered services.")

    async def __aenter__(self):
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.stop()
