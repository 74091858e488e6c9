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

import copy
import ipaddress
import logging
import os
from pathlib import Path

from voluptuous import Schema, Required, Any, All, Range, Length
import voluptuous.error
import aiofiles
import tomlkit
import tomlkit.exceptions


class ConfigurationLoadError(Exception): pass


DEFAULT_CONFIG = {
    "server": {
        "name": "PairRelay",
        "host": "",
        "websocket_port": 4000,
        "ping_interval": 20,
        "close_timeout": 2,
    },
    "mdns": {
        "enabled": False,
        "address": "",
    },
}


def _merge(defaults: dict, overrides: dict) -> dict:
    merged = copy.deepcopy(defaults)
    for key, value in overrides.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _merge(merged[key], value)
        else:
            merged[key] = value
    return merged


class Config:
    config: dict
    config_opened: bool = False

    def __init__(self, config_location: Path):
        self.config_location = Path(config_location)

        seconds = All(Any(int, float), Range(min=0))
        self.config_schema = Schema({
            Required('server'): {
                Required('name'): All(str, Length(min=1, max=63)),
                Required('host'): str,
                Required('websocket_port'): All(int, Range(min=0, max=65535)),
                Required('ping_interval'): seconds,
                Required('close_timeout'): seconds,
            },
            Required('mdns'): {
                Required('enabled'): bool,
                Required('address'): Any("", self.address_validator),
            },
        })

    @staticmethod
    def address_validator(address: str) -> str:
        try:
            ipaddress.IPv4Address(address)
        except ValueError as e:
            raise voluptuous.error.Invalid(message="Invalid IPv4 address.") from e
        return address

    async def initialize(self):
        file_config = {}
        try:
            async with aiofiles.open(self.config_location, 'r') as config_file:
                file_data = await config_file.read()
                file_config = tomlkit.parse(file_data).unwrap()
                self.config_opened = True
                logging.debug("Loaded Configuration without toml format error")
        except FileNotFoundError:
            logging.warning(
                f"Could not find {self.config_location}, using defaults. "
                f"Copy from .example/config.toml to {self.config_location} to change them")
        except IOError as e:
            logging.exception(e)
            logging.warning(f"Could not open file {self.config_location}")
            raise ConfigurationLoadError() from e
        except tomlkit.exceptions.ParseError as e:
            logging.exception(e)
            logging.warning(f"Configuration in {self.config_location} is invalid")
            raise ConfigurationLoadError() from e

        config = _merge(DEFAULT_CONFIG, file_config)

        # same variable the node relay read its port from
        if "WS_PORT" in os.environ:
            try:
                config["server"]["websocket_port"] = int(os.environ["WS_PORT"])
            except ValueError as e:
                logging.warning(f"WS_PORT={os.environ['WS_PORT']!r} is not a port number")
                raise ConfigurationLoadError() from e

        try:
            logging.debug("Validating against Schema.")
            self.config = self.config_schema(config)
            logging.debug("Validated against Schema.")
        except voluptuous.error.MultipleInvalid as e:
            logging.exception(e)
            logging.warning(f"Configuration in {self.config_location} does not match expected format")
            logging.warning(f"Issue configuration item: {e.path}")
            raise ConfigurationLoadError() from e

        logging.info(f"Configuration loaded.")
