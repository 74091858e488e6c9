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

import dataclasses
import enum
import json
import logging
import math
from typing import Union

import voluptuous.error
from voluptuous import Schema, Required, All, In, Match, ALLOW_EXTRA

"""
Wire format shared by the controller and client apps.

Every frame is a JSON object with a "type" field. Inbound frames are decoded into
one of the dataclasses below; anything the relay cannot act on becomes Ignored or
Malformed so the caller never has to probe raw dicts.
"""

MIN_SPEED = 0.25
MAX_SPEED = 2.0


class Role(enum.Enum):
    CONTROLLER = "control"
    CLIENT = "client"


# spellings accepted in a join; "control" is what the apps send
ROLE_NAMES = {
    "control": Role.CONTROLLER,
    "controller": Role.CONTROLLER,
    "client": Role.CLIENT,
}


class ErrorCode(str, enum.Enum):
    INVALID_JOIN = "INVALID_JOIN"
    NOT_JOINED = "NOT_JOINED"
    CLIENT_NOT_CONNECTED = "CLIENT_NOT_CONNECTED"


def finite_number(value):
    # json gives bool for true/false, which isinstance(.., int) would let through
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise voluptuous.error.Invalid("expected a number")
    try:
        finite = math.isfinite(value)
    except OverflowError:
        finite = False
    if not finite:
        raise voluptuous.error.Invalid("expected a finite number")
    return value


def clamp_speed(speed) -> float:
    return max(MIN_SPEED, min(MAX_SPEED, speed))


envelope_schema = Schema({Required("type"): str}, extra=ALLOW_EXTRA)
join_schema = Schema({
    Required("code"): All(str, Match(r"^[0-9]{6}\Z")),
    Required("role"): All(str, In(ROLE_NAMES)),
}, extra=ALLOW_EXTRA)
play_schema = Schema({Required("url"): str}, extra=ALLOW_EXTRA)
speed_schema = Schema({Required("speed"): finite_number}, extra=ALLOW_EXTRA)
seek_schema = Schema({Required("seconds"): finite_number}, extra=ALLOW_EXTRA)


@dataclasses.dataclass(frozen=True)
class Join:
    code: str
    role: Role
    role_name: str  # spelling used by the sender, echoed in "joined"


@dataclasses.dataclass(frozen=True)
class InvalidJoin:
    reason: str


@dataclasses.dataclass(frozen=True)
class Play:
    url: str

    def forward(self) -> dict:
        return {"type": "play", "url": self.url}

    def ack(self) -> dict:
        return {"type": "ack", "action": "play"}


@dataclasses.dataclass(frozen=True)
class Control:
    """pause, resume, stop, next and previous carry nothing but the action."""
    action: str

    def forward(self) -> dict:
        return {"type": "control", "action": self.action}

    def ack(self) -> dict:
        return {"type": "ack", "action": self.action}


@dataclasses.dataclass(frozen=True)
class Speed:
    speed: float  # as received; clamped on the way out

    @property
    def clamped(self) -> float:
        return clamp_speed(self.speed)

    def forward(self) -> dict:
        return {"type": "control", "action": "speed", "speed": self.clamped}

    def ack(self) -> dict:
        return {"type": "ack", "action": "speed", "speed": self.clamped}


@dataclasses.dataclass(frozen=True)
class Seek:
    seconds: float

    def forward(self) -> dict:
        return {"type": "control", "action": "seek", "seconds": self.seconds}

    def ack(self) -> dict:
        return {"type": "ack", "action": "seek", "seconds": self.seconds}


@dataclasses.dataclass(frozen=True)
class Ignored:
    type: str


@dataclasses.dataclass(frozen=True)
class Malformed:
    reason: str


RoutedMessage = Union[Play, Control, Speed, Seek]
InboundMessage = Union[Join, InvalidJoin, Play, Control, Speed, Seek, Ignored, Malformed]

CONTROL_ACTIONS = ("pause", "resume", "stop", "next", "previous")


def _parse_play(packet: dict) -> Play:
    play_schema(packet)
    return Play(packet["url"])


def _parse_speed(packet: dict) -> Speed:
    speed_schema(packet)
    return Speed(packet["speed"])


def _parse_seek(packet: dict) -> Seek:
    seek_schema(packet)
    return Seek(packet["seconds"])


_PARSERS = {
    "play": _parse_play,
    "speed": _parse_speed,
    "seek": _parse_seek,
    **{action: (lambda packet, _action=action: Control(_action)) for action in CONTROL_ACTIONS},
}


def decode_message(raw: Union[str, bytes]) -> InboundMessage:
    if isinstance(raw, bytes):
        try:
            raw = raw.decode("utf-8")
        except UnicodeDecodeError:
            return Malformed("binary frame is not UTF-8")

    try:
        packet = json.loads(raw)
    except (ValueError, RecursionError) as e:
        return Malformed(f"not JSON: {e}")

    if not isinstance(packet, dict):
        return Malformed("not a JSON object")
    try:
        envelope_schema(packet)
    except voluptuous.error.Invalid:
        return Malformed("no type")

    msg_type = packet["type"]
    if msg_type == "join":
        try:
            join_schema(packet)
        except voluptuous.error.MultipleInvalid as e:
            return InvalidJoin(str(e))
        return Join(packet["code"], ROLE_NAMES[packet["role"]], packet["role"])

    parser = _PARSERS.get(msg_type)
    if parser is None:
        return Ignored(msg_type)
    try:
        return parser(packet)
    except voluptuous.error.MultipleInvalid as e:
        logging.debug(f"Dropping {msg_type} with bad fields: {e}")
        return Malformed(str(e))


def encode_message(packet: dict) -> str:
    return json.dumps(packet)


def joined(code: str, role_name: str) -> dict:
    return {"type": "joined", "code": code, "role": role_name}


def error(code: ErrorCode) -> dict:
    return {"type": "error", "error": code.value}


def peer_status(client_present: bool, control_present: bool) -> dict:
    return {
        "type": "peer_status",
        "clientPresent": client_present,
        "controlPresent": control_present,
    }
