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

import re
from typing import Optional

YOUTUBE_ID_PATTERNS = (
    re.compile(r"(?:v=)([\w-]{6,})", re.IGNORECASE),  # watch?v=
    re.compile(r"youtu\.be/([\w-]{6,})", re.IGNORECASE),
    re.compile(r"youtube\.com/embed/([\w-]{6,})", re.IGNORECASE),
    re.compile(r"youtube\.com/shorts/([\w-]{6,})", re.IGNORECASE),
    re.compile(r"youtube\.com/live/([\w-]{6,})", re.IGNORECASE),
)


def extract_youtube_video_id(url: str) -> Optional[str]:
    """What the client app does with a play url before handing it to the player."""
    url = str(url).strip()
    for pattern in YOUTUBE_ID_PATTERNS:
        match = pattern.search(url)
        if match:
            return match.group(1)
    return None
