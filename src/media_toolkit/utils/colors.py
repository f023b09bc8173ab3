"""文字水印使用的颜色。"""

from __future__ import annotations

from typing import Tuple

from media_toolkit.core.exceptions import InvalidConfigurationError

NAMED_COLORS = {
    "black": (0, 0, 0),
    "white": (255, 255, 255),
}


def named_color(name: str) -> Tuple[int, int, int]:
    """颜色名转 RGB，只支持 black / white。"""

    try:
        return NAMED_COLORS[name.strip().lower()]
    except KeyError as exc:
        raise InvalidConfigurationError(f'Text color must be either "black" or "white", got: {name}') from exc
