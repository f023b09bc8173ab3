"""日志配置。"""

from __future__ import annotations

import logging


def setup_logging(level: int = logging.INFO) -> None:
    """初始化项目日志配置。"""

    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(threadName)s] %(levelname)s %(name)s: %(message)s",
    )
    # PyExifTool 在 DEBUG 级别会输出每条命令的完整参数
    logging.getLogger("exiftool").setLevel(max(level, logging.INFO))
