"""日志初始化。"""

import logging

from planhub_api.core.config import get_settings

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def setup_logging() -> None:
    """初始化日志输出格式与级别。"""
    settings = get_settings()
    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.INFO),
        format=LOG_FORMAT,
    )
    logging.getLogger("planhub_api").setLevel(getattr(logging, settings.log_level, logging.INFO))
