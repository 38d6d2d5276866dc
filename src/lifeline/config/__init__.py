"""設定管理モジュール。"""

from lifeline.config._locator import CONFIG_FILE_NAME, find_config_file
from lifeline.config._resolver import (
    DISABLE_TELEMETRY_ENV,
    is_truthy,
    resolve_config,
)

__all__ = [
    "CONFIG_FILE_NAME",
    "DISABLE_TELEMETRY_ENV",
    "find_config_file",
    "is_truthy",
    "resolve_config",
]
