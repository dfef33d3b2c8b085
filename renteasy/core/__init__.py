from renteasy.core.config import Config, SettingsLike
from renteasy.core.logger import get_logger, parse_log_level, setup_logger
from renteasy.core.utils import ifnone

__all__ = [
    "Config",
    "get_logger",
    "ifnone",
    "parse_log_level",
    "SettingsLike",
    "setup_logger",
]
