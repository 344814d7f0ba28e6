from .config import Config, load_config
from .logger import Logger, attach_file_handler

__all__ = ["Config", "Logger", "attach_file_handler", "load_config"]
