from .logger import get_logger, configure_logging
from .timer import Timer
