from .config import config
from .doctor import doctor
from .log import log
from .probe import probe
from .resolve import resolve
from .show import show
from .version import version

__all__ = ["config", "doctor", "log", "probe", "resolve", "show", "version"]
