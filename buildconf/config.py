import toml
import os
from .cli_logger import logger

CONFIG_FILE = "buildconf.toml"

def config_path(path="."):
    return os.path.join(path, CONFIG_FILE)

def load_config(path="."):
    """Load the declaration table, returning {} when it is missing or unreadable."""
    path_to_config = config_path(path)
    logger.info(f"Loading configuration from {path_to_config}")
    if os.path.exists(path_to_config):
        try:
            with open(path_to_config, "r") as f:
                return toml.load(f)
        except toml.TomlDecodeError as e:
            logger.error(f"Error decoding TOML file at {path_to_config}: {e}")
            logger.info("Please check the file's format for syntax errors.")
        except IOError as e:
            logger.error(f"Error reading configuration file at {path_to_config}: {e}")
            logger.info("Please check file permissions.")
    return {}

def overrides_from_environment(environ=None, prefix="BUILDCONF_"):
    """Collect BUILDCONF_<NAME>=VALUE variables as overrides keyed by NAME."""
    environ = os.environ if environ is None else environ
    reserved = {f"{prefix}LOG_DIR"}
    return {
        key[len(prefix):]: value
        for key, value in sorted(environ.items())
        if key.startswith(prefix) and key not in reserved and len(key) > len(prefix)
    }

def parse_definitions(definitions):
    """Turn ('NAME=VALUE', ...) from -D options into an overrides dict."""
    overrides = {}
    for item in definitions:
        name, sep, value = item.partition("=")
        name = name.strip()
        # -DNAME:BOOL=ON is accepted for familiarity; the type is ignored.
        name = name.split(":", 1)[0]
        if not sep or not name:
            raise ValueError(f"Invalid definition '{item}', expected NAME=VALUE")
        overrides[name] = value
    return overrides
