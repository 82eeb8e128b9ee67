import click
from .. import config as config_module
from ..declaration import parse_declaration
from ..cli_logger import logger

def host_options(func):
    """--os/--arch/--compiler overrides for the detected host facts."""
    func = click.option("--compiler", "compiler_family", default=None,
                        help="Compiler family to assume (GNU, Clang, MSVC) instead of detecting it.")(func)
    func = click.option("--arch", default=None, help="CPU architecture to assume instead of detecting it.")(func)
    func = click.option("--os", "os_name", default=None, help="Operating system to assume instead of detecting it.")(func)
    func = click.option("-D", "definitions", multiple=True, metavar="NAME=VALUE",
                        help="Override an option or path. May be repeated.")(func)
    return func

def load_declaration(ctx):
    """Load and parse buildconf.toml for the project in ctx.obj['path'], or exit."""
    conf = config_module.load_config(path=ctx.obj["path"])
    if not conf:
        logger.error(f"Error: No {config_module.CONFIG_FILE} found in the current directory or specified path.")
        ctx.exit(1)
    return parse_declaration(conf)

def collect_overrides(definitions):
    """Environment overrides first, then -D values, which win."""
    overrides = config_module.overrides_from_environment()
    try:
        overrides.update(config_module.parse_definitions(definitions))
    except ValueError as e:
        raise click.BadParameter(str(e), param_hint="-D")
    return overrides
