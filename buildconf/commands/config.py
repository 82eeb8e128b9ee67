import click
import json
from .. import config as config_module
from ..cli_logger import logger

@click.group()
@click.pass_context
def config(ctx):
    """Inspect the buildconf.toml declaration file."""
    pass

def _load_or_report(ctx):
    conf = config_module.load_config(path=ctx.obj["path"])
    if not conf:
        logger.error(f"Error: No {config_module.CONFIG_FILE} found.")
    return conf

@config.command()
@click.pass_context
def view(ctx):
    """View the contents of the buildconf.toml file."""
    if not _load_or_report(ctx):
        return
    try:
        with open(config_module.config_path(ctx.obj["path"]), 'r') as f:
            click.echo(f.read())
    except IOError as e:
        logger.error(f"Error reading {config_module.CONFIG_FILE}: {e}")
        logger.info("Please check file permissions.")

@config.command("list")
@click.pass_context
def list_config(ctx):
    """List all declaration tables as JSON."""
    conf = _load_or_report(ctx)
    if conf:
        click.echo(json.dumps(conf, indent=4))

@config.command()
@click.argument('key')
@click.pass_context
def get(ctx, key):
    """Get a value from buildconf.toml using a dotted key, e.g. project.name."""
    conf = _load_or_report(ctx)
    if not conf:
        return

    value = conf
    try:
        for k in key.split('.'):
            value = value[int(k)] if isinstance(value, list) else value[k]
        click.echo(json.dumps(value) if isinstance(value, (dict, list)) else value)
    except (KeyError, TypeError, ValueError, IndexError):
        logger.error(f"Error: Key '{key}' not found in {config_module.CONFIG_FILE}")
