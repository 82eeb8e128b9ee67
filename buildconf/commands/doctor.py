import click
import os
import shutil
from .. import config as config_module
from ..cli_logger import logger
from ..declaration import parse_declaration
from ..decorators import handle_exceptions
from ..errors import ConfigurationError, ExternalProbeUnavailable
from ..engine import make_runner

def symbolic_umask(mask):
    """Render a numeric umask the way `umask -S` does, e.g. 0o022 -> u=rwx,g=rx,o=rx."""
    parts = []
    for who, shift in (("u", 6), ("g", 3), ("o", 0)):
        allowed = ~(mask >> shift) & 0o7
        perms = "".join(p for p, bit in (("r", 4), ("w", 2), ("x", 1)) if allowed & bit)
        parts.append(f"{who}={perms}")
    return ",".join(parts)

def umask_ok(symbolic):
    """Packages built under this umask keep readable, traversable directories."""
    return "r" in symbolic and symbolic.count("x") == 3

def current_umask():
    mask = os.umask(0)
    os.umask(mask)
    return mask

@click.command()
@click.pass_context
@handle_exceptions
def doctor(ctx):
    """Check the toolchain and environment before configuring."""
    logger.info("Running environment check...")
    all_ok = True

    umask = symbolic_umask(current_umask())
    if umask_ok(umask):
        logger.step_info(f"-- umask {umask}", indent=2)
    else:
        logger.warning(f"umask is set to {umask} - this setting is not recommended if one of the goals "
                       "of this build is to generate packages. Use 'umask 022' for improved package behavior.")
        all_ok = False

    conf = config_module.load_config(path=ctx.obj["path"])
    if not conf:
        logger.warning(f"No {config_module.CONFIG_FILE} found; only generic checks were run.")
        all_ok = False
    else:
        try:
            declaration = parse_declaration(conf)
        except ConfigurationError as e:
            logger.warning(f"{config_module.CONFIG_FILE} is invalid: {e.entity}: {e.reason}")
            declaration = None
            all_ok = False

        if declaration is not None:
            runner = make_runner(declaration)
            if shutil.which(runner.compiler.split()[0]):
                logger.step_info(f"-- C compiler: {runner.compiler}", indent=2)
            else:
                logger.warning(f"C compiler '{runner.compiler}' not found. Set CC or [toolchain].compiler.")
                all_ok = False
            for probe in declaration.probes.values():
                if not probe.required:
                    continue
                try:
                    runner.require_command(probe.query, entity=probe.name)
                    logger.step_info(f"-- {probe.name}: found", indent=2)
                except ExternalProbeUnavailable as e:
                    logger.warning(f"{e.entity}: {e.reason}")
                    all_ok = False

    if all_ok:
        logger.success("Environment check completed successfully.")
    else:
        logger.error("Environment check found issues. Please review the warnings above.")
