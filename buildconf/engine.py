"""One configuration pass, start to finish.

probes -> options -> paths -> record -> artifacts. Each stage only sees the
frozen output of the stages before it. The pass either produces a complete
record plus rendered artifacts or stops at the first fatal error; nothing is
written to disk here.
"""
import os
from dataclasses import dataclass
from typing import Optional

from .artifacts import generate
from .cli_logger import logger
from .errors import ConfigurationError
from .host import HostFacts, detect_host
from .options import OptionResolver
from .paths import PathCascadeResolver, platform_roots
from .probes import ProbeRunner
from .record import ConfigurationRecord, aggregate


@dataclass(frozen=True)
class PassResult:
    record: Optional[ConfigurationRecord] = None
    artifacts: tuple = ()
    notes: tuple = ()
    host: Optional[HostFacts] = None
    error: Optional[ConfigurationError] = None

    @property
    def ok(self):
        return self.error is None


def make_runner(declaration):
    compiler = declaration.compiler or os.environ.get("CC") or "cc"
    return ProbeRunner(compiler=compiler, timeout=declaration.timeout)


def configure(declaration, host, runner, overrides=None):
    """Resolve everything; raises ConfigurationError on the first fatal problem."""
    overrides = overrides or {}

    for probe in declaration.probes.values():
        if probe.required:
            runner.run(probe)

    logger.info("Resolving options...")
    resolution = OptionResolver(
        declaration.options, declaration.probes, runner, host, overrides
    ).resolve()

    variables = {"PROJECT_NAME": declaration.project, "PROJECT_VERSION": declaration.version}
    for resolved in resolution.resolved:
        if not resolved.option.is_bool:
            variables[resolved.name] = resolved.value

    logger.info("Resolving install paths...")
    paths = platform_roots(host, declaration.project) + list(declaration.paths)
    resolved_paths = PathCascadeResolver(paths, overrides, variables).resolve()

    known = {r.name for r in resolution.resolved} | {p.name for p in resolved_paths}
    unused = [name for name in overrides if name not in known]
    if unused:
        logger.warning("Manually-specified variables were not used by the project:")
        for name in unused:
            logger.warning(f"  - {name}")

    record = aggregate(declaration.project, declaration.version, resolution.resolved, resolved_paths)
    return record, resolution.notes


def run_pass(declaration, overrides=None, host=None, runner=None, os_name=None, arch=None, compiler=None):
    """
    Run the whole pass and report the outcome instead of raising.

    Returns a PassResult that carries either the record and its rendered
    artifacts, or the fatal error with no artifacts at all.
    """
    runner = runner or make_runner(declaration)
    try:
        host = host or detect_host(runner, os_name=os_name, arch=arch, compiler=compiler)
        record, notes = configure(declaration, host, runner, overrides)
        artifacts = tuple(generate(record, declaration.layout))
    except ConfigurationError as e:
        logger.error(f"{e.kind}: {e.entity}: {e.reason}")
        return PassResult(host=host, error=e)

    logger.info(f"Build configuration: {record.summary}")
    return PassResult(record=record, artifacts=artifacts, notes=tuple(notes), host=host)
