"""Capability probes against the host toolchain.

A probe compiles (and sometimes links) a tiny C translation unit, or runs an
external command, and reports whether the capability is there. A missing
capability is a normal ``Outcome(supported=False)``; only a *required*
external command that cannot be located at all raises.
"""
import enum
import os
import shlex
import shutil
import tempfile
from dataclasses import dataclass
from typing import Optional

from .cli_logger import logger
from .errors import ExternalProbeUnavailable, InvalidDeclaration
from .utils.command_executor import run_shell_command, TIMEOUT_RETURN_CODE

DEFAULT_TIMEOUT = 30


class ProbeKind(enum.Enum):
    COMPILER_FLAG = "compiler_flag"
    HEADER = "header"
    SYMBOL = "symbol"
    LIBRARY = "library"
    EXTERNAL_COMMAND = "external_command"

    @classmethod
    def parse(cls, value, entity="probe"):
        try:
            return cls(str(value).lower())
        except ValueError:
            known = ", ".join(k.value for k in cls)
            raise InvalidDeclaration(entity, f"unknown probe kind '{value}' (expected one of: {known})")


@dataclass(frozen=True)
class Outcome:
    supported: bool
    detail: Optional[str] = None


@dataclass(frozen=True)
class Probe:
    name: str
    kind: ProbeKind
    query: str
    required: bool = False

    @property
    def key(self):
        return (self.kind, self.query)


_SYMBOL_SOURCE = """\
{includes}
int main(int argc, char **argv)
{{
  (void)argv;
#ifndef {symbol}
  return ((int *)(&{symbol}))[argc];
#else
  (void)argc;
  return 0;
#endif
}}
"""

_LIBRARY_SOURCE = """\
char {function}(void);
int main(void)
{{
  return {function}();
}}
"""

_MAIN_SOURCE = "int main(void)\n{\n  return 0;\n}\n"


class ProbeRunner:
    """Runs probes and remembers their outcomes for the rest of the pass."""

    def __init__(self, compiler="cc", timeout=DEFAULT_TIMEOUT, executor=run_shell_command):
        self.compiler = compiler
        self.timeout = timeout
        self._execute = executor
        self._cache = {}
        self._compiler_path = None
        self._compiler_checked = False

    @property
    def outcomes(self):
        """Outcomes in the order they were first probed, keyed by (kind, query)."""
        return dict(self._cache)

    def run(self, probe: Probe) -> Outcome:
        if probe.kind is ProbeKind.EXTERNAL_COMMAND and probe.required:
            self.require_command(probe.query, entity=probe.name)

        if probe.key in self._cache:
            return self._cache[probe.key]

        if probe.kind is ProbeKind.EXTERNAL_COMMAND:
            outcome = self._run_command(probe.query)
        else:
            outcome = self._run_compile(probe)

        status = "found" if outcome.supported else "not found"
        if probe.kind is ProbeKind.COMPILER_FLAG:
            status = "Success" if outcome.supported else "Failed"
        logger.step_info(f"-- Looking for {probe.query} ({probe.kind.value}) - {status}", indent=2)

        self._cache[probe.key] = outcome
        return outcome

    def require_command(self, command, entity=None):
        """Return the absolute path of ``command``'s executable or raise."""
        argv = shlex.split(command)
        path = shutil.which(argv[0]) if argv else None
        if not path:
            raise ExternalProbeUnavailable(
                entity or command,
                f"'{argv[0] if argv else command}' was not found on PATH and no fallback exists",
            )
        return path

    # -------------------- external commands --------------------

    def _run_command(self, command):
        argv = shlex.split(command)
        if not argv:
            return Outcome(False, "empty command")
        executable = shutil.which(argv[0])
        if not executable:
            return Outcome(False, f"{argv[0]} not found")
        stdout, stderr, returncode = self._execute([executable] + argv[1:], timeout=self.timeout)
        if returncode == TIMEOUT_RETURN_CODE:
            return Outcome(False, "timed out")
        if returncode != 0:
            return Outcome(False, (stderr or "").strip() or f"exit status {returncode}")
        return Outcome(True, (stdout or "").strip() or None)

    # -------------------- compiler based probes --------------------

    def _find_compiler(self):
        if not self._compiler_checked:
            self._compiler_checked = True
            argv = shlex.split(self.compiler)
            self._compiler_path = shutil.which(argv[0]) if argv else None
            if not self._compiler_path:
                logger.warning(f"C compiler '{self.compiler}' not found; compiler probes will report unsupported.")
        return self._compiler_path

    def _compile_command(self, probe, source_path, output_path):
        compiler_argv = [self._compiler_path] + shlex.split(self.compiler)[1:]
        if probe.kind is ProbeKind.COMPILER_FLAG:
            return compiler_argv + ["-Werror", probe.query, "-c", source_path, "-o", output_path]
        if probe.kind is ProbeKind.HEADER:
            return compiler_argv + ["-c", source_path, "-o", output_path]
        if probe.kind is ProbeKind.SYMBOL:
            return compiler_argv + [source_path, "-o", output_path]
        library = probe.query.split(":", 1)[0]
        return compiler_argv + [source_path, "-o", output_path, f"-l{library}"]

    def _render_source(self, probe):
        if probe.kind is ProbeKind.HEADER:
            return f"#include <{probe.query}>\n" + _MAIN_SOURCE
        if probe.kind is ProbeKind.SYMBOL:
            symbol, _, headers = probe.query.partition(":")
            includes = "\n".join(f"#include <{h.strip()}>" for h in headers.split(",") if h.strip())
            return _SYMBOL_SOURCE.format(includes=includes, symbol=symbol.strip())
        if probe.kind is ProbeKind.LIBRARY and ":" in probe.query:
            function = probe.query.split(":", 1)[1].strip()
            return _LIBRARY_SOURCE.format(function=function)
        return _MAIN_SOURCE

    def _run_compile(self, probe):
        if not self._find_compiler():
            return Outcome(False, "compiler not found")

        with tempfile.TemporaryDirectory(prefix="buildconf-probe-") as workdir:
            source_path = os.path.join(workdir, "probe.c")
            output_path = os.path.join(workdir, "probe.out")
            with open(source_path, "w") as f:
                f.write(self._render_source(probe))
            command = self._compile_command(probe, source_path, output_path)
            _, stderr, returncode = self._execute(command, cwd=workdir, timeout=self.timeout)

        if returncode == TIMEOUT_RETURN_CODE:
            return Outcome(False, "timed out")
        if returncode != 0:
            first_line = (stderr or "").strip().splitlines()[:1]
            return Outcome(False, first_line[0] if first_line else f"exit status {returncode}")
        return Outcome(True)
