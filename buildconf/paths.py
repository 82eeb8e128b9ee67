"""Install path layout.

Paths cascade: each one is its parent's resolved value plus a suffix unless
the user overrides it. Variables with a ``runtime`` twin resolve twice, once
for where files are installed and once for where the running program looks
for them; the twin follows the install value until it is overridden itself.
"""
import re
from dataclasses import dataclass
from typing import Optional

from .cli_logger import logger
from .errors import CycleDetected, InvalidDeclaration, UndeclaredReference

_PLACEHOLDER = re.compile(r"\$\{([A-Za-z_][A-Za-z0-9_]*)\}")
_WINDOWS_DRIVE = re.compile(r"^[A-Za-z]:[/\\]")

PREFIX = "PREFIX"
ROOT_NAMES = (PREFIX, "BINDIR", "LIBDIR", "SYSCONFDIR", "DATADIR", "LOCALEDIR", "MANDIR")


@dataclass(frozen=True)
class PathVariable:
    name: str
    parent: Optional[str] = None
    suffix: str = ""
    default: Optional[str] = None
    runtime: Optional[str] = None
    description: str = ""


@dataclass(frozen=True)
class ResolvedPath:
    name: str
    value: str
    source: str


def platform_roots(host, project_name):
    """Built-in directories every declared path can cascade from."""
    if host.os.lower() == "windows":
        prefix = f"C:/Program Files/{project_name}"
    else:
        prefix = "/usr/local"
    return [
        PathVariable(PREFIX, default=prefix, description="Installation prefix"),
        PathVariable("BINDIR", parent=PREFIX, suffix="/bin", description="User executables"),
        PathVariable("LIBDIR", parent=PREFIX, suffix="/lib", description="Object code libraries"),
        PathVariable("SYSCONFDIR", parent=PREFIX, suffix="/etc", description="Read-only single-machine data"),
        PathVariable("DATADIR", parent=PREFIX, suffix="/share", description="Read-only architecture-independent data"),
        PathVariable("LOCALEDIR", parent="DATADIR", suffix="/locale", description="Locale-dependent data"),
        PathVariable("MANDIR", parent="DATADIR", suffix="/man", description="Manual pages"),
    ]


def is_absolute(path):
    return path.startswith("/") or bool(_WINDOWS_DRIVE.match(path))


def substitute(text, variables, entity):
    def _replace(match):
        name = match.group(1)
        if name not in variables:
            raise UndeclaredReference(entity, f"'${{{name}}}' does not name a resolved value")
        return str(variables[name])

    return _PLACEHOLDER.sub(_replace, text)


class PathCascadeResolver:
    def __init__(self, paths, overrides=None, variables=None):
        self.paths = list(paths)
        self.overrides = overrides or {}
        self.variables = variables or {}

    def resolve(self):
        declared = {p.name: p for p in self.paths}
        values = {}
        resolved = []

        for var in self.paths:
            if var.parent == var.name:
                raise CycleDetected([var.name], what="path")

            override = self.overrides.get(var.name)
            if override is not None:
                value = self._absolute(var.name, str(override), values)
                source = "override"
            elif var.parent:
                if var.parent not in values:
                    if var.parent in declared:
                        cycle = self._parent_cycle(var.name, declared)
                        if cycle:
                            raise CycleDetected(cycle, what="path")
                        reason = f"parent '{var.parent}' is referenced before it is defined"
                    else:
                        reason = f"parent '{var.parent}' is not declared"
                    raise UndeclaredReference(var.name, reason)
                value = values[var.parent] + substitute(var.suffix, self.variables, var.name)
                source = var.parent
            elif var.default is not None:
                value = self._absolute(var.name, substitute(var.default, self.variables, var.name), values)
                source = "default"
            else:
                raise InvalidDeclaration(var.name, "path needs a parent, a default or an override")

            values[var.name] = value
            resolved.append(ResolvedPath(var.name, value, source))
            logger.step_info(f"-- {var.name} = {value}", indent=2)

            if var.runtime:
                runtime_override = self.overrides.get(var.runtime)
                if runtime_override is not None:
                    runtime_value = self._absolute(var.runtime, str(runtime_override), values)
                    runtime_source = "override"
                else:
                    runtime_value = value
                    runtime_source = var.name
                values[var.runtime] = runtime_value
                resolved.append(ResolvedPath(var.runtime, runtime_value, runtime_source))
                logger.step_info(f"-- {var.runtime} = {runtime_value}", indent=2)

        return tuple(resolved)

    @staticmethod
    def _parent_cycle(name, declared):
        """Follow parents from ``name``; return the loop if it comes back."""
        chain = [name]
        current = declared[name].parent
        while current in declared and current not in chain:
            chain.append(current)
            current = declared[current].parent
        if current == name:
            return chain
        return None

    @staticmethod
    def _absolute(name, path, values):
        if is_absolute(path):
            return path
        if PREFIX not in values:
            raise InvalidDeclaration(name, f"'{path}' must be an absolute path")
        return values[PREFIX].rstrip("/") + "/" + path.lstrip("/")
