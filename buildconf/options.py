"""Tri-state option resolution.

Every option is declared once with its intent (on, off or auto), the
platforms it makes sense on, the options it depends on and, optionally, the
probe that decides whether the host can support it. ``OptionResolver`` turns
that table into concrete values in dependency order.
"""
import enum
import re
from dataclasses import dataclass, field
from typing import Optional

from packaging.version import Version

from .cli_logger import logger
from .errors import CycleDetected, InvalidDeclaration, MandatoryUnsupported, UndeclaredReference

TRUE_STRINGS = {"1", "ON", "YES", "TRUE", "Y"}
FALSE_STRINGS = {"0", "OFF", "NO", "FALSE", "N", "IGNORE", "NOTFOUND", ""}


class OptionState(enum.Enum):
    ON = "on"
    OFF = "off"
    AUTO = "auto"

    @classmethod
    def parse(cls, value, entity="option"):
        if isinstance(value, bool):
            return cls.ON if value else cls.OFF
        try:
            return cls(str(value).lower())
        except ValueError:
            raise InvalidDeclaration(entity, f"state must be on, off or auto, not '{value}'")


def parse_bool(value, entity="option"):
    """Interpret ``value`` with CMake's idea of a boolean."""
    if isinstance(value, bool):
        return value
    text = str(value).strip().upper()
    if text in TRUE_STRINGS:
        return True
    if text in FALSE_STRINGS or text.endswith("-NOTFOUND"):
        return False
    raise InvalidDeclaration(entity, f"'{value}' is not a boolean value")


def is_truthy(value):
    if isinstance(value, bool):
        return value
    text = str(value).strip().upper()
    return not (text in FALSE_STRINGS or text.endswith("-NOTFOUND"))


@dataclass(frozen=True)
class PlatformGuard:
    """Predicate over host facts. An empty guard always passes."""

    os: tuple = ()
    arch: Optional[str] = None
    compiler: tuple = ()
    min_compiler_version: Optional[str] = None

    def failure(self, host):
        """Return why ``host`` fails this guard, or None when it passes."""
        if self.os and host.os.lower() not in {o.lower() for o in self.os}:
            return f"not available on {host.os}"
        if self.arch and not re.search(self.arch, host.arch, re.IGNORECASE):
            return f"not available on {host.arch}"
        if self.compiler and host.compiler.lower() not in {c.lower() for c in self.compiler}:
            return f"not available with the {host.compiler} compiler"
        if self.min_compiler_version:
            version = host.parsed_compiler_version
            if version is None or version < Version(self.min_compiler_version):
                return f"needs compiler version {self.min_compiler_version} or newer"
        return None

    def matches(self, host):
        return self.failure(host) is None


@dataclass(frozen=True)
class Case:
    guard: PlatformGuard
    value: str


@dataclass(frozen=True)
class Option:
    name: str
    state: OptionState = OptionState.AUTO
    value_type: str = "bool"
    depends_on: tuple = ()
    when: tuple = ()
    guard: PlatformGuard = field(default_factory=PlatformGuard)
    probe: Optional[str] = None
    mandatory: bool = False
    default: Optional[str] = None
    cases: tuple = ()
    compile_flags: tuple = ()
    link_flags: tuple = ()
    definitions: tuple = ()
    description: str = ""

    @property
    def is_bool(self):
        return self.value_type == "bool"

    @property
    def dependencies(self):
        names = list(self.depends_on)
        for name, _ in self.when:
            if name not in names:
                names.append(name)
        return tuple(names)


@dataclass(frozen=True)
class ResolvedOption:
    option: Option
    value: object
    source: str

    @property
    def name(self):
        return self.option.name


@dataclass(frozen=True)
class Note:
    entity: str
    reason: str


@dataclass(frozen=True)
class OptionResolution:
    resolved: tuple
    notes: tuple
    order: tuple

    @property
    def values(self):
        return {r.name: r.value for r in self.resolved}


def dependency_order(options):
    """
    Order options so each comes after everything it depends on.

    Ties are broken by declaration order, so a table with no dependencies
    resolves exactly top to bottom.
    """
    declared = {o.name: o for o in options}
    for option in options:
        for dep in option.dependencies:
            if dep not in declared:
                raise UndeclaredReference(option.name, f"depends on undeclared option '{dep}'")

    remaining = [o.name for o in options]
    done = set()
    order = []
    while remaining:
        ready = next(
            (name for name in remaining if all(d in done for d in declared[name].dependencies)),
            None,
        )
        if ready is None:
            raise CycleDetected(_find_cycle(remaining, declared, done))
        remaining.remove(ready)
        done.add(ready)
        order.append(ready)
    return order


def _find_cycle(remaining, declared, done):
    # Every blocked option has at least one blocked dependency, so walking
    # blocked dependencies must eventually revisit a name.
    path = []
    current = remaining[0]
    while current not in path:
        path.append(current)
        current = next(d for d in declared[current].dependencies if d not in done)
    return path[path.index(current):]


def _condition_holds(value, expected):
    if isinstance(expected, (list, tuple)):
        return any(_condition_holds(value, e) for e in expected)
    if isinstance(expected, bool):
        return is_truthy(value) == expected
    return str(value) == str(expected)


class OptionResolver:
    def __init__(self, options, probes, runner, host, overrides=None):
        self.options = list(options)
        self.probes = probes
        self.runner = runner
        self.host = host
        self.overrides = overrides or {}

    def resolve(self):
        order = dependency_order(self.options)
        declared = {o.name: o for o in self.options}
        values = {}
        sources = {}
        notes = []

        for name in order:
            option = declared[name]
            value, source, note = self._resolve_one(option, values)
            values[name] = value
            sources[name] = source
            if note:
                notes.append(Note(name, note))
                logger.info(f"{name} disabled: {note}")
            logger.step_info(f"-- {name} = {_display(value)} ({source})", indent=2)

        resolved = tuple(ResolvedOption(o, values[o.name], sources[o.name]) for o in self.options)
        return OptionResolution(resolved=resolved, notes=tuple(notes), order=tuple(order))

    def _resolve_one(self, option, values):
        if option.name in self.overrides:
            raw = self.overrides[option.name]
            if option.is_bool:
                return parse_bool(raw, option.name), "override", None
            return str(raw), "override", None
        if option.is_bool:
            return self._resolve_bool(option, values)
        return self._resolve_string(option)

    def _resolve_bool(self, option, values):
        if option.state is OptionState.OFF:
            return False, "off", None

        if option.state is OptionState.AUTO:
            failure = option.guard.failure(self.host)
            if failure:
                return False, "auto", failure
            for dep in option.depends_on:
                if not is_truthy(values[dep]):
                    return False, "auto", f"requires {dep}"
            for dep, expected in option.when:
                if not _condition_holds(values[dep], expected):
                    return False, "auto", f"requires {dep}={_display(expected)}"

        source = option.state.value
        if option.probe:
            outcome = self._probe(option)
            if not outcome.supported:
                reason = f"probe '{option.probe}' reported unsupported"
                if outcome.detail:
                    reason += f" ({outcome.detail})"
                if option.mandatory:
                    raise MandatoryUnsupported(option.name, reason)
                return False, source, reason
        return True, source, None

    def _resolve_string(self, option):
        failure = option.guard.failure(self.host)
        if failure:
            return option.default or "", "default", None
        for case in option.cases:
            if case.guard.matches(self.host):
                return case.value, "platform", None
        if option.probe:
            outcome = self._probe(option)
            if outcome.supported and outcome.detail:
                return outcome.detail, "probe", None
            if option.mandatory:
                raise MandatoryUnsupported(option.name, f"probe '{option.probe}' produced no value")
        return option.default or "", "default", None

    def _probe(self, option):
        try:
            probe = self.probes[option.probe]
        except KeyError:
            raise UndeclaredReference(option.name, f"requires undeclared probe '{option.probe}'")
        return self.runner.run(probe)


def _display(value):
    if isinstance(value, bool):
        return "ON" if value else "OFF"
    return str(value)
