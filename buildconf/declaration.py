"""Turn the raw buildconf.toml tables into typed probes, options and paths.

All structural checks happen here, before anything is probed: unknown keys,
bad kinds and states, and names declared twice.
"""
import re
from dataclasses import dataclass, field
from typing import Optional

from packaging.version import InvalidVersion, Version

from .artifacts import ArtifactLayout
from .errors import DuplicateDeclaration, InvalidDeclaration
from .options import Case, Option, OptionState, PlatformGuard
from .paths import ROOT_NAMES, PathVariable
from .probes import DEFAULT_TIMEOUT, Probe, ProbeKind

PROBE_KEYS = {"name", "kind", "query", "required"}
GUARD_KEYS = {"os", "arch", "compiler", "min_compiler_version"}
OPTION_KEYS = GUARD_KEYS | {
    "name", "state", "type", "depends_on", "when", "probe", "mandatory", "default",
    "cases", "compile_flags", "link_flags", "definitions", "description",
}
PATH_KEYS = {"name", "parent", "suffix", "default", "runtime", "description"}
ARTIFACT_KEYS = {"directory", "header", "buildflags", "summary"}
IDENTIFIER = re.compile(r"[A-Za-z_][A-Za-z0-9_]*")


@dataclass(frozen=True)
class Declaration:
    project: str
    version: str
    probes: dict = field(default_factory=dict)
    options: tuple = ()
    paths: tuple = ()
    compiler: Optional[str] = None
    timeout: float = DEFAULT_TIMEOUT
    out_dir: str = "."
    layout: ArtifactLayout = ArtifactLayout()


def _as_tuple(value):
    if value is None:
        return ()
    if isinstance(value, (list, tuple)):
        return tuple(str(v) for v in value)
    return (str(value),)


def _check_keys(table, allowed, entity):
    if not isinstance(table, dict):
        raise InvalidDeclaration(entity, "expected a table")
    unknown = sorted(set(table) - allowed)
    if unknown:
        raise InvalidDeclaration(entity, f"unknown key(s): {', '.join(unknown)}")


def _require_name(table, what, index):
    name = table.get("name")
    if not name or not isinstance(name, str):
        raise InvalidDeclaration(f"{what}[{index}]", "missing 'name'")
    return name


def _check_identifier(name):
    if not IDENTIFIER.fullmatch(name):
        raise InvalidDeclaration(name, "names must be valid C identifiers (letters, digits and _)")


def parse_guard(table, entity="option"):
    arch = table.get("arch")
    if arch is not None:
        try:
            re.compile(arch)
        except re.error as e:
            raise InvalidDeclaration(entity, f"arch '{arch}' is not a valid pattern: {e}")
    min_version = table.get("min_compiler_version")
    if min_version is not None:
        try:
            Version(str(min_version))
        except InvalidVersion:
            raise InvalidDeclaration(entity, f"min_compiler_version '{min_version}' is not a version")
        min_version = str(min_version)
    return PlatformGuard(
        os=_as_tuple(table.get("os")),
        arch=arch,
        compiler=_as_tuple(table.get("compiler")),
        min_compiler_version=min_version,
    )


def parse_probe(table, name=None, entity="probe"):
    _check_keys(table, PROBE_KEYS, entity)
    name = name or table.get("name") or entity
    if "query" not in table:
        raise InvalidDeclaration(name, "probe needs a 'query'")
    return Probe(
        name=name,
        kind=ProbeKind.parse(table.get("kind", ""), entity=name),
        query=str(table["query"]),
        required=bool(table.get("required", False)),
    )


def parse_option(table, index, probes):
    name = _require_name(table, "option", index)
    _check_identifier(name)
    _check_keys(table, OPTION_KEYS, name)

    value_type = table.get("type", "bool")
    if value_type not in ("bool", "string"):
        raise InvalidDeclaration(name, f"type must be bool or string, not '{value_type}'")
    if value_type == "bool" and "default" in table:
        raise InvalidDeclaration(name, "boolean options use 'state', not 'default'")

    probe = table.get("probe")
    if isinstance(probe, dict):
        if name in probes:
            raise DuplicateDeclaration(name, "inline probe clashes with a declared probe")
        probes[name] = parse_probe(probe, name=name, entity=name)
        probe = name

    when = table.get("when", {})
    if not isinstance(when, dict):
        raise InvalidDeclaration(name, "'when' must be a table of NAME = value")

    cases = []
    for case in table.get("cases", []):
        _check_keys(case, GUARD_KEYS | {"value"}, name)
        if "value" not in case:
            raise InvalidDeclaration(name, "every case needs a 'value'")
        cases.append(Case(parse_guard(case, entity=name), str(case["value"])))

    default = table.get("default")
    return Option(
        name=name,
        state=OptionState.parse(table.get("state", "auto"), entity=name),
        value_type=value_type,
        depends_on=_as_tuple(table.get("depends_on")),
        when=tuple((k, tuple(v) if isinstance(v, list) else v) for k, v in when.items()),
        guard=parse_guard(table, entity=name),
        probe=probe,
        mandatory=bool(table.get("mandatory", False)),
        default=None if default is None else str(default),
        cases=tuple(cases),
        compile_flags=_as_tuple(table.get("compile_flags")),
        link_flags=_as_tuple(table.get("link_flags")),
        definitions=_as_tuple(table.get("definitions")),
        description=table.get("description", ""),
    )


def parse_path(table, index):
    name = _require_name(table, "path", index)
    _check_identifier(name)
    _check_keys(table, PATH_KEYS, name)
    if not table.get("parent") and table.get("default") is None:
        raise InvalidDeclaration(name, "path needs a 'parent' or a 'default'")
    if table.get("runtime"):
        _check_identifier(table["runtime"])
    return PathVariable(
        name=name,
        parent=table.get("parent"),
        suffix=str(table.get("suffix", "")),
        default=table.get("default"),
        runtime=table.get("runtime"),
        description=table.get("description", ""),
    )


def _claim(seen, name, what):
    if name in seen:
        raise DuplicateDeclaration(name, f"{what} name already declared as {seen[name]}")
    seen[name] = what


def parse_declaration(conf):
    project = conf.get("project", {})
    toolchain = conf.get("toolchain", {})
    artifacts = conf.get("artifacts", {})
    _check_keys(artifacts, ARTIFACT_KEYS, "artifacts")

    probes = {}
    for index, table in enumerate(conf.get("probe", [])):
        name = _require_name(table, "probe", index)
        probe = parse_probe(table, name=name, entity=name)
        if probe.name in probes:
            raise DuplicateDeclaration(probe.name, "probe declared twice")
        probes[probe.name] = probe

    options = [parse_option(t, i, probes) for i, t in enumerate(conf.get("option", []))]
    paths = [parse_path(t, i) for i, t in enumerate(conf.get("path", []))]

    seen = {name: "a platform root" for name in ROOT_NAMES}
    for option in options:
        _claim(seen, option.name, "option")
    for path in paths:
        _claim(seen, path.name, "path")
        if path.runtime:
            _claim(seen, path.runtime, "runtime path")

    defaults = ArtifactLayout()
    return Declaration(
        project=str(project.get("name", "project")),
        version=str(project.get("version", "0.0.0")),
        probes=probes,
        options=tuple(options),
        paths=tuple(paths),
        compiler=toolchain.get("compiler"),
        timeout=float(toolchain.get("timeout", DEFAULT_TIMEOUT)),
        out_dir=artifacts.get("directory", "."),
        layout=ArtifactLayout(
            header=artifacts.get("header", defaults.header),
            buildflags=artifacts.get("buildflags", defaults.buildflags),
            summary=artifacts.get("summary", defaults.summary),
        ),
    )
