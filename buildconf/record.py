import re
from dataclasses import dataclass, field
from types import MappingProxyType

SUMMARY_PATTERN = re.compile(r"^(WITH_|HAVE_)")


@dataclass(frozen=True)
class ConfigurationRecord:
    """Everything one pass resolved, in declaration order. Read-only."""

    project: str
    version: str
    entries: MappingProxyType = field(default_factory=lambda: MappingProxyType({}))
    compile_flags: tuple = ()
    link_flags: tuple = ()
    definitions: tuple = ()

    def __getitem__(self, name):
        return self.entries[name]

    def __contains__(self, name):
        return name in self.entries

    def __iter__(self):
        return iter(self.entries)

    def __len__(self):
        return len(self.entries)

    def items(self):
        return self.entries.items()

    def booleans(self):
        return [(name, value) for name, value in self.entries.items() if isinstance(value, bool)]

    def strings(self):
        return [(name, value) for name, value in self.entries.items() if not isinstance(value, bool)]

    @property
    def summary(self):
        """WITH_* and HAVE_* flags as one ``NAME=VALUE`` line for diagnostics."""
        return " ".join(
            f"{name}={'ON' if value else 'OFF'}"
            for name, value in self.booleans()
            if SUMMARY_PATTERN.match(name)
        )

    def as_dict(self):
        return {
            "project": self.project,
            "version": self.version,
            "entries": dict(self.entries),
            "compile_flags": list(self.compile_flags),
            "link_flags": list(self.link_flags),
            "definitions": list(self.definitions),
        }


def aggregate(project, version, resolved_options, resolved_paths):
    """
    Build the ConfigurationRecord.

    Flags and definitions contributed by enabled options are collected per
    kind in declaration order; they are only joined into strings when an
    artifact is rendered.
    """
    entries = {}
    compile_flags, link_flags, definitions = [], [], []

    for resolved in resolved_options:
        entries[resolved.name] = resolved.value
        if resolved.value is True:
            _extend_unique(compile_flags, resolved.option.compile_flags)
            _extend_unique(link_flags, resolved.option.link_flags)
            _extend_unique(definitions, resolved.option.definitions)

    for path in resolved_paths:
        entries[path.name] = path.value

    return ConfigurationRecord(
        project=project,
        version=version,
        entries=MappingProxyType(entries),
        compile_flags=tuple(compile_flags),
        link_flags=tuple(link_flags),
        definitions=tuple(definitions),
    )


def _extend_unique(target, items):
    for item in items:
        if item and item not in target:
            target.append(item)
