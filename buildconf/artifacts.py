"""Render a ConfigurationRecord into the files the rest of the build reads.

Rendering is pure: the same record always produces the same bytes. Writing
happens in two phases (temporary files first, then renames) so a failure
never leaves a half-written set of artifacts behind.
"""
import errno
import os
import re
import tempfile
from dataclasses import dataclass
from typing import List

from .cli_logger import logger


@dataclass(frozen=True)
class GeneratedArtifact:
    path: str
    content: str


@dataclass(frozen=True)
class ArtifactLayout:
    header: str = "config.h"
    buildflags: str = "buildflags.h"
    summary: str = "flags.txt"


def _c_string(value):
    escaped = str(value).replace("\\", "\\\\").replace('"', '\\"').replace("\n", "\\n")
    return f'"{escaped}"'


def _guard_name(path):
    return re.sub(r"[^A-Za-z0-9]", "_", os.path.basename(path)).upper()


def _banner(record):
    return f"/* Generated by buildconf for {record.project} {record.version}. Do not edit. */"


def render_header(record, path="config.h"):
    """Feature header: enabled booleans are defined, disabled ones are absent."""
    guard = _guard_name(path)
    lines = [_banner(record), f"#ifndef {guard}", f"#define {guard}", ""]
    for name, value in record.booleans():
        if value:
            lines.append(f"#define {name} 1")
    strings = record.strings()
    if strings:
        lines.append("")
        for name, value in strings:
            lines.append(f"#define {name} {_c_string(value)}")
    lines += ["", f"#endif /* {guard} */", ""]
    return "\n".join(lines)


def render_buildflags(record, path="buildflags.h"):
    guard = _guard_name(path)
    c_flags = list(record.compile_flags) + [f"-D{d}" for d in record.definitions]
    return "\n".join([
        _banner(record),
        f"#ifndef {guard}",
        f"#define {guard}",
        "",
        f"#define BUILD_CONFIG {_c_string(record.summary)}",
        f"#define BUILD_C_FLAGS {_c_string(' '.join(c_flags))}",
        f"#define BUILD_LINKER_FLAGS {_c_string(' '.join(record.link_flags))}",
        "",
        f"#endif /* {guard} */",
        "",
    ])


def render_summary(record):
    """One NAME=true|false line per boolean, enabled or not."""
    return "".join(f"{name}={'true' if value else 'false'}\n" for name, value in record.booleans())


def generate(record, layout=ArtifactLayout()) -> List[GeneratedArtifact]:
    return [
        GeneratedArtifact(layout.header, render_header(record, layout.header)),
        GeneratedArtifact(layout.buildflags, render_buildflags(record, layout.buildflags)),
        GeneratedArtifact(layout.summary, render_summary(record)),
    ]


def _remove_staged(staged):
    for tmp_path, _ in staged:
        if os.path.exists(tmp_path):
            os.remove(tmp_path)


def _roll_back(replaced):
    for target, backup in reversed(replaced):
        if backup:
            os.replace(backup, target)
        elif os.path.exists(target):
            os.remove(target)


def write_artifacts(artifacts, out_dir="."):
    """
    Write every artifact under ``out_dir`` or none of them.

    Contents are staged next to their targets first. Existing targets are
    moved aside while the staged files are renamed into place, and put back
    if any rename fails.
    """
    staged = []
    try:
        for artifact in artifacts:
            target = os.path.join(out_dir, artifact.path)
            if os.path.isdir(target):
                raise IsADirectoryError(errno.EISDIR, "Cannot replace a directory", target)
            target_dir = os.path.dirname(os.path.abspath(target))
            os.makedirs(target_dir, exist_ok=True)
            fd, tmp_path = tempfile.mkstemp(prefix=".buildconf-", dir=target_dir)
            staged.append((tmp_path, target))
            with os.fdopen(fd, "w", newline="\n") as f:
                f.write(artifact.content)
    except OSError:
        _remove_staged(staged)
        raise

    replaced = []
    try:
        for tmp_path, target in staged:
            backup = None
            if os.path.isfile(target):
                backup = tmp_path + ".orig"
                os.replace(target, backup)
            replaced.append((target, backup))
            os.replace(tmp_path, target)
    except OSError:
        _roll_back(replaced)
        _remove_staged(staged)
        raise

    written = []
    for target, backup in replaced:
        if backup:
            os.remove(backup)
        logger.step_info(f"-- Generated {target}", indent=2)
        written.append(target)
    return written
