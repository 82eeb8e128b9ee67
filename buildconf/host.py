import platform
import re
from dataclasses import dataclass
from typing import Optional

from packaging.version import InvalidVersion, Version

from .cli_logger import logger
from .probes import Probe, ProbeKind

UNKNOWN = "unknown"

# Checked in order; the GNU pattern is the loosest.
_COMPILER_BANNERS = [
    ("Clang", re.compile(r"clang version (\d+(?:\.\d+)*)", re.IGNORECASE)),
    ("MSVC", re.compile(r"Optimizing Compiler Version (\d+(?:\.\d+)*)")),
    ("GNU", re.compile(r"(?:gcc|g\+\+|cc)\s.*?(\d+\.\d+(?:\.\d+)?)", re.IGNORECASE)),
]


@dataclass(frozen=True)
class HostFacts:
    os: str
    arch: str
    compiler: str = UNKNOWN
    compiler_version: Optional[str] = None

    @property
    def parsed_compiler_version(self):
        if not self.compiler_version:
            return None
        try:
            return Version(self.compiler_version)
        except InvalidVersion:
            return None

    def describe(self):
        version = f" {self.compiler_version}" if self.compiler_version else ""
        return f"{self.os}/{self.arch} ({self.compiler}{version})"


def parse_compiler_banner(banner):
    """Return (family, version) from a ``cc --version`` banner."""
    if not banner:
        return UNKNOWN, None
    for family, pattern in _COMPILER_BANNERS:
        match = pattern.search(banner)
        if match:
            return family, match.group(1)
    if "Free Software Foundation" in banner:
        return "GNU", None
    return UNKNOWN, None


def detect_host(runner, os_name=None, arch=None, compiler=None):
    """
    Collect the host facts guards are evaluated against.

    Anything passed explicitly wins over detection, so cross builds can
    describe their target instead of the machine running the pass.
    """
    os_name = os_name or platform.system() or UNKNOWN
    arch = arch or platform.machine() or UNKNOWN

    version = None
    if not compiler:
        outcome = runner.run(Probe(
            name="compiler_banner",
            kind=ProbeKind.EXTERNAL_COMMAND,
            query=f"{runner.compiler} --version",
        ))
        compiler, version = parse_compiler_banner(outcome.detail if outcome.supported else None)

    facts = HostFacts(os=os_name, arch=arch, compiler=compiler, compiler_version=version)
    logger.info(f"Host: {facts.describe()}")
    return facts
