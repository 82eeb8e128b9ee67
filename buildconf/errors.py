class ConfigurationError(Exception):
    """A fatal problem that aborts the configuration pass.

    Every fatal error names the entity (option, path, probe or file) it is
    about and a human-readable reason, so the CLI can print a single line.
    """

    kind = "configuration error"

    def __init__(self, entity, reason):
        super().__init__(f"{entity}: {reason}")
        self.entity = entity
        self.reason = reason


class MandatoryUnsupported(ConfigurationError):
    kind = "mandatory option unsupported"


class CycleDetected(ConfigurationError):
    kind = "dependency cycle"

    def __init__(self, names, what="option"):
        self.names = tuple(names)
        super().__init__(
            ", ".join(self.names),
            f"{what} dependency cycle: {' -> '.join(self.names + self.names[:1])}",
        )


class DuplicateDeclaration(ConfigurationError):
    kind = "duplicate declaration"


class ExternalProbeUnavailable(ConfigurationError):
    kind = "required command not found"


class UndeclaredReference(ConfigurationError):
    kind = "undeclared reference"


class InvalidDeclaration(ConfigurationError):
    kind = "invalid declaration"
