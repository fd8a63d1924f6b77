from typing import List, Optional

from util.sanitization import NamingError


class ProvisionError(RuntimeError):
    """Base class for every failure raised while provisioning."""


class PreconditionError(ProvisionError):
    """A local precondition (tool, login, secret generator) is not met."""


class AzureCLIError(ProvisionError):
    """An `az` invocation exited non-zero."""

    def __init__(self, cmd: List[str], returncode: int, stderr: str = ""):
        self.cmd = cmd
        self.returncode = returncode
        self.stderr = (stderr or "").strip()
        detail = self.stderr.splitlines()[-1] if self.stderr else "no error output"
        super().__init__(f"'{' '.join(cmd[:4])} ...' failed (exit {returncode}): {detail}")


class SecretWriteError(ProvisionError):
    """Writing one secret into the Key Vault failed."""

    def __init__(self, secret_name: str, cause: Exception):
        self.secret_name = secret_name
        super().__init__(f"Could not store secret '{secret_name}': {cause}")


class StepFailedError(ProvisionError):
    """A mandatory step failed and the sequence was aborted."""

    def __init__(self, step: str, cause: Exception, rolled_back: Optional[List[str]] = None):
        self.step = step
        self.rolled_back = rolled_back or []
        super().__init__(f"Step '{step}' failed: {cause}")


class ConfigError(ValueError):
    """Invalid settings or unreadable config file."""


__all__ = [
    "ProvisionError",
    "PreconditionError",
    "AzureCLIError",
    "SecretWriteError",
    "StepFailedError",
    "ConfigError",
    "NamingError",
]
