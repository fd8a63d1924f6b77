import platform
import subprocess
from pathlib import Path
from shutil import which as std_which
from typing import List, Optional

from loguru import logger as log

# The Windows MSI installs az as a batch file outside PATH on some machines
AZ_WINDOWS_LOCATIONS = (
    r"C:\Program Files (x86)\Microsoft SDKs\Azure\CLI2\wbin\az.cmd",
    r"C:\Program Files\Microsoft SDKs\Azure\CLI2\wbin\az.cmd",
)


def _is_windows() -> bool:
    return platform.system() == "Windows"


class CMD:
    """
    Thin layer over subprocess for the external tools djazure drives (az, openssl).
    Commands are always argument lists and never go through a shell.
    """

    @staticmethod
    def run(
            cmd: List[str],
            *,
            capture_output: bool = True,
            check: bool = True,
            text: bool = True,
    ) -> subprocess.CompletedProcess:
        """
        Run `cmd` and return the completed process.

        A batch file (az.cmd on Windows) cannot be executed directly without a shell,
        so it is handed to cmd.exe.

        Raises:
            subprocess.CalledProcessError: When `check` is set and the exit code is non-zero.
        """
        if not isinstance(cmd, list) or not cmd:
            raise TypeError(f"[CMD.run] expected a non-empty argument list, got {cmd!r}")

        argv = [str(part) for part in cmd]
        if _is_windows() and argv[0].lower().endswith((".cmd", ".bat")):
            argv = ["cmd.exe", "/c", *argv]

        try:
            return subprocess.run(argv, capture_output=capture_output, check=check, text=text)
        except subprocess.CalledProcessError as exc:
            log.debug("[CMD.run] {} exited {}", Path(argv[0]).name, exc.returncode)
            raise

    @staticmethod
    def which(binary: str) -> Optional[str]:
        """Full path to `binary`, or None. Knows where the Azure CLI hides on Windows."""
        found = std_which(binary)
        if found or binary.lower() != "az" or not _is_windows():
            return found
        for candidate in AZ_WINDOWS_LOCATIONS:
            if Path(candidate).exists():
                log.debug("[CMD.which] az found outside PATH at {}", candidate)
                return candidate
        return None
