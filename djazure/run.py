import itertools
import json
import subprocess
import sys
import threading
import time
from typing import Any, Dict, List, Optional

from loguru import logger as log

from djazure.errors import AzureCLIError, PreconditionError
from util.cmd import CMD

# Flags whose following value must never reach the logs
SENSITIVE_FLAGS = {"--admin-password", "--account-key", "--settings", "--password", "--value"}


def mask(cmd: List[str]) -> str:
    """
    Render a command for logging with the values of sensitive flags replaced by '***'.
    `--settings` takes many values, so everything after it up to the next flag is masked.
    """
    out = []
    flag = None
    for part in cmd:
        if part.startswith("--"):
            flag = part if part in SENSITIVE_FLAGS else None
            out.append(part)
            continue
        out.append("***" if flag else part)
        if flag != "--settings":
            flag = None
    return " ".join(out)


def run_az(
        cmd: List[str],
        *,
        capture_output: bool = True,
        ignore_errors: Optional[Dict[str, List[str]]] = None,
        json_override: Optional[bool] = None,
) -> Any:
    """
    Run one Azure CLI command and return its parsed JSON output.

    All defined sub-functions:
        _resolve_command_path
        _should_expect_json
        _start_spinner
        _execute_with_spinner
        _process_success
        _handle_subprocess_error

    Logic:
        1. Resolve path to the 'az' executable (PreconditionError if absent).
        2. Determine if JSON output is expected and append '--output json'.
        3. Execute the subprocess, with a spinner on interactive terminals.
        4. On success, parse JSON (a '--query' returning a scalar yields that scalar).
        5. On failure, return {} if stderr matches an ignore_errors rule,
           otherwise raise AzureCLIError. Nothing is retried.

    Args:
        cmd: Full command, starting with "az".
        capture_output: Capture stdout/stderr (required for JSON parsing).
        ignore_errors: {label: [stderr substrings]} that are tolerated.
        json_override: Force JSON handling on or off.

    Returns:
        The parsed JSON value, or {} when there is no output or the error was ignored.
    """

    def _resolve_command_path(original_cmd: List[str]) -> List[str]:
        resolved = CMD.which(original_cmd[0])
        if not resolved:
            raise PreconditionError(
                f"'{original_cmd[0]}' executable not found on PATH. Install the Azure CLI first."
            )
        return [resolved] + original_cmd[1:]

    def _should_expect_json(cmd_list: List[str]) -> bool:
        if json_override is not None:
            return json_override
        if not capture_output:
            return False
        return "--output" not in cmd_list and "-o" not in cmd_list

    def _start_spinner(stop_event: threading.Event) -> None:
        spin = itertools.cycle("|/-\\")
        while not stop_event.is_set():
            sys.stderr.write(f"\r[run_az] {next(spin)} Running Azure CLI...")
            sys.stderr.flush()
            time.sleep(0.1)
        sys.stderr.write("\r" + " " * 40 + "\r")
        sys.stderr.flush()

    def _execute_with_spinner(cmd_list: List[str]) -> str:
        if not sys.stderr.isatty():
            return CMD.run(cmd_list, capture_output=capture_output, check=True, text=True).stdout or ""

        stop_event = threading.Event()
        spinner_thread = threading.Thread(target=_start_spinner, args=(stop_event,), daemon=True)
        spinner_thread.start()
        try:
            completed = CMD.run(cmd_list, capture_output=capture_output, check=True, text=True)
        finally:
            stop_event.set()
            spinner_thread.join()
        return completed.stdout or ""

    def _process_success(raw_stdout: str, expect_flag: bool) -> Any:
        if not raw_stdout.strip():
            return {}
        if not expect_flag:
            return raw_stdout.strip()
        try:
            return json.loads(raw_stdout.strip())
        except json.JSONDecodeError as jde:
            log.warning("[run_az] Expected JSON but got invalid output: {}", jde)
            return raw_stdout.strip()

    def _handle_subprocess_error(stderr_text: str, returncode: int, cmd_list: List[str]) -> Any:
        lower_err = stderr_text.lower()
        if ignore_errors:
            for key, substrings in ignore_errors.items():
                for substr in substrings:
                    if substr.lower() in lower_err:
                        log.info("[run_az] Ignoring '{}' error for '{}'. Continuing.", substr, key)
                        return {}
        log.error("[run_az] Command failed (exit {}): {}", returncode, mask(cmd_list))
        raise AzureCLIError(cmd_list, returncode, stderr_text)

    # --- Logic begins here ---
    resolved_cmd = _resolve_command_path(cmd)
    expect_json = _should_expect_json(resolved_cmd)
    full_cmd = resolved_cmd + (["--output", "json"] if expect_json else [])
    log.debug("[run_az] Running: {}", mask(["az"] + full_cmd[1:]))

    try:
        stdout = _execute_with_spinner(full_cmd)
    except subprocess.CalledProcessError as ex:
        return _handle_subprocess_error(ex.stderr or "", ex.returncode, ["az"] + full_cmd[1:])
    return _process_success(stdout, expect_json)
