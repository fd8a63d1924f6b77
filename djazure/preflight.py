from typing import Dict

from loguru import logger as log

from djazure.errors import AzureCLIError, PreconditionError
from djazure.passwords import Passwords
from djazure.run import run_az
from util.cmd import CMD


class Preflight:
    """
    Local precondition checks. Nothing here mutates Azure state.
    """

    @staticmethod
    def ensure_azure_cli() -> str:
        path = CMD.which("az")
        if not path:
            raise PreconditionError(
                "Azure CLI ('az') not found on PATH. "
                "Install it from https://learn.microsoft.com/cli/azure/install-azure-cli"
            )
        log.debug("[Preflight] Azure CLI found at {}", path)
        return path

    @staticmethod
    def ensure_logged_in() -> Dict:
        """
        Return the `az account show` payload for the signed-in identity.

        Raises:
            PreconditionError: If no account is active.
        """
        try:
            account = run_az(["az", "account", "show"])
        except AzureCLIError as e:
            raise PreconditionError(f"Not logged in to Azure. Run 'az login' first. ({e.stderr or e})") from e
        if not isinstance(account, dict) or not account.get("id"):
            raise PreconditionError("Not logged in to Azure. Run 'az login' first.")
        user = account.get("user") or {}
        log.info("[Preflight] Logged in as {} ({}) on subscription {}",
                 user.get("name", "<unknown>"), user.get("type", "user"), account.get("name", account["id"]))
        return account

    @staticmethod
    def ensure_secret_generator(backend: str) -> None:
        if not Passwords.generator_available(backend):
            raise PreconditionError(
                f"Secret generator '{backend}' is not available"
                + (" ('openssl' not found on PATH)." if backend == "openssl" else ".")
            )

    @staticmethod
    def run(secret_backend: str) -> Dict:
        """
        Run every check in order and return the signed-in account.
        """
        Preflight.ensure_azure_cli()
        account = Preflight.ensure_logged_in()
        Preflight.ensure_secret_generator(secret_backend)
        log.success("[Preflight] All prerequisites met.")
        return account
