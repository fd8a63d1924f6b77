from typing import Dict, List, Optional

from azure.core.exceptions import AzureError
from azure.identity import DefaultAzureCredential
from azure.keyvault.secrets import SecretClient
from loguru import logger as log

from djazure.errors import ProvisionError, SecretWriteError
from djazure.plan import ProvisioningPlan
from djazure.resources import NOT_FOUND
from djazure.run import run_az
from djazure.state import ProvisionState
from util import sanitization as sanny

SECRET_KEY_NAME = "django-secret-key"
DB_PASSWORD_NAME = "database-password"
STORAGE_KEY_NAME = "storage-account-key"

OWNER_SECRET_PERMISSIONS = ["get", "list", "set", "delete"]
APP_SECRET_PERMISSIONS = ["get", "list"]


class VaultSetup:
    """
    Creates the Key Vault with access-policy (not RBAC) authorization and grants
    secret permissions to the caller and, later, to the web app's managed identity.
    """

    @staticmethod
    def vault_uri(plan: ProvisioningPlan) -> str:
        return f"https://{plan.key_vault}.vault.azure.net/"

    @staticmethod
    def create(plan: ProvisioningPlan, state: ProvisionState) -> None:
        log.info("Creating Key Vault {}", plan.key_vault)
        run_az([
            "az", "keyvault", "create",
            "--name", plan.key_vault,
            "--resource-group", plan.resource_group,
            "--location", plan.region,
            "--enable-rbac-authorization", "false",
            *plan.tag_args(),
        ])
        VaultSetup.grant_caller(plan, state)

    @staticmethod
    def grant_caller(plan: ProvisioningPlan, state: ProvisionState) -> None:
        """
        Give the signed-in identity full secret management on the vault.
        Users are addressed by UPN, service principals by app id.
        """
        caller = state.caller
        name = caller.get("name")
        if not name:
            raise ProvisionError("Signed-in identity is unknown; cannot grant Key Vault access.")
        flag = "--spn" if caller.get("type") == "servicePrincipal" else "--upn"
        log.info("Granting {} secret permissions on {} to {}", "/".join(OWNER_SECRET_PERMISSIONS),
                 plan.key_vault, name)
        VaultSetup.set_policy(plan, [flag, name], OWNER_SECRET_PERMISSIONS)

    @staticmethod
    def grant_identity(plan: ProvisioningPlan, object_id: str) -> None:
        log.info("Granting {} secret permissions on {} to principal {}", "/".join(APP_SECRET_PERMISSIONS),
                 plan.key_vault, object_id)
        VaultSetup.set_policy(plan, ["--object-id", object_id], APP_SECRET_PERMISSIONS)

    @staticmethod
    def set_policy(plan: ProvisioningPlan, principal: List[str], permissions: List[str]) -> None:
        run_az([
            "az", "keyvault", "set-policy",
            "--name", plan.key_vault,
            "--resource-group", plan.resource_group,
            *principal,
            "--secret-permissions", *permissions,
        ])

    @staticmethod
    def delete(plan: ProvisioningPlan, state: ProvisionState) -> None:
        run_az([
            "az", "keyvault", "delete",
            "--name", plan.key_vault,
            "--resource-group", plan.resource_group,
        ], ignore_errors=NOT_FOUND)


class Secrets:
    """
    Writes secrets into the plan's Key Vault through the data-plane SDK.
    """

    @staticmethod
    def reference(plan: ProvisioningPlan, secret_name: str) -> str:
        """App Service Key Vault reference, resolved by the web app's managed identity."""
        return f"@Microsoft.KeyVault(VaultName={plan.key_vault};SecretName={sanny.purge(secret_name)})"

    @staticmethod
    def client(plan: ProvisioningPlan, state: ProvisionState) -> SecretClient:
        """One SecretClient (and one credential chain) per run, shared by every write."""
        if state.secret_client is None:
            state.secret_client = SecretClient(
                vault_url=VaultSetup.vault_uri(plan), credential=DefaultAzureCredential()
            )
        return state.secret_client

    @staticmethod
    def store(plan: ProvisioningPlan, name: str, value: str, client: Optional[SecretClient] = None) -> None:
        """
        Persist one secret. Overwrites any existing version. Without `client`, a
        throwaway one is built for this call.

        Raises:
            SecretWriteError: On any failure talking to the vault.
        """
        secret_name = sanny.purge(name)
        if not value:
            raise SecretWriteError(secret_name, ValueError("empty value"))
        try:
            if client is None:
                client = SecretClient(vault_url=VaultSetup.vault_uri(plan), credential=DefaultAzureCredential())
            client.set_secret(secret_name, value)
        except AzureError as e:
            raise SecretWriteError(secret_name, e) from e
        log.info("Stored secret '{}' in {}", secret_name, plan.key_vault)

    @staticmethod
    def values(plan: ProvisioningPlan, state: ProvisionState) -> Dict[str, str]:
        return {
            SECRET_KEY_NAME: plan.django_secret_key,
            DB_PASSWORD_NAME: plan.db_admin_password,
            STORAGE_KEY_NAME: state.storage_key or "",
        }

    @staticmethod
    def writer(name: str):
        """Step function storing the single secret `name`."""

        def _store(plan: ProvisioningPlan, state: ProvisionState) -> None:
            Secrets.store(plan, name, Secrets.values(plan, state)[name], Secrets.client(plan, state))

        _store.__name__ = f"store_{name.replace('-', '_')}"
        return _store
