from typing import Dict

from loguru import logger as log

from djazure.errors import ProvisionError
from djazure.plan import MEDIA_CONTAINER, STATIC_CONTAINER, ProvisioningPlan
from djazure.resources import NOT_FOUND
from djazure.run import run_az
from djazure.state import ProvisionState
from djazure.vault import SECRET_KEY_NAME, STORAGE_KEY_NAME, Secrets, VaultSetup

STARTUP_FILE = "startup.sh"


class AppService:
    """
    Linux App Service plan and the Python web app bound to it.
    """

    @staticmethod
    def create(plan: ProvisioningPlan, state: ProvisionState) -> None:
        log.info("Creating App Service plan {} ({}, Linux)", plan.app_service_plan, plan.app_service_sku)
        run_az([
            "az", "appservice", "plan", "create",
            "--name", plan.app_service_plan,
            "--resource-group", plan.resource_group,
            "--location", plan.region,
            "--sku", plan.app_service_sku,
            "--is-linux",
            *plan.tag_args(),
        ])

        log.info("Creating web app {} (PYTHON:{})", plan.web_app, plan.python_version)
        run_az([
            "az", "webapp", "create",
            "--name", plan.web_app,
            "--resource-group", plan.resource_group,
            "--plan", plan.app_service_plan,
            "--runtime", f"PYTHON:{plan.python_version}",
            *plan.tag_args(),
        ])

    @staticmethod
    def delete(plan: ProvisioningPlan, state: ProvisionState) -> None:
        run_az([
            "az", "webapp", "delete",
            "--name", plan.web_app,
            "--resource-group", plan.resource_group,
        ], ignore_errors=NOT_FOUND)
        run_az([
            "az", "appservice", "plan", "delete",
            "--name", plan.app_service_plan,
            "--resource-group", plan.resource_group,
            "--yes",
        ], ignore_errors=NOT_FOUND)


class WebAppConfig:
    """
    Application settings, startup command, logging, managed identity and HTTPS enforcement.
    """

    @staticmethod
    def app_settings(plan: ProvisioningPlan, state: ProvisionState, log_level: str = "INFO") -> Dict[str, str]:
        """
        Environment for the Django app. The secret key and storage key are Key Vault
        references; everything else is passed as a plain value.
        """
        return {
            "DJANGO_SETTINGS_MODULE": plan.django_settings_module,
            "DJANGO_SECRET_KEY": Secrets.reference(plan, SECRET_KEY_NAME),
            "AZURE_STORAGE_ACCOUNT_KEY": Secrets.reference(plan, STORAGE_KEY_NAME),
            "DATABASE_URL": plan.connection_string,
            "AZURE_STORAGE_ACCOUNT_NAME": plan.storage_account,
            "AZURE_STATIC_CONTAINER": STATIC_CONTAINER,
            "AZURE_MEDIA_CONTAINER": MEDIA_CONTAINER,
            "APPINSIGHTS_INSTRUMENTATIONKEY": state.instrumentation_key or "",
            "DEBUG": "False",
            "ALLOWED_HOSTS": plan.default_hostname,
            "DJANGO_LOG_LEVEL": log_level,
            "SCM_DO_BUILD_DURING_DEPLOYMENT": "true",
        }

    @staticmethod
    def apply_settings(plan: ProvisioningPlan, state: ProvisionState, log_level: str = "INFO") -> None:
        settings = WebAppConfig.app_settings(plan, state, log_level)
        log.info("Applying {} app settings to {}", len(settings), plan.web_app)
        run_az([
            "az", "webapp", "config", "appsettings", "set",
            "--name", plan.web_app,
            "--resource-group", plan.resource_group,
            "--settings", *[f"{k}={v}" for k, v in settings.items()],
        ])

    @staticmethod
    def configure_runtime(plan: ProvisioningPlan, state: ProvisionState) -> None:
        log.info("Setting startup command and enabling filesystem logging")
        run_az([
            "az", "webapp", "config", "set",
            "--name", plan.web_app,
            "--resource-group", plan.resource_group,
            "--startup-file", STARTUP_FILE,
        ])
        run_az([
            "az", "webapp", "log", "config",
            "--name", plan.web_app,
            "--resource-group", plan.resource_group,
            "--application-logging", "filesystem",
            "--detailed-error-messages", "true",
            "--failed-request-tracing", "true",
            "--web-server-logging", "filesystem",
            "--level", "information",
        ])

    @staticmethod
    def assign_identity(plan: ProvisioningPlan, state: ProvisionState) -> None:
        log.info("Assigning system-managed identity to {}", plan.web_app)
        identity = run_az([
            "az", "webapp", "identity", "assign",
            "--name", plan.web_app,
            "--resource-group", plan.resource_group,
        ])
        principal_id = identity.get("principalId") if isinstance(identity, dict) else None
        if not principal_id:
            raise ProvisionError(f"No principalId returned for the identity of '{plan.web_app}'")
        state.principal_id = principal_id
        VaultSetup.grant_identity(plan, principal_id)

    @staticmethod
    def enforce_https(plan: ProvisioningPlan, state: ProvisionState) -> None:
        log.info("Enforcing HTTPS-only traffic on {}", plan.web_app)
        run_az([
            "az", "webapp", "update",
            "--name", plan.web_app,
            "--resource-group", plan.resource_group,
            "--https-only", "true",
        ])

    @staticmethod
    def fetch_hostname(plan: ProvisioningPlan, state: ProvisionState) -> str:
        hostname = run_az([
            "az", "webapp", "show",
            "--name", plan.web_app,
            "--resource-group", plan.resource_group,
            "--query", "defaultHostName",
        ])
        if not isinstance(hostname, str) or not hostname:
            raise ProvisionError(f"Could not read the hostname of '{plan.web_app}'")
        state.hostname = hostname
        return hostname
