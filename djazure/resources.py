from loguru import logger as log

from djazure.errors import ProvisionError
from djazure.plan import MEDIA_CONTAINER, STATIC_CONTAINER, ProvisioningPlan
from djazure.run import run_az
from djazure.state import ProvisionState

# Deletes treat an already-missing resource as done
NOT_FOUND = {"not_found": ["could not be found", "was not found", "resourcenotfound", "does not exist"]}


class ResourceGroup:
    """
    Region-scoped container for everything else. Its name is stable across reruns, so
    it may predate this run; only a group this run created is ever rolled back.
    """

    @staticmethod
    def exists(name: str) -> bool:
        return run_az(["az", "group", "exists", "--name", name]) is True

    @staticmethod
    def create(plan: ProvisioningPlan, state: ProvisionState) -> None:
        existed = ResourceGroup.exists(plan.resource_group)
        if existed:
            log.info("Resource group {} already exists; reusing it", plan.resource_group)
        else:
            log.info("Creating resource group {} in {}", plan.resource_group, plan.region)
        run_az([
            "az", "group", "create",
            "--name", plan.resource_group,
            "--location", plan.region,
            *plan.tag_args(),
        ])
        state.created_resource_group = not existed

    @staticmethod
    def delete(plan: ProvisioningPlan, state: ProvisionState) -> bool:
        """Delete the group only if this run created it. Returns False when it was left alone."""
        if not state.created_resource_group:
            log.warning("Resource group {} existed before this run; not deleting it", plan.resource_group)
            return False
        ResourceGroup.delete_by_name(plan.resource_group)
        return True

    @staticmethod
    def delete_by_name(name: str, wait: bool = False) -> None:
        log.warning("Deleting resource group {}", name)
        cmd = ["az", "group", "delete", "--name", name, "--yes"]
        if not wait:
            cmd.append("--no-wait")
        run_az(cmd, ignore_errors=NOT_FOUND)


class Storage:
    """
    StorageV2 account with two public-read blob containers for Django static and media files.
    """

    CONTAINERS = (STATIC_CONTAINER, MEDIA_CONTAINER)

    @staticmethod
    def create(plan: ProvisioningPlan, state: ProvisionState) -> None:
        log.info("Creating storage account {}", plan.storage_account)
        run_az([
            "az", "storage", "account", "create",
            "--name", plan.storage_account,
            "--resource-group", plan.resource_group,
            "--location", plan.region,
            "--sku", plan.storage_sku,
            "--kind", "StorageV2",
            "--allow-blob-public-access", "true",
            *plan.tag_args(),
        ])

        key = run_az([
            "az", "storage", "account", "keys", "list",
            "--account-name", plan.storage_account,
            "--resource-group", plan.resource_group,
            "--query", "[0].value",
        ])
        if not isinstance(key, str) or not key:
            raise ProvisionError(f"Could not read an access key for storage account '{plan.storage_account}'")
        state.storage_key = key

        for container in Storage.CONTAINERS:
            log.info("Creating blob container '{}'", container)
            run_az([
                "az", "storage", "container", "create",
                "--name", container,
                "--account-name", plan.storage_account,
                "--account-key", state.storage_key,
                "--public-access", "blob",
            ])

    @staticmethod
    def delete(plan: ProvisioningPlan, state: ProvisionState) -> None:
        run_az([
            "az", "storage", "account", "delete",
            "--name", plan.storage_account,
            "--resource-group", plan.resource_group,
            "--yes",
        ], ignore_errors=NOT_FOUND)


class Database:
    """
    PostgreSQL flexible server, the application database and the Azure-services firewall rule.
    """

    # 0.0.0.0-0.0.0.0 is Azure's sentinel for "allow Azure services"
    AZURE_SERVICES_RULE = "AllowAzureServices"

    @staticmethod
    def create(plan: ProvisioningPlan, state: ProvisionState) -> None:
        log.info("Creating PostgreSQL flexible server {} ({}, {})", plan.db_server, plan.db_sku, plan.db_tier)
        run_az([
            "az", "postgres", "flexible-server", "create",
            "--name", plan.db_server,
            "--resource-group", plan.resource_group,
            "--location", plan.region,
            "--admin-user", plan.db_admin_user,
            "--admin-password", plan.db_admin_password,
            "--sku-name", plan.db_sku,
            "--tier", plan.db_tier,
            "--storage-size", str(plan.db_storage_gb),
            "--version", plan.db_version,
            "--public-access", "None",
            "--yes",
            *plan.tag_args(),
        ])

        log.info("Creating database {}", plan.db_name)
        run_az([
            "az", "postgres", "flexible-server", "db", "create",
            "--resource-group", plan.resource_group,
            "--server-name", plan.db_server,
            "--database-name", plan.db_name,
        ])

        log.info("Allowing Azure services through the database firewall")
        run_az([
            "az", "postgres", "flexible-server", "firewall-rule", "create",
            "--resource-group", plan.resource_group,
            "--name", plan.db_server,
            "--rule-name", Database.AZURE_SERVICES_RULE,
            "--start-ip-address", "0.0.0.0",
            "--end-ip-address", "0.0.0.0",
        ])

    @staticmethod
    def delete(plan: ProvisioningPlan, state: ProvisionState) -> None:
        run_az([
            "az", "postgres", "flexible-server", "delete",
            "--name", plan.db_server,
            "--resource-group", plan.resource_group,
            "--yes",
        ], ignore_errors=NOT_FOUND)


class Insights:
    """
    Application Insights component; its instrumentation key is handed to the web app.
    """

    @staticmethod
    def create(plan: ProvisioningPlan, state: ProvisionState) -> None:
        log.info("Creating Application Insights component {}", plan.app_insights)
        component = run_az([
            "az", "monitor", "app-insights", "component", "create",
            "--app", plan.app_insights,
            "--location", plan.region,
            "--resource-group", plan.resource_group,
            "--application-type", "web",
            *plan.tag_args(),
        ])
        key = component.get("instrumentationKey") if isinstance(component, dict) else None
        if not key:
            key = run_az([
                "az", "monitor", "app-insights", "component", "show",
                "--app", plan.app_insights,
                "--resource-group", plan.resource_group,
                "--query", "instrumentationKey",
            ])
        if not isinstance(key, str) or not key:
            raise ProvisionError(f"No instrumentation key returned for '{plan.app_insights}'")
        state.instrumentation_key = key

    @staticmethod
    def delete(plan: ProvisioningPlan, state: ProvisionState) -> None:
        run_az([
            "az", "monitor", "app-insights", "component", "delete",
            "--app", plan.app_insights,
            "--resource-group", plan.resource_group,
        ], ignore_errors=NOT_FOUND)
