"""
Provisioning Plan: every resource name and parameter for one run, computed once.

Names embed a timestamp suffix so that reruns never collide on globally unique
names (web app, database server, storage account, key vault). Storage account
and key vault names also carry a short random salt. The resource group name is
stable across reruns and may already exist. The plan is not persisted; a
rerun creates a fresh set of resources.
"""
import secrets
import time
from dataclasses import dataclass, field
from typing import Dict, Optional

from loguru import logger as log

from context.config import Settings
from djazure.passwords import Passwords
from util import sanitization as sanny

POSTGRES_PORT = 5432
STATIC_CONTAINER = "static"
MEDIA_CONTAINER = "media"


@dataclass(frozen=True)
class ProvisioningPlan:
    project: str
    environment: str
    region: str
    timestamp: int

    resource_group: str
    web_app: str
    app_service_plan: str
    db_server: str
    db_name: str
    storage_account: str
    key_vault: str
    app_insights: str

    app_service_sku: str
    db_sku: str
    db_tier: str
    db_storage_gb: int
    db_version: str
    storage_sku: str
    python_version: str
    django_settings_module: str
    wsgi_module: str
    secret_backend: str

    db_admin_user: str
    db_admin_password: str = field(repr=False)
    django_secret_key: str = field(repr=False)

    tags: Dict[str, str] = field(default_factory=dict)

    @staticmethod
    def build(settings: Settings, now: Optional[float] = None, salt: Optional[str] = None) -> "ProvisioningPlan":
        """
        Compute names, tags and secrets for one run.

        Args:
            settings: Validated settings.
            now: Epoch seconds to derive unique suffixes from (defaults to time.time()).
            salt: Random characters appended to the short storage and vault suffix
                (defaults to 4 random hex digits).

        Raises:
            NamingError: If a name cannot satisfy its resource rules.
            PreconditionError: If the configured secret generator is unavailable.
        """
        ts = str(int(time.time() if now is None else now))
        # 6 timestamp digits wrap every ~11 days; the salt keeps short names apart
        short = ts[-6:] + (secrets.token_hex(2) if salt is None else salt)
        project, env = settings.project, settings.environment

        plan = ProvisioningPlan(
            project=project,
            environment=env,
            region=settings.region,
            timestamp=int(ts),
            resource_group=sanny.fit(sanny.RESOURCE_GROUP, project, env, "rg"),
            web_app=sanny.fit(sanny.WEB_APP, project, env, suffix=ts),
            app_service_plan=sanny.fit(sanny.APP_SERVICE_PLAN, project, env, "plan"),
            db_server=sanny.fit(sanny.POSTGRES_SERVER, project, env, "db", suffix=ts),
            db_name=sanny.fit(sanny.POSTGRES_DATABASE, project, "db"),
            storage_account=sanny.fit(sanny.STORAGE_ACCOUNT, project, env, suffix=short),
            key_vault=sanny.fit(sanny.KEY_VAULT, project, "kv", suffix=short),
            app_insights=sanny.fit(sanny.APP_INSIGHTS, project, env, "insights"),
            app_service_sku=settings.app_service_sku,
            db_sku=settings.db_sku,
            db_tier=settings.db_tier,
            db_storage_gb=settings.db_storage_gb,
            db_version=settings.db_version,
            storage_sku=settings.storage_sku,
            python_version=settings.python_version,
            django_settings_module=settings.django_settings_module,
            wsgi_module=settings.wsgi_module,
            secret_backend=settings.secret_backend,
            db_admin_user=settings.db_admin_user,
            db_admin_password=Passwords.generate_password(settings.secret_backend),
            django_secret_key=Passwords.generate_secret_key(settings.secret_backend),
            tags={
                "project": project,
                "environment": env,
                "created-by": settings.created_by,
            },
        )
        log.debug("[ProvisioningPlan] Built plan for {}/{} (suffix {}, {})", project, env, ts, short)
        return plan

    @property
    def db_host(self) -> str:
        return f"{self.db_server}.postgres.database.azure.com"

    @property
    def connection_string(self) -> str:
        return (
            f"postgresql://{self.db_admin_user}:{self.db_admin_password}"
            f"@{self.db_host}:{POSTGRES_PORT}/{self.db_name}?sslmode=require"
        )

    @property
    def default_hostname(self) -> str:
        """Hostname App Service assigns by default; the real one is read back after creation."""
        return f"{self.web_app}.azurewebsites.net"

    def tag_args(self) -> list:
        """Tags as `az ... --tags k=v k=v` arguments."""
        return ["--tags"] + [f"{k}={v}" for k, v in self.tags.items()]

    def names(self) -> Dict[str, str]:
        return {
            "Resource group": self.resource_group,
            "Web app": self.web_app,
            "App Service plan": self.app_service_plan,
            "PostgreSQL server": self.db_server,
            "Database": self.db_name,
            "Storage account": self.storage_account,
            "Key Vault": self.key_vault,
            "Application Insights": self.app_insights,
        }
