import os
from pathlib import Path

# ─── Root Directory ──────────────────────────────────────────────
GLOBAL_ROOT = Path(os.getcwd()).resolve()

# ─── Config and Log Paths ────────────────────────────────────────
GLOBAL_CFG_FILE = GLOBAL_ROOT / "djazure.toml"
GLOBAL_LOG_DIR = GLOBAL_ROOT / "logs"

# ─── Settings Defaults ───────────────────────────────────────────
SETTINGS_DEFAULT = {
    "project": "myapp",
    "environment": "production",
    "region": "West Europe",
    "app_service_sku": "B1",
    "db_sku": "Standard_B1ms",
    "db_tier": "Burstable",
    "db_storage_gb": 32,
    "db_version": "14",
    "db_admin_user": "djangoadmin",
    "storage_sku": "Standard_LRS",
    "python_version": "3.11",
    "django_settings_module": "config.settings.production",
    "wsgi_module": "config.wsgi:application",
    "created_by": "djazure",
    "secret_backend": "python",
    "output_dir": ".",
    "summary_file": "azure-deployment-summary.txt",
    "rollback_on_failure": False,
    "log_level": "INFO",
}

SECRET_BACKENDS = ("python", "openssl")
LOG_LEVELS = ("TRACE", "DEBUG", "INFO", "SUCCESS", "WARNING", "ERROR", "CRITICAL")
