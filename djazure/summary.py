from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, List, Optional

import click
from loguru import logger as log

from djazure.plan import MEDIA_CONTAINER, STATIC_CONTAINER, ProvisioningPlan
from djazure.state import ProvisionState

RULE = "=" * 64


@dataclass(frozen=True)
class Summary:
    """
    Outcome of a successful run. `render()` is both what gets printed and what gets
    written to disk. It contains the database password in clear text.
    """
    project: str
    environment: str
    region: str
    resources: Dict[str, str]
    hostname: str
    db_admin_user: str
    db_admin_password: str = field(repr=False)
    connection_string: str = field(repr=False)
    artifacts: List[str] = field(default_factory=list)
    best_effort_failures: List[str] = field(default_factory=list)
    created_at: str = ""
    path: Optional[Path] = None

    @staticmethod
    def from_run(plan: ProvisioningPlan, state: ProvisionState) -> "Summary":
        return Summary(
            project=plan.project,
            environment=plan.environment,
            region=plan.region,
            resources=plan.names(),
            hostname=state.hostname or plan.default_hostname,
            db_admin_user=plan.db_admin_user,
            db_admin_password=plan.db_admin_password,
            connection_string=plan.connection_string,
            artifacts=[str(p) for p in state.artifacts.values()],
            best_effort_failures=list(state.best_effort_failures),
            created_at=datetime.now(timezone.utc).strftime("%Y-%m-%d %H:%M:%S UTC"),
        )

    @property
    def url(self) -> str:
        return f"https://{self.hostname}"

    def render(self) -> str:
        width = max(len(k) for k in self.resources) + 2
        lines = [
            RULE,
            f" Azure deployment summary: {self.project} ({self.environment})",
            RULE,
            f"Created:  {self.created_at}",
            f"Region:   {self.region}",
            "",
            "Resources",
            "---------",
            *[f"{(k + ':').ljust(width)} {v}" for k, v in self.resources.items()],
            "",
            "Web application",
            "---------------",
            f"Hostname: {self.hostname}",
            f"URL:      {self.url}",
            "",
            "Storage containers",
            "------------------",
            f"{STATIC_CONTAINER}, {MEDIA_CONTAINER}",
            "",
            "Database credentials",
            "--------------------",
            f"Admin user:        {self.db_admin_user}",
            f"Admin password:    {self.db_admin_password}",
            f"Connection string: {self.connection_string}",
        ]
        if self.artifacts:
            lines += ["", "Generated files", "---------------", *self.artifacts]
        if self.best_effort_failures:
            lines += ["", "Warnings", "--------",
                      *[f"Secret not stored: {name}" for name in self.best_effort_failures]]
        lines += ["", "Keep this file private: it contains credentials in clear text.", RULE]
        return "\n".join(lines) + "\n"

    def write(self, path: Path) -> Path:
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(self.render(), encoding="utf-8")
        log.warning("Summary written to {} (contains plaintext credentials)", path)
        return path

    def emit(self, path: Path) -> "Summary":
        """Print to stdout and persist the identical text."""
        click.echo(self.render(), nl=False)
        written = self.write(path)
        return replace(self, path=written)
