import stat
from pathlib import Path
from typing import Dict, Optional

from jinja2 import Environment, PackageLoader, StrictUndefined
from loguru import logger as log

from djazure.plan import MEDIA_CONTAINER, POSTGRES_PORT, STATIC_CONTAINER, ProvisioningPlan
from djazure.state import ProvisionState
from djazure.vault import VaultSetup

# output file name -> template name
ARTIFACTS = {
    "requirements.txt": "requirements.txt.j2",
    ".env.template": "env.template.j2",
    "startup.sh": "startup.sh.j2",
    "web.config": "web.config.j2",
}
EXECUTABLE = {"startup.sh"}


class Artifacts:
    """
    Renders the static files a Django deployment on App Service needs.
    """

    _env: Optional[Environment] = None

    @staticmethod
    def environment() -> Environment:
        if Artifacts._env is None:
            Artifacts._env = Environment(
                loader=PackageLoader("djazure", "templates"),
                keep_trailing_newline=True,
                undefined=StrictUndefined,
                autoescape=False,
            )
        return Artifacts._env

    @staticmethod
    def render(name: str, plan: ProvisioningPlan, instrumentation_key: Optional[str] = None,
               log_level: str = "INFO") -> str:
        template = Artifacts.environment().get_template(ARTIFACTS[name])
        return template.render(
            plan=plan,
            port=POSTGRES_PORT,
            static_container=STATIC_CONTAINER,
            media_container=MEDIA_CONTAINER,
            instrumentation_key=instrumentation_key,
            vault_uri=VaultSetup.vault_uri(plan),
            log_level=log_level,
        )

    @staticmethod
    def write_all(plan: ProvisioningPlan, output_dir: Path, instrumentation_key: Optional[str] = None,
                  log_level: str = "INFO") -> Dict[str, Path]:
        """
        Write every artifact into `output_dir`, overwriting existing files.

        Returns:
            dict: file name -> written path
        """
        output_dir = Path(output_dir)
        output_dir.mkdir(parents=True, exist_ok=True)

        written = {}
        for name in ARTIFACTS:
            path = output_dir / name
            # newline="\n" keeps startup.sh runnable when written on Windows
            with path.open("w", encoding="utf-8", newline="\n") as f:
                f.write(Artifacts.render(name, plan, instrumentation_key, log_level))
            if name in EXECUTABLE:
                path.chmod(path.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
            log.info("Wrote {}", path)
            written[name] = path
        return written

    @staticmethod
    def step(log_level: str = "INFO"):
        def write_artifacts(plan: ProvisioningPlan, state: ProvisionState) -> None:
            state.artifacts.update(
                Artifacts.write_all(plan, state.output_dir, state.instrumentation_key, log_level)
            )
        return write_artifacts
