"""
Provisioning Sequencer.

Runs an ordered list of steps against Azure. Each step carries an explicit
failure policy:

    MANDATORY    the first failure aborts the run; no later step is attempted.
    BEST_EFFORT  the failure is logged and recorded, and the run continues.

Only the three Key Vault secret writes are best-effort. Steps may carry a
compensating action; compensations run in reverse order on abort only when
rollback is requested. By default a failed run leaves the resources it already
created in place.
"""
import enum
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, List, Optional

from loguru import logger as log

from context.logger import log_func
from djazure.artifacts import Artifacts
from djazure.errors import ProvisionError, StepFailedError
from djazure.plan import ProvisioningPlan
from djazure.preflight import Preflight
from djazure.resources import Database, Insights, ResourceGroup, Storage
from djazure.state import ProvisionState
from djazure.summary import Summary
from djazure.vault import DB_PASSWORD_NAME, SECRET_KEY_NAME, STORAGE_KEY_NAME, Secrets, VaultSetup
from djazure.webapp import AppService, WebAppConfig

StepFn = Callable[[ProvisioningPlan, ProvisionState], None]
# A compensation may return False to report that it left the resource alone
CompensateFn = Callable[[ProvisioningPlan, ProvisionState], Optional[bool]]


class StepPolicy(enum.Enum):
    MANDATORY = "mandatory"
    BEST_EFFORT = "best-effort"


@dataclass(frozen=True)
class Step:
    name: str
    run: StepFn
    policy: StepPolicy = StepPolicy.MANDATORY
    compensate: Optional[CompensateFn] = None


def default_steps(log_level: str = "INFO") -> List[Step]:
    """The full provisioning sequence, in order."""

    def preflight(plan: ProvisioningPlan, state: ProvisionState) -> None:
        state.account = Preflight.run(plan.secret_backend)

    def app_settings(plan: ProvisioningPlan, state: ProvisionState) -> None:
        WebAppConfig.apply_settings(plan, state, log_level)

    def hostname(plan: ProvisioningPlan, state: ProvisionState) -> None:
        WebAppConfig.fetch_hostname(plan, state)

    return [
        Step("preflight", preflight),
        Step("resource-group", ResourceGroup.create, compensate=ResourceGroup.delete),
        Step("storage", Storage.create, compensate=Storage.delete),
        Step("database", Database.create, compensate=Database.delete),
        Step("key-vault", VaultSetup.create, compensate=VaultSetup.delete),
        Step(f"secret:{SECRET_KEY_NAME}", Secrets.writer(SECRET_KEY_NAME), StepPolicy.BEST_EFFORT),
        Step(f"secret:{DB_PASSWORD_NAME}", Secrets.writer(DB_PASSWORD_NAME), StepPolicy.BEST_EFFORT),
        Step(f"secret:{STORAGE_KEY_NAME}", Secrets.writer(STORAGE_KEY_NAME), StepPolicy.BEST_EFFORT),
        Step("insights", Insights.create, compensate=Insights.delete),
        Step("app-service", AppService.create, compensate=AppService.delete),
        Step("app-settings", app_settings),
        Step("runtime-config", WebAppConfig.configure_runtime),
        Step("managed-identity", WebAppConfig.assign_identity),
        Step("https-only", WebAppConfig.enforce_https),
        Step("artifacts", Artifacts.step(log_level)),
        Step("hostname", hostname),
    ]


class Sequencer:
    def __init__(self, steps: Optional[List[Step]] = None, rollback_on_failure: bool = False):
        self.steps = steps if steps is not None else default_steps()
        self.rollback_on_failure = rollback_on_failure

    def run(self, plan: ProvisioningPlan, state: ProvisionState) -> ProvisionState:
        """
        Execute every step in order.

        Raises:
            StepFailedError: When a mandatory step fails. Later steps are not attempted.
        """
        total = len(self.steps)
        for index, step in enumerate(self.steps, start=1):
            with log_func(step.name):
                log.info("[{}/{}] Starting", index, total)
                try:
                    step.run(plan, state)
                except Exception as e:
                    if step.policy is StepPolicy.BEST_EFFORT:
                        log.warning("[{}/{}] Failed, continuing: {}", index, total, e)
                        state.best_effort_failures.append(step.name)
                        continue
                    log.error("[{}/{}] Failed: {}", index, total, e)
                    rolled_back = self.compensate(plan, state) if self.rollback_on_failure else []
                    created = [n for n in state.completed if n != "preflight"]
                    if not self.rollback_on_failure and created:
                        log.warning("Left in place (no rollback): {}", ", ".join(created))
                    raise StepFailedError(step.name, e, rolled_back) from e
                state.completed.append(step.name)
                log.success("[{}/{}] Done", index, total)
        return state

    def compensate(self, plan: ProvisioningPlan, state: ProvisionState) -> List[str]:
        """
        Undo completed steps in reverse order. A failing compensation is logged
        and the remaining ones still run.
        """
        by_name = {s.name: s for s in self.steps}
        undone = []
        for name in reversed(state.completed):
            step = by_name.get(name)
            if step is None or step.compensate is None:
                continue
            with log_func(f"rollback:{name}"):
                try:
                    if step.compensate(plan, state) is False:
                        log.info("Nothing to roll back")
                        continue
                    undone.append(name)
                    log.warning("Rolled back")
                except Exception as e:
                    log.error("Rollback failed: {}", e)
        return undone


def provision(
        plan: ProvisioningPlan,
        *,
        output_dir: Optional[Path] = None,
        summary_file: str = "azure-deployment-summary.txt",
        rollback_on_failure: bool = False,
        log_level: str = "INFO",
        steps: Optional[List[Step]] = None,
) -> Summary:
    """
    Provision every resource in `plan`, write the artifacts, then print and persist the summary.

    Raises:
        ProvisionError: StepFailedError for a failed mandatory step.
    """
    state = ProvisionState(output_dir=Path(output_dir or "."))
    sequencer = Sequencer(steps if steps is not None else default_steps(log_level), rollback_on_failure)

    with log_func("provision"):
        log.info("Provisioning {} ({}) in {}", plan.project, plan.environment, plan.region)
        sequencer.run(plan, state)
        summary = Summary.from_run(plan, state).emit(state.output_dir / summary_file)
        if state.best_effort_failures:
            log.warning("Finished with {} secret(s) missing from {}: {}", len(state.best_effort_failures),
                        plan.key_vault, ", ".join(state.best_effort_failures))
        log.success("Deployment ready at {}", summary.url)
    return summary


__all__ = ["Step", "StepPolicy", "Sequencer", "default_steps", "provision", "ProvisionError"]
