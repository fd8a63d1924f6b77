from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional


@dataclass
class ProvisionState:
    """
    Values discovered while the sequence runs. The plan itself is never mutated;
    anything learned from Azure lands here.
    """
    output_dir: Path = Path(".")
    account: Dict = field(default_factory=dict)
    storage_key: Optional[str] = field(default=None, repr=False)
    instrumentation_key: Optional[str] = None
    principal_id: Optional[str] = None
    created_resource_group: bool = False
    secret_client: Optional[Any] = field(default=None, repr=False)
    hostname: Optional[str] = None
    artifacts: Dict[str, Path] = field(default_factory=dict)
    completed: List[str] = field(default_factory=list)
    best_effort_failures: List[str] = field(default_factory=list)

    @property
    def caller(self) -> Dict:
        """The signed-in identity: {'name': ..., 'type': 'user' | 'servicePrincipal'}."""
        return self.account.get("user") or {}
