"""
IntegrationRegistry: ordered configuration of project management targets.

The job manager only reads it; connecting and disconnecting happens from the
integrations settings surface.
"""

import threading
from typing import Dict, Iterable, List, Optional

from engine.errors import IntegrationError
from engine.models import IntegrationTarget

ASANA = "Asana"
MONDAY = "Monday.com"
DEFAULT_TARGETS = (ASANA, MONDAY)


class IntegrationRegistry:
    def __init__(self, targets: Optional[Iterable[IntegrationTarget]] = None):
        if targets is None:
            targets = [IntegrationTarget(name=name) for name in DEFAULT_TARGETS]
        # insertion order is the notification order
        self._targets: Dict[str, IntegrationTarget] = {}
        for target in targets:
            if target.name in self._targets:
                raise IntegrationError(f"Duplicate integration target: {target.name}")
            self._targets[target.name] = target
        self.lock = threading.Lock()

    def targets(self) -> List[IntegrationTarget]:
        with self.lock:
            return list(self._targets.values())

    def connected_targets(self) -> List[IntegrationTarget]:
        return [t for t in self.targets() if t.accepts_notifications]

    def get(self, name: str) -> IntegrationTarget:
        with self.lock:
            target = self._targets.get(name)
        if target is None:
            raise IntegrationError(f"Unknown integration target: {name}")
        return target

    def connect(self, name: str, project_id: str) -> IntegrationTarget:
        project_id = (project_id or "").strip()
        if not project_id:
            raise IntegrationError(f"A project id is required to connect {name}")
        return self._replace(name, connected=True, project_id=project_id)

    def disconnect(self, name: str) -> IntegrationTarget:
        return self._replace(name, connected=False, project_id="")

    def _replace(self, name: str, **changes) -> IntegrationTarget:
        with self.lock:
            current = self._targets.get(name)
            if current is None:
                raise IntegrationError(f"Unknown integration target: {name}")
            updated = current.model_copy(update=changes)
            self._targets = {**self._targets, name: updated}
        return updated
