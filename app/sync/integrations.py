# app/sync/integrations.py
import logging
from dataclasses import dataclass, field
from typing import Dict, FrozenSet, Iterable, Optional, Set

from sqlalchemy import select
from sqlalchemy.orm import Session

from app.core.exceptions import IntegrationNotFoundError
from app.models.integration import IntegrationConfig

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SyncIntegration:
    """A handler able to sync internal objects with an external system"""
    name: str
    supported_objects: FrozenSet[str] = frozenset()

    def supports(self, object_type: str) -> bool:
        return object_type in self.supported_objects


@dataclass
class IntegrationRegistry:
    """Process-wide registry of integration handlers"""
    _integrations: Dict[str, SyncIntegration] = field(default_factory=dict)

    def register(self, name: str, supported_objects: Iterable[str]) -> SyncIntegration:
        integration = SyncIntegration(name, frozenset(supported_objects))
        self._integrations[name] = integration
        logger.info(f"Registered sync integration {name} for {sorted(integration.supported_objects)}")
        return integration

    def unregister(self, name: str) -> None:
        self._integrations.pop(name, None)

    def get(self, name: str) -> SyncIntegration:
        try:
            return self._integrations[name]
        except KeyError:
            raise IntegrationNotFoundError(name)

    def names(self) -> Set[str]:
        return set(self._integrations)


integration_registry = IntegrationRegistry()


class SyncIntegrationsHelper:
    """Answers which integrations currently sync which object types.

    Configuration is read from the database on every call, so enabling or
    disabling an integration takes effect on the next save.
    """

    def __init__(self, db: Session, registry: IntegrationRegistry = integration_registry):
        self.db = db
        self.registry = registry

    def _published_configs(self):
        return self.db.scalars(
            select(IntegrationConfig).where(
                IntegrationConfig.is_published.is_(True),
                IntegrationConfig.sync_enabled.is_(True),
            ).order_by(IntegrationConfig.name)
        )

    def get_enabled_integrations(self, object_type: Optional[str] = None) -> Set[str]:
        """Names of integrations with sync on, optionally only those syncing object_type.

        Raises IntegrationNotFoundError when a published configuration names an
        integration with no registered handler.
        """
        enabled = set()
        for config in self._published_configs():
            integration = self.registry.get(config.name)
            if object_type is not None:
                if not (config.syncs_object(object_type) and integration.supports(object_type)):
                    continue
            enabled.add(config.name)
        return enabled

    def has_object_sync_enabled(self, object_type: str) -> bool:
        return bool(self.get_enabled_integrations(object_type))
