# app/sync/hooks.py
import logging
from typing import Dict, List

from app.core.exceptions import InvalidValueError

logger = logging.getLogger(__name__)


class FieldChangeHook:
    """Called before field changes of an object are recorded for an integration.

    Raise InvalidValueError from before_field_changes() to stop the changes
    from being recorded for that integration.
    """

    def before_field_changes(self, integration: str, obj) -> None:
        raise NotImplementedError


class FieldChangeHooks:
    """Ordered hook lists per object type"""

    def __init__(self):
        self._hooks: Dict[str, List[FieldChangeHook]] = {}

    def register(self, object_type: str, hook: FieldChangeHook) -> None:
        self._hooks.setdefault(object_type, []).append(hook)

    def unregister(self, object_type: str, hook: FieldChangeHook) -> None:
        if hook in self._hooks.get(object_type, []):
            self._hooks[object_type].remove(hook)

    def has_hooks(self, object_type: str) -> bool:
        return bool(self._hooks.get(object_type))

    def before_field_changes(self, integration: str, obj) -> None:
        """Run hooks in registration order; the first rejection propagates"""
        for hook in self._hooks.get(obj.object_type, []):
            try:
                hook.before_field_changes(integration, obj)
            except InvalidValueError as e:
                logger.info(f"{type(hook).__name__} rejected {obj.object_type}:{obj.id} for {integration}: {e}")
                raise


field_change_hooks = FieldChangeHooks()
