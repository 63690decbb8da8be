# app/models/tracking.py
import copy
from typing import Any, Dict, List, Optional

from sqlalchemy import inspect


class ChangeTrackingMixin:
    """Expose pending column changes of a mapped object in the CRM change format.

    The change format is a dict:
        {"fields": {column: [old, new]}, "<attribute key>": [old, new], ...}
    Profile columns listed in __tracked_fields__ land under "fields"; columns in
    __tracked_attributes__ land under their own key (e.g. owner_id -> "owner").
    Changes not backed by a column (do-not-contact status) are added with
    add_extra_change().
    """
    __tracked_fields__: tuple = ()
    __tracked_attributes__: Dict[str, str] = {}

    def _column_change(self, name: str) -> Optional[List[Any]]:
        history = inspect(self).attrs[name].history
        if not history.has_changes():
            return None
        old = history.deleted[0] if history.deleted else None
        new = history.added[0] if history.added else None
        if old == new:
            return None
        return [old, new]

    def _collect_changes(self) -> Dict[str, Any]:
        changes: Dict[str, Any] = {}

        for name in self.__tracked_fields__:
            change = self._column_change(name)
            if change is not None:
                changes.setdefault("fields", {})[name] = change

        for name, key in self.__tracked_attributes__.items():
            change = self._column_change(name)
            if change is not None:
                changes[key] = change

        for key, value in getattr(self, "_extra_changes", {}).items():
            changes[key] = copy.deepcopy(value)

        return changes

    def add_extra_change(self, key: str, sub_key: str, value: Any) -> None:
        extra = self.__dict__.setdefault("_extra_changes", {})
        extra.setdefault(key, {})[sub_key] = value

    def snapshot_changes(self) -> Dict[str, Any]:
        """Freeze the pending changes so they survive the flush; call before commit"""
        self._past_changes = self._collect_changes()
        self._extra_changes = {}
        return self._past_changes

    def get_changes(self, include_past: bool = False) -> Dict[str, Any]:
        changes: Dict[str, Any] = {}
        if include_past:
            changes = copy.deepcopy(getattr(self, "_past_changes", {}))

        for key, value in self._collect_changes().items():
            if isinstance(value, dict) and isinstance(changes.get(key), dict):
                changes[key].update(value)
            else:
                changes[key] = value

        return changes
