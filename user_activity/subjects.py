"""
Subject records: the persistent entities an activity is about.

Anything implementing ActivitySubject can be logged. Django model
instances are adapted automatically by as_subject(); models that inherit
TrackedModel also report which fields their last save changed.
"""

from typing import Any, Protocol, runtime_checkable

from django.db import models


@runtime_checkable
class ActivitySubject(Protocol):
    """Capabilities ActivityLogger needs from a subject record."""

    def activity_type_name(self) -> str:
        """Simple type name used in messages, e.g. "Order"."""
        ...

    def activity_type(self) -> str:
        """Qualified type name stored in the record, e.g. "shop.Order"."""
        ...

    def activity_key(self) -> Any:
        ...

    def activity_attributes(self) -> dict:
        ...

    def activity_fillable(self) -> list:
        """Names of the attributes callers are allowed to write."""
        ...

    def activity_changes(self) -> dict:
        """Changed attributes as {field: {"from": old, "to": new}}."""
        ...


class ModelSubject:
    """
    ActivitySubject adapter for a Django model instance.

    The writable attribute list comes from an ``activity_fillable`` class
    attribute on the model when it declares one, otherwise from its
    editable concrete fields minus the primary key.
    """

    def __init__(self, instance: models.Model):
        self.instance = instance

    def activity_type_name(self) -> str:
        return type(self.instance).__name__

    def activity_type(self) -> str:
        return self.instance._meta.label

    def activity_key(self) -> Any:
        return self.instance.pk

    def activity_attributes(self) -> dict:
        return {
            field.attname: getattr(self.instance, field.attname)
            for field in self.instance._meta.concrete_fields
        }

    def activity_fillable(self) -> list:
        declared = getattr(self.instance, "activity_fillable", None)
        if declared is not None:
            return list(declared)
        return [
            field.attname
            for field in self.instance._meta.concrete_fields
            if field.editable and not field.primary_key
        ]

    def activity_changes(self) -> dict:
        get_changes = getattr(self.instance, "get_changes", None)
        return get_changes() if callable(get_changes) else {}


def as_subject(obj) -> ActivitySubject:
    """
    Return obj as an ActivitySubject.

    Raises:
        TypeError: If obj is neither a subject nor a Django model instance.
    """
    if isinstance(obj, ActivitySubject):
        return obj
    if isinstance(obj, models.Model):
        return ModelSubject(obj)
    raise TypeError(f"{type(obj).__name__} is not an activity subject or a Django model instance.")


def _diff(before: dict, after: dict) -> dict:
    return {
        name: {"from": before.get(name), "to": value}
        for name, value in after.items()
        if name not in before or before[name] != value
    }


class TrackedModel(models.Model):
    """
    Abstract model that remembers the field values it was loaded with.

    After each save, get_changes() returns {field: {"from", "to"}} for the
    fields that save actually changed. A save that inserts the row records
    no changes.
    """

    class Meta:
        abstract = True

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self._original = {}
        self._changes = {}

    @classmethod
    def from_db(cls, db, field_names, values):
        instance = super().from_db(db, field_names, values)
        instance._original = instance._loaded_values()
        return instance

    def _loaded_values(self) -> dict:
        # Deferred fields are skipped so reading them never hits the database.
        return {
            field.attname: self.__dict__[field.attname]
            for field in self._meta.concrete_fields
            if field.attname in self.__dict__
        }

    def get_dirty(self) -> dict:
        """Fields whose current value differs from the last loaded/saved one."""
        return _diff(self._original, self._loaded_values())

    def get_changes(self) -> dict:
        return dict(self._changes)

    def save(self, *args, **kwargs):
        inserting = self._state.adding
        update_fields = kwargs.get("update_fields")

        super().save(*args, **kwargs)

        current = self._loaded_values()
        if update_fields is not None:
            saved = {self._meta.get_field(name).attname for name in update_fields}
            current = {name: value for name, value in current.items() if name in saved}

        self._changes = {} if inserting else _diff(self._original, current)
        self._original = {**self._original, **current}

    def refresh_from_db(self, *args, **kwargs):
        super().refresh_from_db(*args, **kwargs)
        self._original = {**self._original, **self._loaded_values()}
