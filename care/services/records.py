"""
Save/delete wrappers that map database failures onto API errors.

A write that fails because the row vanished underneath it becomes
``NotFound``; any other database failure becomes ``PersistenceFailure``.
Nothing is retried.
"""
import logging

from django.db import DatabaseError, transaction
from django.db.models import ProtectedError
from rest_framework.exceptions import NotFound

from care.exceptions import PersistenceFailure

logger = logging.getLogger(__name__)


def _label(instance) -> str:
    return f'{type(instance).__name__} {instance.pk}'


def _still_exists(instance) -> bool:
    return bool(instance.pk) and type(instance).objects.filter(pk=instance.pk).exists()


def persist(instance, *, update_fields=None):
    adding = instance._state.adding
    try:
        with transaction.atomic():
            instance.save(update_fields=update_fields)
    except DatabaseError:
        logger.exception('saving %s failed', _label(instance))
        if not adding and not _still_exists(instance):
            raise NotFound(f'{type(instance).__name__} not found')
        raise PersistenceFailure()
    return instance


def remove(instance) -> None:
    label = _label(instance)
    try:
        with transaction.atomic():
            instance.delete()
    except ProtectedError:
        raise PersistenceFailure(f'{label} is referenced by other records and cannot be deleted.')
    except DatabaseError:
        logger.exception('deleting %s failed', label)
        if not _still_exists(instance):
            raise NotFound(f'{type(instance).__name__} not found')
        raise PersistenceFailure()
    logger.info('deleted %s', label)
