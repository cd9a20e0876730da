"""
Flux de changements : notifie les abonnés des enregistrements persistés.

    unsubscribe = subscribe(SaleRequest, on_change)
    on_change([("created", "a1b2..."), ("updated", "c3d4...")])

Collecte dans after_flush (instances nouvelles / modifiées / supprimées des
types surveillés), livraison une fois par after_commit, oubli sur after_rollback.
Un abonné qui lève une exception est journalisé, les autres sont quand même servis.
"""

from __future__ import annotations

import logging
import threading
from collections import defaultdict
from typing import Callable

from sqlalchemy import event, inspect
from sqlalchemy.orm import Session

logger = logging.getLogger(__name__)

Change = tuple[str, str]
OnChange = Callable[[list[Change]], None]

_PENDING_KEY = "change_feed.pending"

_lock = threading.Lock()
_subscribers: dict[type, list[OnChange]] = defaultdict(list)


def _record_id(obj) -> str:
    # dans after_flush les objets nouveaux n'ont pas encore de clé d'identité
    pk = inspect(obj).mapper.primary_key_from_instance(obj)
    return ":".join(str(part) for part in pk)


def subscribe(model: type, on_change: OnChange) -> Callable[[], None]:
    with _lock:
        _subscribers[model].append(on_change)

    def unsubscribe() -> None:
        with _lock:
            if on_change in _subscribers.get(model, []):
                _subscribers[model].remove(on_change)

    return unsubscribe


def _watched(obj) -> type | None:
    with _lock:
        for model in _subscribers:
            if _subscribers[model] and isinstance(obj, model):
                return model
    return None


@event.listens_for(Session, "after_flush")
def _collect(session: Session, flush_context) -> None:
    pending: dict[type, list[Change]] = session.info.setdefault(_PENDING_KEY, defaultdict(list))
    for action, objs in (("created", session.new), ("updated", session.dirty), ("deleted", session.deleted)):
        for obj in objs:
            model = _watched(obj)
            if model is None:
                continue
            if action == "updated" and not session.is_modified(obj, include_collections=False):
                continue
            change = (action, _record_id(obj))
            if change not in pending[model]:
                pending[model].append(change)


@event.listens_for(Session, "after_commit")
def _dispatch(session: Session) -> None:
    pending = session.info.pop(_PENDING_KEY, None)
    if not pending:
        return

    for model, changes in pending.items():
        with _lock:
            callbacks = list(_subscribers.get(model, []))
        for callback in callbacks:
            try:
                callback(list(changes))
            except Exception:
                logger.exception("Change feed subscriber %r failed for %s", callback, model.__name__)


@event.listens_for(Session, "after_rollback")
def _discard(session: Session) -> None:
    session.info.pop(_PENDING_KEY, None)
