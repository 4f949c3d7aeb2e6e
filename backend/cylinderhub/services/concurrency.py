# Overview: Transaction boundary and row locking shared by every workflow service.

from __future__ import annotations

from sqlalchemy.exc import IntegrityError, OperationalError
from sqlalchemy.orm.exc import StaleDataError

from ..errors import CylinderHubError, DuplicateKeyError, StoreError
from ..extensions import db
from . import notification_service


def lock_for_update(query):
    """
    Apply row-level locking for critical operations.

    NOTE: SQLite ignores SELECT ... FOR UPDATE, but other DBs will honor it.
    The version_id columns on contended tables catch what SQLite lets through.
    """
    return query.with_for_update()


def _is_unique_violation(exc: IntegrityError) -> bool:
    text = str(getattr(exc, "orig", exc)).lower()
    return "unique" in text or "duplicate" in text


def run_in_transaction(func):
    """
    Run func() as one unit of work and commit it.

    - Domain errors roll back and propagate unchanged.
    - Unique constraint violations surface as DuplicateKeyError.
    - Lock/optimistic-version conflicts surface as StoreError (retryable).
      Nothing is retried here; the caller decides.

    Notifications queued during func() are published only after the commit
    succeeds and are discarded on rollback.
    """
    try:
        result = func()
        db.session.commit()
    except CylinderHubError:
        db.session.rollback()
        notification_service.discard_pending()
        raise
    except IntegrityError as exc:
        db.session.rollback()
        notification_service.discard_pending()
        if _is_unique_violation(exc):
            raise DuplicateKeyError(
                "Duplicate key",
                details={"constraint": str(getattr(exc, "orig", exc))},
            ) from exc
        raise
    except (StaleDataError, OperationalError) as exc:
        db.session.rollback()
        notification_service.discard_pending()
        raise StoreError(
            "Concurrent update conflict, please retry",
            details={"reason": exc.__class__.__name__},
        ) from exc
    except Exception:
        db.session.rollback()
        notification_service.discard_pending()
        raise

    notification_service.flush_pending()
    return result
