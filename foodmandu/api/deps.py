# foodmandu/api/deps.py
# Зависимости FastAPI для сборки CredentialService на каждый запрос.
from functools import lru_cache

from fastapi import BackgroundTasks, Depends
from sqlalchemy.orm import Session

from foodmandu.core.clock import utcnow
from foodmandu.core.config import AuthConfig, settings
from foodmandu.core.security import get_auth_config
from foodmandu.db.session import get_db
from foodmandu.services.credentials import CredentialService
from foodmandu.services.notifications import Notifier, build_notifier, run_supervised


@lru_cache
def get_notifier() -> Notifier:
    return build_notifier(settings)


def get_clock():
    return utcnow


def get_credential_service(
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    config: AuthConfig = Depends(get_auth_config),
    notifier: Notifier = Depends(get_notifier),
    clock=Depends(get_clock),
) -> CredentialService:
    """Фоновые отправки уходят в BackgroundTasks под run_supervised."""
    def defer(func, *args, **kwargs):
        background_tasks.add_task(run_supervised, func, *args, **kwargs)

    return CredentialService(db, config, notifier, clock=clock, defer=defer)
