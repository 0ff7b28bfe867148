from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from .classes.mysql_class_repository import MySQLClassRepository
from .classes.repository import ClassRepository
from .classes.service import ClassService
from .database.connection import DBConfig, DatabaseConnection
from .freezes.mysql_freeze_repository import MySQLFreezeRepository
from .freezes.repository import FreezeRepository
from .freezes.service import FreezeService
from .passes.mysql_pass_repository import MySQLPassRepository
from .passes.repository import PassRepository
from .passes.service import PassService
from .periods.mysql_period_repository import MySQLPeriodRepository
from .periods.repository import PeriodRepository
from .periods.service import AutoClearService, PeriodService
from .realtime.events import ChangeFeed
from .settings.mysql_settings_repository import MySQLSettingsRepository
from .settings.repository import SettingsRepository
from .settings.service import SettingsService
from .users.mysql_user_repository import MySQLUserRepository
from .users.repository import UserRepository
from .users.service import AuthService, UserService


@dataclass(frozen=True)
class Container:
    conn: Optional[DatabaseConnection]
    feed: ChangeFeed

    users_repo: UserRepository
    settings_repo: SettingsRepository
    classes_repo: ClassRepository
    freezes_repo: FreezeRepository
    passes_repo: PassRepository
    periods_repo: PeriodRepository

    auth_service: AuthService
    user_service: UserService
    settings_service: SettingsService
    class_service: ClassService
    freeze_service: FreezeService
    pass_service: PassService
    period_service: PeriodService
    auto_clear_service: AutoClearService


def wire_container(
    *,
    users_repo: UserRepository,
    settings_repo: SettingsRepository,
    classes_repo: ClassRepository,
    freezes_repo: FreezeRepository,
    passes_repo: PassRepository,
    periods_repo: PeriodRepository,
    conn: Optional[DatabaseConnection] = None,
    feed: Optional[ChangeFeed] = None,
) -> Container:
    """Build every service on top of the given repositories (MySQL or in-memory)."""
    feed = feed or ChangeFeed()

    settings_service = SettingsService(settings_repo)
    class_service = ClassService(classes_repo)
    freeze_service = FreezeService(freezes_repo, class_service, feed=feed)
    pass_service = PassService(passes_repo, class_service, settings_service, freeze_service, feed=feed)

    return Container(
        conn=conn,
        feed=feed,
        users_repo=users_repo,
        settings_repo=settings_repo,
        classes_repo=classes_repo,
        freezes_repo=freezes_repo,
        passes_repo=passes_repo,
        periods_repo=periods_repo,
        auth_service=AuthService(users_repo),
        user_service=UserService(users_repo),
        settings_service=settings_service,
        class_service=class_service,
        freeze_service=freeze_service,
        pass_service=pass_service,
        period_service=PeriodService(periods_repo),
        auto_clear_service=AutoClearService(periods_repo, classes_repo, pass_service),
    )


def build_container(*, db_config: dict) -> Container:
    conn = DatabaseConnection.get_instance(DBConfig.from_dict(db_config))

    return wire_container(
        conn=conn,
        users_repo=MySQLUserRepository(conn),
        settings_repo=MySQLSettingsRepository(conn),
        classes_repo=MySQLClassRepository(conn),
        freezes_repo=MySQLFreezeRepository(conn),
        passes_repo=MySQLPassRepository(conn),
        periods_repo=MySQLPeriodRepository(conn),
    )
