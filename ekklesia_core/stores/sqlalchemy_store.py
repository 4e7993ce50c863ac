"""
SQLAlchemy implementations of the tenant storage contracts.

All three stores share the caller's session and never commit or roll back;
transaction boundaries belong to the services. Unique-constraint violations
raised while flushing are translated to AlreadyExistsError; every other
database error propagates as-is for the service to classify.
"""

from typing import Any, Dict, Iterable, List, Mapping, NoReturn, Optional, Sequence, Tuple

from sqlalchemy import exists, func, or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, selectinload

from ..db.db_account_models import Account
from ..db.db_base import utc_now
from ..db.db_tenant_models import Tenant, TenantSettings
from ..exceptions import AlreadyExistsError
from ..utils.logger import get_logger
from .interfaces import AccountStore, SettingsStore, TenantStore

# Constraint names (Postgres) and table.column markers (SQLite) per unique field
TENANT_UNIQUE_MARKERS = {
    "email": ("uq_tenants_email", "tenants.email"),
    "slug": ("uq_tenants_slug", "tenants.slug"),
}
SETTINGS_UNIQUE_MARKERS = {
    "tenant_id": ("uq_tenant_settings_tenant_id", "tenant_settings.tenant_id"),
}


def _error_message(error: IntegrityError) -> str:
    return str(error.orig if getattr(error, "orig", None) is not None else error).lower()


def raise_for_integrity_error(
    error: IntegrityError, values: Dict[str, Any], markers: Mapping[str, Sequence[str]]
) -> NoReturn:
    """
    Re-raise a flush failure in domain terms.

    Unique violations matching one of ``markers`` become AlreadyExistsError naming
    the colliding field; anything else is re-raised unchanged.
    """
    message = _error_message(error)
    if "unique" not in message and "duplicate" not in message:
        raise error

    field = next(
        (name for name, hints in markers.items() if any(h in message for h in hints)),
        next(iter(markers)),
    )

    get_logger().warning(
        "Unique constraint violation", extra={"field": field, "constraint_message": message}
    )
    raise AlreadyExistsError(field, values.get(field), cause=error) from error


def _escape_like(term: str) -> str:
    return term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


class SqlAlchemyTenantStore(TenantStore):
    """TenantStore over an ORM session."""

    def __init__(self, session: Session):
        self.session = session

    def _flush(self, values: Dict[str, Any]) -> None:
        try:
            self.session.flush()
        except IntegrityError as e:
            raise_for_integrity_error(e, values, TENANT_UNIQUE_MARKERS)

    def insert(self, values: Dict[str, Any]) -> Tenant:
        tenant = Tenant(**values)
        self.session.add(tenant)
        self._flush(values)
        return tenant

    def find_by_id(self, tenant_id: str) -> Optional[Tenant]:
        return self.session.get(Tenant, tenant_id)

    def find_by_slug(self, slug: str) -> Optional[Tenant]:
        return self.session.query(Tenant).filter(Tenant.slug == slug).one_or_none()

    def update_by_id(self, tenant_id: str, values: Dict[str, Any]) -> Optional[Tenant]:
        tenant = self.find_by_id(tenant_id)
        if tenant is None:
            return None

        for key, value in values.items():
            setattr(tenant, key, value)
        self._flush(values)
        return tenant

    def delete_by_id(self, tenant_id: str) -> int:
        # rows the database removes by ON DELETE CASCADE, as held by this session
        dependents = [
            obj
            for obj in self.session
            if isinstance(obj, (TenantSettings, Account)) and obj.tenant_id == tenant_id
        ]
        deleted = (
            self.session.query(Tenant)
            .filter(Tenant.id == tenant_id)
            .delete(synchronize_session="evaluate")
        )
        for obj in dependents:
            self.session.expunge(obj)
        return deleted

    def count_where(self, **filters: Any) -> int:
        return self.session.query(func.count(Tenant.id)).filter_by(**filters).scalar() or 0

    def is_taken(self, field: str, value: str, exclude_id: Optional[str] = None) -> bool:
        if field not in TENANT_UNIQUE_MARKERS:
            raise ValueError(f"{field} is not a unique tenant field")

        column = getattr(Tenant, field)
        criteria = [column == value]
        if exclude_id is not None:
            criteria.append(Tenant.id != exclude_id)
        return bool(self.session.query(exists().where(*criteria)).scalar())

    def find_page(
        self,
        offset: int,
        limit: int,
        include_inactive: bool = False,
        search: Optional[str] = None,
    ) -> Tuple[List[Tenant], int]:
        query = self.session.query(Tenant)

        if not include_inactive:
            query = query.filter(Tenant.is_active.is_(True))

        if search:
            pattern = f"%{_escape_like(search)}%"
            query = query.filter(
                or_(
                    Tenant.name.ilike(pattern, escape="\\"),
                    Tenant.email.ilike(pattern, escape="\\"),
                    Tenant.slug.ilike(pattern, escape="\\"),
                )
            )

        total = query.count()
        rows = (
            query.options(selectinload(Tenant.settings))
            .order_by(Tenant.created_at.desc(), Tenant.id.desc())
            .offset(offset)
            .limit(limit)
            .all()
        )
        return rows, total

    def find_active_excluding(self, tenant_id: str) -> List[Tenant]:
        return (
            self.session.query(Tenant)
            .filter(Tenant.id != tenant_id, Tenant.is_active.is_(True))
            .order_by(Tenant.name.asc())
            .all()
        )


class SqlAlchemySettingsStore(SettingsStore):
    """SettingsStore over an ORM session."""

    def __init__(self, session: Session):
        self.session = session

    def find_by_tenant(self, tenant_id: str) -> Optional[TenantSettings]:
        return (
            self.session.query(TenantSettings)
            .filter(TenantSettings.tenant_id == tenant_id)
            .one_or_none()
        )

    def insert(self, tenant_id: str, values: Dict[str, Any]) -> TenantSettings:
        settings = TenantSettings(tenant_id=tenant_id, **values)
        try:
            # SAVEPOINT keeps the surrounding transaction usable after a lost race
            with self.session.begin_nested():
                self.session.add(settings)
        except IntegrityError as e:
            raise_for_integrity_error(
                e, {"tenant_id": tenant_id, **values}, SETTINGS_UNIQUE_MARKERS
            )

        # A loaded Tenant may still hold settings=None from before the insert
        tenant = self.session.get(Tenant, tenant_id)
        if tenant is not None:
            self.session.expire(tenant, ["settings"])
        return settings

    def update_by_tenant(self, tenant_id: str, values: Dict[str, Any]) -> Optional[TenantSettings]:
        settings = self.find_by_tenant(tenant_id)
        if settings is None:
            return None

        for key, value in values.items():
            setattr(settings, key, value)
        self.session.flush()
        return settings


class SqlAlchemyAccountStore(AccountStore):
    """AccountStore over an ORM session."""

    def __init__(self, session: Session):
        self.session = session

    def count_where(self, **filters: Any) -> int:
        return self.session.query(func.count(Account.id)).filter_by(**filters).scalar() or 0

    def count_by_tenant(self, tenant_ids: Iterable[str]) -> Dict[str, int]:
        ids = list(tenant_ids)
        if not ids:
            return {}

        counts = {tenant_id: 0 for tenant_id in ids}
        rows = (
            self.session.query(Account.tenant_id, func.count(Account.id))
            .filter(Account.tenant_id.in_(ids))
            .group_by(Account.tenant_id)
            .all()
        )
        for tenant_id, count in rows:
            counts[tenant_id] = count
        return counts

    def reassign_tenant(
        self, from_tenant_id: str, to_tenant_id: str, roles: Optional[Sequence[Any]] = None
    ) -> int:
        query = self.session.query(Account).filter(Account.tenant_id == from_tenant_id)
        if roles:
            query = query.filter(Account.role.in_(list(roles)))

        return query.update(
            {Account.tenant_id: to_tenant_id, Account.updated_at: utc_now()},
            synchronize_session="fetch",
        )
