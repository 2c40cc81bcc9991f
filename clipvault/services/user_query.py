"""Filtering, searching, sorting and pagination for user listings."""

from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import datetime

from sqlalchemy.orm import Session

from clipvault.exceptions import ValidationError
from clipvault.models.enums import Role
from clipvault.models.user import User

SEARCH_FIELDS = ("name", "username", "email")
SORT_FIELDS = {
    "id": User.id,
    "name": User.name,
    "username": User.username,
    "email": User.email,
    "created_at": User.created_at,
}
RANGE_OPERATORS = ("gte", "gt", "lte", "lt")
DEFAULT_LIMIT = 10
MAX_LIMIT = 100


def _parse_int(params: Mapping[str, str], key: str, default: int) -> int:
    raw = params.get(key)
    if raw is None or raw == "":
        return default
    try:
        value = int(raw)
    except ValueError as e:
        raise ValidationError(f"{key} must be an integer") from e
    if value < 1:
        raise ValidationError(f"{key} must be at least 1")
    return value


def _parse_bool(raw: str, key: str) -> bool:
    lowered = raw.lower()
    if lowered in ("true", "1", "yes"):
        return True
    if lowered in ("false", "0", "no"):
        return False
    raise ValidationError(f"{key} must be true or false")


@dataclass
class UserListParams:
    """Parsed query-string parameters for listing users.

    Recognized keys: ``name``/``username``/``email`` (case-insensitive
    substring search), ``role``, ``active`` (defaults to active users only),
    ``created_at[gte|gt|lte|lt]`` (ISO 8601), ``sort`` (comma separated,
    ``-`` prefix for descending), ``page`` and ``limit``.
    """

    search: dict[str, str] = field(default_factory=dict)
    role: Role | None = None
    active: bool = True
    created_at: dict[str, datetime] = field(default_factory=dict)
    sort: list[str] = field(default_factory=list)
    page: int = 1
    limit: int = DEFAULT_LIMIT

    @classmethod
    def from_query(cls, params: Mapping[str, str]) -> "UserListParams":
        search = {key: params[key] for key in SEARCH_FIELDS if params.get(key)}

        role = None
        if params.get("role"):
            try:
                role = Role(params["role"])
            except ValueError as e:
                raise ValidationError(f"Invalid role :: {params['role']}") from e

        active = _parse_bool(params["active"], "active") if params.get("active") else True

        created_at = {}
        for op in RANGE_OPERATORS:
            raw = params.get(f"created_at[{op}]")
            if raw:
                try:
                    created_at[op] = datetime.fromisoformat(raw)
                except ValueError as e:
                    raise ValidationError(f"created_at[{op}] must be an ISO 8601 timestamp") from e

        sort = []
        if params.get("sort"):
            for key in params["sort"].split(","):
                key = key.strip()
                if key.lstrip("-") not in SORT_FIELDS:
                    raise ValidationError(f"Cannot sort by {key.lstrip('-')}")
                sort.append(key)

        return cls(
            search=search,
            role=role,
            active=active,
            created_at=created_at,
            sort=sort,
            page=_parse_int(params, "page", 1),
            limit=min(_parse_int(params, "limit", DEFAULT_LIMIT), MAX_LIMIT),
        )


@dataclass
class UserPage:
    """One page of a user listing."""

    users: list[User]
    total: int
    page: int
    limit: int


class UserQuery:
    """Builds and runs a user listing query from parsed parameters."""

    def __init__(self, db: Session, params: UserListParams):
        self.db = db
        self.params = params

    def _filtered(self):
        query = self.db.query(User).filter(User.active.is_(self.params.active))

        for key, needle in self.params.search.items():
            column = getattr(User, key)
            query = query.filter(column.icontains(needle, autoescape=True))

        if self.params.role is not None:
            query = query.filter(User.role == self.params.role)

        for op, value in self.params.created_at.items():
            if op == "gte":
                query = query.filter(User.created_at >= value)
            elif op == "gt":
                query = query.filter(User.created_at > value)
            elif op == "lte":
                query = query.filter(User.created_at <= value)
            else:
                query = query.filter(User.created_at < value)

        return query

    def _ordering(self):
        if not self.params.sort:
            return [User.created_at.desc(), User.id.desc()]
        clauses = []
        for key in self.params.sort:
            column = SORT_FIELDS[key.lstrip("-")]
            clauses.append(column.desc() if key.startswith("-") else column.asc())
        return clauses

    def run(self) -> UserPage:
        query = self._filtered()
        total = query.count()
        offset = (self.params.page - 1) * self.params.limit
        users = query.order_by(*self._ordering()).offset(offset).limit(self.params.limit).all()
        return UserPage(users=users, total=total, page=self.params.page, limit=self.params.limit)
