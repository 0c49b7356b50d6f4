# =============================================================================
# adapta_core/models.py
# Entity definitions shared by the local store, API client and services
# =============================================================================
"""
Records are plain dicts keyed the way the remote API keys them (camelCase),
so the same dict can be posted remotely and stored locally without mapping.
Only the user profile and the session get typed wrappers.
"""

from __future__ import annotations
import random
import string
import time
from dataclasses import dataclass, asdict
from datetime import date, datetime
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional

from adapta_core.errors import ValidationError


class Entity(str, Enum):
    """Record collections; values double as storage keys and API paths."""
    USERS = "users"
    STUDENTS = "students"
    ADAPTATIONS = "adaptations"
    REPORTS = "reports"


class Role(str, Enum):
    COORDINATOR = "coordinator"
    TEACHER = "teacher"


class ReportResult(str, Enum):
    POSITIVE = "positivo"
    NEUTRAL = "neutro"
    NEGATIVE = "negativo"


# Role spellings seen on the remote API
ROLE_ALIASES = {
    "coordinator": Role.COORDINATOR,
    "coordenador": Role.COORDINATOR,
    "coordenadora": Role.COORDINATOR,
    "teacher": Role.TEACHER,
    "professor": Role.TEACHER,
    "professora": Role.TEACHER,
}

# Fields a new record starts with when the caller leaves them out
ENTITY_DEFAULTS: Dict[Entity, Dict[str, Any]] = {
    Entity.USERS: {"email": "", "name": "", "role": Role.TEACHER.value},
    Entity.STUDENTS: {
        "name": "",
        "course": "",
        "class": "",
        "birthDate": "",
        "registrationNumber": "",
    },
    Entity.ADAPTATIONS: {"studentId": "", "description": "", "justification": ""},
    Entity.REPORTS: {
        "studentId": "",
        "subject": "",
        "result": ReportResult.NEUTRAL.value,
        "description": "",
    },
}

# Required by the forms before anything is written
REQUIRED_FIELDS: Dict[Entity, List[str]] = {
    Entity.USERS: ["email"],
    Entity.STUDENTS: ["name", "course", "class", "birthDate", "registrationNumber"],
    Entity.ADAPTATIONS: ["description", "justification", "date"],
    Entity.REPORTS: ["subject", "description", "date"],
}

# Children removed together with a student
CASCADE_CHILDREN = (Entity.ADAPTATIONS, Entity.REPORTS)

_ID_ALPHABET = string.ascii_lowercase + string.digits


def generate_id() -> str:
    """Return an identifier shaped like ``1718000000000-k3j9x0a1b``."""
    suffix = "".join(random.choices(_ID_ALPHABET, k=9))
    return f"{int(time.time() * 1000)}-{suffix}"


def now_iso() -> str:
    return datetime.now().isoformat()


def today_iso() -> str:
    return date.today().isoformat()


def normalize_role(value: Any) -> Role:
    """Map any known role spelling to a Role; unknown values become TEACHER."""
    if isinstance(value, Role):
        return value
    return ROLE_ALIASES.get(str(value or "").strip().lower(), Role.TEACHER)


def require_fields(entity: Entity, data: Mapping[str, Any]) -> None:
    """
    Raise ValidationError when any required field of ``entity`` is empty.
    """
    missing = [
        field for field in REQUIRED_FIELDS.get(Entity(entity), [])
        if data.get(field) in (None, "")
    ]
    if missing:
        raise ValidationError(
            f"Preencha todos os campos obrigatórios: {', '.join(missing)}",
            entity=Entity(entity).value,
            missing=missing,
        )


def student_id_of(record: Mapping[str, Any]) -> Optional[str]:
    value = record.get("studentId")
    return None if value in (None, "") else str(value)


@dataclass(frozen=True)
class User:
    """Profile of the signed-in user."""
    id: str
    email: str
    name: str
    role: Role

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> User:
        """
        Normalize a local or remote profile.

        Remote payloads may use ``userId``/``fullName`` and Portuguese role
        names; a missing id falls back to the email.
        """
        email = str(data.get("email") or "")
        ident = data.get("id") or data.get("userId") or email
        if not ident:
            raise ValueError("user profile has neither id nor email")
        return cls(
            id=str(ident),
            email=email,
            name=str(data.get("name") or data.get("fullName") or ""),
            role=normalize_role(data.get("role")),
        )

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["role"] = self.role.value
        return data

    @property
    def is_coordinator(self) -> bool:
        return self.role is Role.COORDINATOR


@dataclass(frozen=True)
class Session:
    """An authenticated user plus the opaque token that identifies the session."""
    token: str
    user: User

    def to_dict(self) -> Dict[str, Any]:
        return {"token": self.token, "user": self.user.to_dict()}

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> Session:
        token = data.get("token")
        user = data.get("user")
        if not token or not isinstance(user, Mapping):
            raise ValueError("session requires a token and a user")
        return cls(token=str(token), user=User.from_dict(user))


@dataclass
class StudentReport:
    """A student with everything recorded about them."""
    student: Optional[Dict[str, Any]]
    adaptations: List[Dict[str, Any]]
    reports: List[Dict[str, Any]]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "student": self.student,
            "adaptations": list(self.adaptations),
            "reports": list(self.reports),
        }

