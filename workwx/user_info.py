"""Member information records and helpers to assemble them."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from enum import IntEnum
from typing import Any, Sequence

_ATOI_RE = re.compile(r"[+-]?[0-9]+\Z")


class UserGender(IntEnum):
    """Gender of a member."""

    UNSPECIFIED = 0
    MALE = 1
    FEMALE = 2


class UserStatus(IntEnum):
    """Activation state of a member."""

    ACTIVATED = 1
    DEACTIVATED = 2
    UNACTIVATED = 4


@dataclass(frozen=True)
class UserDeptInfo:
    """A member's place in one department."""

    dept_id: int
    order: int
    is_leader: bool = False


@dataclass(frozen=True)
class UserInfo:
    """Details of a member."""

    user_id: str = ""
    name: str = ""
    position: str = ""
    departments: list[UserDeptInfo] = field(default_factory=list)
    mobile: str = ""
    gender: UserGender | int = UserGender.UNSPECIFIED
    email: str = ""
    avatar_url: str = ""
    telephone: str = ""
    is_enabled: bool = False
    alias: str = ""
    status: UserStatus | int = 0
    qr_code_url: str = ""


@dataclass(frozen=True)
class UserIdentityInfo:
    """Identity of the user visiting an application."""

    user_id: str = ""
    open_id: str = ""
    device_id: str = ""

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> UserIdentityInfo:
        """Build from a decoded API response object."""
        return cls(
            user_id=data.get("UserId", ""),
            open_id=data.get("OpenId", ""),
            device_id=data.get("DeviceId", ""),
        )


def reshape_dept_info(
    ids: Sequence[int],
    orders: Sequence[int],
    leader_statuses: Sequence[int],
) -> list[UserDeptInfo]:
    """Combine parallel department arrays into per-department records.

    An empty leader_statuses marks nobody as leader.
    """
    if len(ids) != len(orders):
        raise ValueError(
            f"server API breakage: len(DeptIDs) ({len(ids)}) != len(DeptOrder) ({len(orders)})"
        )
    if leader_statuses and len(ids) != len(leader_statuses):
        raise ValueError(
            "server API breakage: len(DeptIDs) "
            f"({len(ids)}) != len(IsLeaderInDept) ({len(leader_statuses)})"
        )
    leaders = [status != 0 for status in leader_statuses] or [False] * len(ids)
    return [
        UserDeptInfo(dept_id=dept_id, order=order, is_leader=leader)
        for dept_id, order, leader in zip(ids, orders, leaders)
    ]


def user_gender_from_str(value: str) -> UserGender | int:
    """Parse a gender string; empty means unspecified, unknown numbers stay ints."""
    if value == "":
        return UserGender.UNSPECIFIED
    if not _ATOI_RE.match(value):
        raise ValueError(f"gender string parse failed: invalid syntax {value!r}")
    number = int(value)
    try:
        return UserGender(number)
    except ValueError:
        return number