# cashdesk/gate.py
"""
Password gate. The session stays locked until a password matches either the
manager hash (full dashboard) or the staff hash (daily entry submission only).
"""

import hashlib
import hmac
from typing import MutableMapping, Optional

UNLOCK_KEY = "gate_unlock_v1"
ROLE_KEY = "gate_role_v1"

MANAGER = "manager"
EMPLOYEE = "employee"


def sha256_hex(text: str) -> str:
    return hashlib.sha256(text.encode("utf-8")).hexdigest()


def check_password(password: str, pass_hash: str) -> bool:
    pw = (password or "").strip()
    if not pw or not pass_hash:
        return False
    return hmac.compare_digest(sha256_hex(pw), pass_hash.strip().lower())


def resolve_role(password: str, manager_hash: str, employee_hash: Optional[str] = None) -> Optional[str]:
    """Role unlocked by password, manager first; None when nothing matches."""
    if check_password(password, manager_hash):
        return MANAGER
    if employee_hash and check_password(password, employee_hash):
        return EMPLOYEE
    return None


def is_unlocked(state: MutableMapping) -> bool:
    return bool(state.get(UNLOCK_KEY, False))


def current_role(state: MutableMapping) -> Optional[str]:
    if not is_unlocked(state):
        return None
    return state.get(ROLE_KEY, MANAGER)


def set_unlocked(state: MutableMapping, value: bool, role: str = MANAGER) -> None:
    state[UNLOCK_KEY] = bool(value)
    if value:
        state[ROLE_KEY] = role
    else:
        state.pop(ROLE_KEY, None)
