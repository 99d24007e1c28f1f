# cashdesk/config.py
"""
Configuration lookup for the dashboard.

Values are read from Streamlit secrets when present, otherwise from
environment variables (streamlit_app.py loads a local .env with python-dotenv
before anything here runs).

Keys:
    SPREADSHEET_ID            spreadsheet holding DailyLogs / Closings / Settings / Employees
    PASS_HASH                 hex SHA-256 of the manager password
    EMPLOYEE_PASS_HASH        optional, hex SHA-256 of the staff password (daily entry only)
    FIXED_MONTHLY_COST        payout policy, all four required
    BUFFER_DAYS
    SAFETY_MARGIN             fraction in [0, 1]
    COMFORT_CASH_ADDITIONAL
"""

import os
from typing import Any, Mapping, Optional

from cashdesk.models import PayoutPolicyParams


POLICY_KEYS = ("FIXED_MONTHLY_COST", "BUFFER_DAYS", "SAFETY_MARGIN", "COMFORT_CASH_ADDITIONAL")


def get_setting(secrets: Optional[Mapping[str, Any]], key: str) -> Optional[Any]:
    """Secrets first, then environment. Empty strings count as missing."""
    val = secrets.get(key) if secrets else None
    if val is None or val == "":
        val = os.environ.get(key)
    if val is None or val == "":
        return None
    return val


def load_spreadsheet_id(secrets: Optional[Mapping[str, Any]] = None) -> str:
    sheet_id = get_setting(secrets, "SPREADSHEET_ID")
    if not sheet_id:
        raise ValueError("SPREADSHEET_ID is not configured in Streamlit secrets or environment variables.")
    return str(sheet_id)


def load_pass_hash(secrets: Optional[Mapping[str, Any]] = None) -> str:
    pass_hash = get_setting(secrets, "PASS_HASH")
    if not pass_hash:
        raise ValueError("PASS_HASH is not configured. Set the hex SHA-256 of the manager password.")
    return str(pass_hash).strip().lower()


def load_policy_params(secrets: Optional[Mapping[str, Any]] = None) -> PayoutPolicyParams:
    """
    Build the payout policy from configuration.

    Every field is required; raises ValueError naming the missing or invalid keys.
    """
    raw = {k: get_setting(secrets, k) for k in POLICY_KEYS}
    missing = [k for k, v in raw.items() if v is None]
    if missing:
        raise ValueError(f"Payout policy incomplete, missing: {', '.join(missing)}")

    try:
        fixed = int(raw["FIXED_MONTHLY_COST"])
        buffer_days = int(raw["BUFFER_DAYS"])
        margin = float(raw["SAFETY_MARGIN"])
        comfort = int(raw["COMFORT_CASH_ADDITIONAL"])
    except (TypeError, ValueError) as e:
        raise ValueError(f"Invalid payout policy value: {e}") from e

    bad = []
    if fixed < 0:
        bad.append("FIXED_MONTHLY_COST")
    if buffer_days < 0:
        bad.append("BUFFER_DAYS")
    if not 0.0 <= margin <= 1.0:
        bad.append("SAFETY_MARGIN")
    if comfort < 0:
        bad.append("COMFORT_CASH_ADDITIONAL")
    if bad:
        raise ValueError(f"Payout policy out of range: {', '.join(bad)}")

    return PayoutPolicyParams(
        fixed_monthly_cost=fixed,
        buffer_days=buffer_days,
        safety_margin=margin,
        comfort_cash_additional=comfort,
    )


def load_employee_pass_hash(secrets: Optional[Mapping[str, Any]] = None) -> Optional[str]:
    """Staff password hash; None when staff self-submission is not enabled."""
    pass_hash = get_setting(secrets, "EMPLOYEE_PASS_HASH")
    if not pass_hash:
        return None
    return str(pass_hash).strip().lower()
