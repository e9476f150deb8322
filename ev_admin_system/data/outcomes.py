# ev_admin_system/data/outcomes.py
"""
Result types returned by the repositories.

Store operations answer with a row whose STATUS column says what happened.
That row is translated here, once, into Success or Rejected so callers
never compare status strings themselves.
"""
from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Union

SUCCESS = "SUCCESS"


@dataclass(frozen=True)
class Success:
    row: Dict[str, Any] = field(default_factory=dict)

    @property
    def status(self) -> str:
        return SUCCESS


@dataclass(frozen=True)
class Rejected:
    status: str
    row: Dict[str, Any] = field(default_factory=dict)


Outcome = Union[Success, Rejected]


def to_outcome(row: Optional[Dict[str, Any]]) -> Outcome:
    if not row:
        return Rejected("NO_RESULT")
    status = row.get("STATUS")
    if status == SUCCESS:
        return Success(row)
    return Rejected(str(status), row)


@dataclass(frozen=True)
class InsertResult:
    """Summary of a batch insert: how many rows went in and the id of the last one."""
    affected_rows: int
    insert_id: Optional[int] = None
