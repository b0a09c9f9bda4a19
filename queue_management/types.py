"""
Sparse update payload for queue entries.

Every field defaults to UNSET so "not supplied" is distinguishable from an
explicit ``None`` (which clears nullable fields).
"""
from dataclasses import dataclass, fields
from typing import Any, Dict


class _Unset:
    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self):
        return "UNSET"

    def __bool__(self):
        return False


UNSET: Any = _Unset()


@dataclass(frozen=True)
class QueueEntryPatch:
    position: Any = UNSET
    status: Any = UNSET
    estimated_wait_time: Any = UNSET
    actual_wait_time: Any = UNSET
    priority: Any = UNSET
    notes: Any = UNSET

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "QueueEntryPatch":
        known = {f.name for f in fields(cls)}
        return cls(**{key: value for key, value in data.items() if key in known})

    def supplied(self) -> Dict[str, Any]:
        """Only the fields that were actually set"""
        return {
            f.name: getattr(self, f.name)
            for f in fields(self)
            if getattr(self, f.name) is not UNSET
        }

    def is_set(self, name: str) -> bool:
        return getattr(self, name) is not UNSET

    def __bool__(self):
        return bool(self.supplied())
