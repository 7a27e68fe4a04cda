"""
Proposal Records
================

The persisted unit of the registry and its byte encoding.

A record is encoded as compact UTF-8 JSON. The encoded form is bounded
by MAX_VALUE_SIZE; a record that would not fit is rejected when it is
constructed, so an oversize value never reaches a store.
"""

import json
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional

from ..errors import CorruptRecord, RecordTooLarge


MAX_VALUE_SIZE = 5000

MAX_KEY = 2**64 - 1
MAX_COUNTER = 2**32 - 1

RECORD_FIELDS = ("description", "approve", "reject", "pass", "is_active", "voted", "owner")


class Choice(str, Enum):
    """Ballot options"""
    APPROVE = "approve"
    REJECT = "reject"
    PASS = "pass"

    @classmethod
    def parse(cls, value: "str | Choice") -> "Choice":
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            raise ValueError(
                f"unknown choice {value!r}, expected one of: "
                + ", ".join(c.value for c in cls)
            ) from None


@dataclass
class CreateProposal:
    """Input for create and edit; never stored on its own"""
    description: str
    is_active: bool = True


@dataclass
class Proposal:
    """A proposal with its tallies, voter set and owner"""
    description: str
    owner: str
    approve: int = 0
    reject: int = 0
    pass_: int = 0
    is_active: bool = True
    voted: list = field(default_factory=list)

    def __post_init__(self):
        if isinstance(self.voted, tuple):
            self.voted = list(self.voted)

        # Validates and checks size up front so stores never see a bad value
        self.to_bytes()

    def validate(self) -> None:
        """Raise ValueError unless every field holds a storable value"""
        if not isinstance(self.description, str):
            raise ValueError("description must be a string")
        if not isinstance(self.owner, str) or not self.owner:
            raise ValueError("owner must be a non-empty caller identity")
        for name in ("approve", "reject", "pass_"):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, int):
                raise ValueError(f"{name} must be an integer")
            if not 0 <= value <= MAX_COUNTER:
                raise ValueError(f"{name}={value} is outside 0..{MAX_COUNTER}")
        if not isinstance(self.is_active, bool):
            raise ValueError("is_active must be a boolean")
        if not isinstance(self.voted, list):
            raise ValueError("voted must be a list of caller identities")
        if not all(isinstance(voter, str) and voter for voter in self.voted):
            raise ValueError("voted entries must be non-empty strings")
        if len(set(self.voted)) != len(self.voted):
            raise ValueError("voted must not contain the same caller twice")

    @property
    def total_votes(self) -> int:
        return self.approve + self.reject + self.pass_

    def has_voted(self, caller: str) -> bool:
        return caller in self.voted

    def to_dict(self) -> dict:
        return {
            "description": self.description,
            "approve": self.approve,
            "reject": self.reject,
            "pass": self.pass_,
            "is_active": self.is_active,
            "voted": list(self.voted),
            "owner": self.owner,
        }

    def to_bytes(self) -> bytes:
        # Records are mutable, so every encode re-checks the fields
        self.validate()
        data = json.dumps(
            self.to_dict(), ensure_ascii=False, separators=(",", ":")
        ).encode("utf-8")
        if len(data) > MAX_VALUE_SIZE:
            raise RecordTooLarge(len(data), MAX_VALUE_SIZE)
        return data

    @classmethod
    def from_dict(cls, data: dict) -> "Proposal":
        if not isinstance(data, dict):
            raise ValueError(f"expected an object, got {type(data).__name__}")
        missing =[name for name in RECORD_FIELDS if name not in data]
        if missing:
            raise ValueError(f"missing fields: {', '.join(missing)}")
        return cls(
            description=data["description"],
            owner=data["owner"],
            approve=data["approve"],
            reject=data["reject"],
            pass_=data["pass"],
            is_active=data["is_active"],
            voted=data["voted"],
        )

    @classmethod
    def from_bytes(cls, data: bytes, key: Optional[int] = None) -> "Proposal":
        try:
            return cls.from_dict(json.loads(data.decode("utf-8")))
        except (UnicodeDecodeError, json.JSONDecodeError, TypeError, ValueError) as e:
            raise CorruptRecord(key, str(e)) from e


def check_key(key: int) -> int:
    """Validate that key fits an unsigned 64-bit integer"""
    if isinstance(key, bool) or not isinstance(key, int):
        raise ValueError(f"key must be an integer, got {type(key).__name__}")
    if not 0 <= key <= MAX_KEY:
        raise ValueError(f"key {key} is outside 0..{MAX_KEY}")
    return key


def key_to_name(key: int) -> str:
    """Zero-padded form whose string order matches numeric order"""
    return f"{check_key(key):020d}"
