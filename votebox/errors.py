"""
Error Taxonomy
==============

All failures are raised synchronously to the caller and never retried.

VoteError kinds (caller-facing):
- NoSuchProposal       - referenced key has no record
- AccessRejected       - caller is not the owner on an owner-gated mutation
- AlreadyVoted         - caller already present in the voter set
- ProposalIsNotActive  - vote attempted on a closed proposal
- UpdateError          - write-back did not land on the record just read

Storage errors:
- RecordTooLarge       - serialized record exceeds MAX_VALUE_SIZE
- CorruptRecord        - stored bytes do not decode to a Proposal
"""

from typing import Optional


class VoteboxError(Exception):
    """Base class for every error raised by votebox"""


class VoteError(VoteboxError):
    """Base class for the caller-facing errors of the voting state machine"""

    kind = "VoteError"
    default_message = "vote operation failed"

    def __init__(self, key: int, message: Optional[str] = None):
        self.key = key
        super().__init__(message or f"{self.default_message} (key={key})")


class NoSuchProposal(VoteError):
    kind = "NoSuchProposal"
    default_message = "no proposal stored at this key"


class AccessRejected(VoteError):
    kind = "AccessRejected"
    default_message = "only the proposal owner may do this"


class AlreadyVoted(VoteError):
    kind = "AlreadyVoted"
    default_message = "caller has already voted on this proposal"


class ProposalIsNotActive(VoteError):
    kind = "ProposalIsNotActive"
    default_message = "proposal is closed for voting"


class UpdateError(VoteError):
    kind = "UpdateError"
    default_message = "proposal vanished between read and write"


class RecordTooLarge(VoteboxError, ValueError):
    """Serialized record is larger than the store accepts"""

    def __init__(self, size: int, limit: int):
        self.size = size
        self.limit = limit
        super().__init__(f"serialized record is {size} bytes, limit is {limit}")


class CorruptRecord(VoteboxError):
    """Stored bytes could not be decoded"""

    def __init__(self, key: Optional[int], reason: str):
        self.key = key
        self.reason = reason
        where = f" at key {key}" if key is not None else ""
        super().__init__(f"corrupt record{where}: {reason}")
