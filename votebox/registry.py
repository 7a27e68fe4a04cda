"""
Proposal Registry
=================

The voting state machine. Each mutating call is one read-modify-write
against the injected RecordStore:

    read record → validate → build new record → write back

Nothing is written when validation fails. The host is expected to
serialize calls; the registry does no locking of its own.
"""

import dataclasses
import logging
from typing import Optional

from .errors import (
    AccessRejected,
    AlreadyVoted,
    NoSuchProposal,
    ProposalIsNotActive,
    UpdateError,
    VoteError,
)
from .state.events import EventLog, EventType
from .state.records import Choice, CreateProposal, Proposal, check_key
from .state.store import RecordStore


logger = logging.getLogger(__name__)

_COUNTER_FIELD = {
    Choice.APPROVE: "approve",
    Choice.REJECT: "reject",
    Choice.PASS: "pass_",
}


class ProposalRegistry:
    """
    Create, edit, close and vote on proposals.

    Args:
        store: Where records live
        event_log: Optional audit log; one event per successful mutation
    """

    def __init__(self, store: RecordStore, event_log: Optional[EventLog] = None):
        self.store = store
        self.event_log = event_log

    # =========================================================================
    # Queries
    # =========================================================================

    def get_proposal(self, key: int) -> Optional[Proposal]:
        return self.store.get(key)

    def get_proposal_count(self) -> int:
        return self.store.count()

    def list_proposals(self) -> list[tuple[int, Proposal]]:
        """All proposals in ascending key order"""
        return list(self.store.items())

    # =========================================================================
    # Mutations
    # =========================================================================

    def create_proposal(
        self,
        caller: str,
        key: int,
        request: CreateProposal,
    ) -> Optional[Proposal]:
        """
        Store a fresh proposal owned by caller at key.

        An existing proposal at key is overwritten, votes and owner
        included. Returns that previous proposal, if any.
        """
        self._check_caller(caller)
        check_key(key)
        record = Proposal(
            description=request.description,
            owner=caller,
            is_active=request.is_active,
        )
        previous = self.store.put(key, record)

        if previous is not None:
            logger.warning(
                "Proposal %d overwritten by %s (previous owner %s, %d votes discarded)",
                key, caller, previous.owner, previous.total_votes,
            )
            self._record(
                EventType.PROPOSAL_OVERWRITTEN, key, caller,
                data={"previous_owner": previous.owner, "previous": previous.to_dict()},
            )
        self._record(
            EventType.PROPOSAL_CREATED, key, caller,
            data={"description": record.description, "is_active": record.is_active},
        )
        return previous

    def edit_proposal(self, caller: str, key: int, request: CreateProposal) -> None:
        """Replace description and is_active; owner only"""
        proposal = self._load_owned(caller, key)
        updated = dataclasses.replace(
            proposal,
            description=request.description,
            is_active=request.is_active,
        )
        self._write_back(key, updated)
        self._record(
            EventType.PROPOSAL_EDITED, key, caller,
            data={"description": updated.description, "is_active": updated.is_active},
        )

    def end_proposal(self, caller: str, key: int) -> None:
        """Close a proposal for voting; owner only"""
        proposal = self._load_owned(caller, key)
        updated = dataclasses.replace(proposal, is_active=False)
        self._write_back(key, updated)
        self._record(EventType.PROPOSAL_CLOSED, key, caller)

    def vote(self, caller: str, key: int, choice: Choice | str) -> None:
        """
        Cast caller's single vote on a proposal.

        A caller who already voted gets AlreadyVoted even when the
        proposal has since been closed.
        """
        self._check_caller(caller)
        choice = Choice.parse(choice)
        proposal = self._load(key)

        if proposal.has_voted(caller):
            self._reject(AlreadyVoted(key), caller)
        if not proposal.is_active:
            self._reject(ProposalIsNotActive(key), caller)

        counter = _COUNTER_FIELD[choice]
        updated = dataclasses.replace(
            proposal,
            **{counter: getattr(proposal, counter) + 1},
            voted=proposal.voted + [caller],
        )
        self._write_back(key, updated)
        self._record(EventType.VOTE_CAST, key, caller, data={"choice": choice.value})

    # =========================================================================
    # Helpers
    # =========================================================================

    def _check_caller(self, caller: str) -> str:
        if not isinstance(caller, str) or not caller:
            raise ValueError("caller must be a non-empty identity")
        return caller

    def _load(self, key: int) -> Proposal:
        proposal = self.store.get(key)
        if proposal is None:
            self._reject(NoSuchProposal(key))
        return proposal

    def _load_owned(self, caller: str, key: int) -> Proposal:
        self._check_caller(caller)
        proposal = self._load(key)
        if proposal.owner != caller:
            self._reject(AccessRejected(key), caller)
        return proposal

    def _write_back(self, key: int, updated: Proposal) -> None:
        if not self.store.replace(key, updated):
            self._reject(UpdateError(key))

    def _reject(self, error: VoteError, caller: Optional[str] = None) -> None:
        logger.info("Rejected %s on proposal %d (caller=%s)", error.kind, error.key, caller)
        raise error

    def _record(
        self,
        event_type: EventType,
        key: int,
        caller: str,
        data: Optional[dict] = None,
    ) -> None:
        # Called only after the store write landed; the mutation stands either way
        if self.event_log is None:
            return
        try:
            self.event_log.append(event_type, key=key, caller=caller, data=data)
        except OSError as e:
            logger.warning(
                "Proposal %d: %s saved but not written to the event log: %s",
                key, event_type.value, e,
            )
