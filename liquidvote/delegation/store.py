'''Interfaces to the storage of delegations and ballots.

The stores are external to Liquidvote; the abstract classes here describe
what it needs from them. The in-memory implementations serve as references
and for testing.
'''

import abc
import datetime
import itertools
import logging
import threading
import dataclasses
from typing import List, Dict, Iterable, Optional

from liquidvote.vote import Ballot, ValidationError
from liquidvote.delegation.core import Delegation, DuplicateDelegationError, \
    UnknownDelegationError, DelegationPermissionError
from liquidvote.delegation.cycle import CycleGuard, affected_scopes
from liquidvote.delegation.graph import DelegationGraph

logger = logging.getLogger(__name__)


class DelegationStore(metaclass=abc.ABCMeta):
    '''A store of delegation records.'''
    @abc.abstractmethod
    def get_delegations(self,
                        at: Optional[datetime.datetime] = None,
                        ) -> List[Delegation]:
        '''Return the delegations in force in all scopes.

        :param at: Time of the query; now by default.
        '''
        raise NotImplementedError

    def get_active_delegations(self,
                               topic_id: Optional[str] = None,
                               at: Optional[datetime.datetime] = None,
                               ) -> List[Delegation]:
        '''Return the delegations in force that can apply in a scope.

        For a topic, these are the delegations for the topic and the general
        delegations; for the general scope, the general delegations only.
        '''
        return [
            deleg for deleg in self.get_delegations(at)
            if deleg.applies_to(topic_id)
        ]

    @abc.abstractmethod
    def create_delegation(self, delegation: Delegation) -> str:
        '''Commit a new delegation.

        Implementations must check the delegation against their latest state
        in the same transaction as the write.

        :returns: Identifier of the new delegation.
        :raises CircularDelegationError: If the delegation would close
            a cycle.
        :raises DuplicateDelegationError: If the delegator already has
            a delegation in force in the scope.
        '''
        raise NotImplementedError

    @abc.abstractmethod
    def revoke_delegation(self, delegation_id: str, delegator_id: str
                          ) -> Delegation:
        '''Revoke a delegation of the delegator.

        :returns: The revoked delegation record.
        :raises UnknownDelegationError: If there is no such delegation.
        :raises DelegationPermissionError: If the delegation belongs to
            another delegator.
        '''
        raise NotImplementedError


class MemoryDelegationStore(DelegationStore):
    '''A delegation store holding its records in memory.

    Writes are serialized by a lock, inside which the new delegation is
    validated against the current records before being added, so two
    concurrent writes cannot jointly close a cycle.

    :param delegations: Initial delegation records. Records without an
        identifier are given one.
    '''
    def __init__(self, delegations: Iterable[Delegation] = ()):
        self._lock = threading.Lock()
        self._ids = itertools.count(1)
        self._records: Dict[str, Delegation] = {}
        for deleg in delegations:
            self._add(deleg)

    def _add(self, delegation: Delegation) -> Delegation:
        if delegation.id is None:
            delegation = dataclasses.replace(
                delegation, id=f'd{next(self._ids)}'
            )
        self._records[delegation.id] = delegation
        return delegation

    def get_delegations(self,
                        at: Optional[datetime.datetime] = None,
                        ) -> List[Delegation]:
        with self._lock:
            records = list(self._records.values())
        return [deleg for deleg in records if deleg.in_force(at)]

    def get_delegation(self, delegation_id: str) -> Delegation:
        try:
            return self._records[delegation_id]
        except KeyError as err:
            raise UnknownDelegationError(delegation_id) from err

    def create_delegation(self, delegation: Delegation) -> str:
        with self._lock:
            current = [
                deleg for deleg in self._records.values()
                if deleg.in_force(delegation.created_at)
            ]
            for deleg in current:
                if (deleg.delegator_id == delegation.delegator_id
                        and deleg.topic_id == delegation.topic_id):
                    raise DuplicateDelegationError(
                        delegation.delegator_id, delegation.topic_id
                    )
            for scope in affected_scopes(delegation.delegator_id, current,
                                         delegation.topic_id,
                                         delegation.created_at):
                graph = DelegationGraph.build(
                    current, scope, delegation.created_at
                )
                CycleGuard(graph).check(
                    delegation.delegator_id, delegation.delegatee_id
                )
            committed = self._add(delegation)
        logger.info('created delegation %s: %s -> %s', committed.id,
                    committed.delegator_id, committed.delegatee_id)
        return committed.id

    def revoke_delegation(self, delegation_id: str, delegator_id: str
                          ) -> Delegation:
        with self._lock:
            delegation = self.get_delegation(delegation_id)
            if delegation.delegator_id != delegator_id:
                raise DelegationPermissionError(
                    f'{delegator_id} cannot revoke delegation'
                    f' {delegation_id} of {delegation.delegator_id}'
                )
            revoked = dataclasses.replace(delegation, active=False)
            self._records[delegation_id] = revoked
        logger.info('revoked delegation %s', delegation_id)
        return revoked

    def __len__(self) -> int:
        return len(self._records)


class BallotStore(metaclass=abc.ABCMeta):
    '''A store of ballots.'''
    @abc.abstractmethod
    def get_ballots_for_session(self, session_id: str) -> List[Ballot]:
        '''Return all ballots cast in the session, in order of casting.'''
        raise NotImplementedError

    @abc.abstractmethod
    def cast_ballot(self, ballot: Ballot) -> None:
        raise NotImplementedError


class MemoryBallotStore(BallotStore):
    '''A ballot store holding its ballots in memory.

    All ballots are kept; later ballots of a voter supersede the earlier ones
    when the session is expanded.
    '''
    def __init__(self, ballots: Iterable[Ballot] = ()):
        self._lock = threading.Lock()
        self._ballots: Dict[str, List[Ballot]] = {}
        for ballot in ballots:
            self.cast_ballot(ballot)

    def get_ballots_for_session(self, session_id: str) -> List[Ballot]:
        with self._lock:
            return list(self._ballots.get(session_id, []))

    def cast_ballot(self, ballot: Ballot) -> None:
        if ballot.is_delegated:
            raise ValidationError('ballots are cast undelegated')
        with self._lock:
            self._ballots.setdefault(ballot.session_id, []).append(ballot)
