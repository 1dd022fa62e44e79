'''Delegation records, graph nodes and the scope rule.

A delegation passes the voting weight of its delegator to its delegatee,
either generally (for all topics) or for a single topic. Within a topic, the
delegator's delegation for that topic takes precedence over their general
delegation, which only serves as a fallback; within the general scope, only
general delegations apply. So every member has at most one effective outgoing
delegation in any scope, and the delegations of a scope form a forest of
chains that end at members who did not delegate.
'''

from __future__ import annotations

import datetime
import dataclasses
from typing import List, Dict, Iterable, Optional

from liquidvote.vote import ValidationError, is_number
from liquidvote.member import Member


class DelegationError(Exception):
    '''A delegation cannot be created or resolved. Base class.'''
    pass


class CircularDelegationError(DelegationError):
    '''A delegation would close a delegation cycle.

    :param delegator_id: The delegator of the rejected delegation.
    :param delegatee_id: Its delegatee.
    :param topic_id: The scope in which the cycle would arise; None for the
        general scope.
    '''
    def __init__(self,
                 delegator_id: str,
                 delegatee_id: str,
                 topic_id: Optional[str] = None,
                 ):
        self.delegator_id = delegator_id
        self.delegatee_id = delegatee_id
        self.topic_id = topic_id
        scope = 'general scope' if topic_id is None else f'topic {topic_id}'
        super().__init__(
            f'delegation {delegator_id} -> {delegatee_id} would create'
            f' a cycle in {scope}'
        )


class InvalidDelegationError(ValidationError):
    '''A delegation record is malformed.'''
    pass


class DuplicateDelegationError(ValidationError):
    '''A delegator already has a delegation in force in the scope.

    :param delegator_id: The delegator.
    :param topic_id: The scope; None for the general scope.
    '''
    def __init__(self, delegator_id: str, topic_id: Optional[str] = None):
        self.delegator_id = delegator_id
        self.topic_id = topic_id
        scope = 'general scope' if topic_id is None else f'topic {topic_id}'
        super().__init__(
            f'{delegator_id} already has an active delegation in {scope}'
        )


class UnknownDelegationError(DelegationError, LookupError):
    '''A delegation with the given identifier does not exist.'''
    def __init__(self, delegation_id: str):
        self.delegation_id = delegation_id
        super().__init__(f'unknown delegation: {delegation_id}')


class DelegationPermissionError(DelegationError):
    '''A member attempted to change a delegation that is not theirs.'''
    pass


@dataclasses.dataclass(frozen=True)
class Delegation:
    '''A delegation of voting weight from one member to another.

    :param delegator_id: The member giving their weight.
    :param delegatee_id: The member receiving it.
    :param topic_id: Topic the delegation is limited to; None for a general
        delegation that applies to all topics.
    :param valid_until: End of validity. None means the delegation does not
        expire.
    :param weight: Nominal weight passed on; must be positive.
    :param created_at: Time of creation.
    :param active: False once the delegation has been revoked.
    :param id: Identifier assigned by the delegation store.
    '''
    delegator_id: str
    delegatee_id: str
    topic_id: Optional[str] = None
    valid_until: Optional[datetime.datetime] = None
    weight: float = 1.0
    created_at: Optional[datetime.datetime] = None
    active: bool = True
    id: Optional[str] = None

    def __post_init__(self):
        for role in ('delegator_id', 'delegatee_id'):
            value = getattr(self, role)
            if not isinstance(value, str) or not value:
                raise InvalidDelegationError(f'invalid {role}: {value!r}')
        if not is_number(self.weight) or not self.weight > 0:
            raise InvalidDelegationError(
                f'delegation weight must be positive, got {self.weight!r}'
            )

    @property
    def is_general(self) -> bool:
        return self.topic_id is None

    def in_force(self, at: Optional[datetime.datetime] = None) -> bool:
        '''Return True if the delegation is active and unexpired.

        :param at: Time of the check; now by default.
        '''
        if not self.active:
            return False
        if self.valid_until is None:
            return True
        if at is None:
            at = datetime.datetime.now(self.valid_until.tzinfo)
        return at < self.valid_until

    def applies_to(self, topic_id: Optional[str]) -> bool:
        '''Return True if the delegation can apply in the given scope.

        General delegations apply to all scopes, topic delegations only to
        their topic.
        '''
        return self.topic_id is None or self.topic_id == topic_id


@dataclasses.dataclass
class DelegationNode:
    '''A member's place in the delegation graph of a scope.

    :param user_id: Identifier of the member.
    :param member: The member record, if a directory was available.
    :param incoming: Delegations in force that have the member as delegatee.
    :param outgoing: The member's effective delegation, if any.
    :param depth: Graph distance from the root of the query; None if the
        node was not reached from a root.
    '''
    user_id: str
    member: Optional[Member] = None
    incoming: List[Delegation] = dataclasses.field(default_factory=list)
    outgoing: Optional[Delegation] = None
    depth: Optional[int] = None

    @property
    def delegatee_id(self) -> Optional[str]:
        return None if self.outgoing is None else self.outgoing.delegatee_id

    @property
    def delegator_ids(self) -> List[str]:
        return [deleg.delegator_id for deleg in self.incoming]


def _scope_index(delegations: Iterable[Delegation],
                 topic_id: Optional[str],
                 ) -> Dict[str, Delegation]:
    index = {}
    for deleg in delegations:
        if deleg.delegator_id in index:
            raise DuplicateDelegationError(deleg.delegator_id, topic_id)
        index[deleg.delegator_id] = deleg
    return index


def effective_delegations(delegations: Iterable[Delegation],
                          topic_id: Optional[str] = None,
                          at: Optional[datetime.datetime] = None,
                          ) -> Dict[str, Delegation]:
    '''Select the delegation that is effective for every delegator in a scope.

    Delegations not in force are left out. Within a topic, a topic delegation
    overrides the general delegation of the same delegator.

    :param delegations: A snapshot of delegation records.
    :param topic_id: The scope; None for the general scope.
    :param at: Time of the snapshot; now by default.
    :returns: Delegator identifiers mapped to their effective delegations.
    :raises DuplicateDelegationError: If a delegator has two delegations in
        force for the same scope.
    '''
    in_force = [deleg for deleg in delegations if deleg.in_force(at)]
    effective = _scope_index(
        (deleg for deleg in in_force if deleg.is_general), None
    )
    if topic_id is not None:
        effective.update(_scope_index(
            (deleg for deleg in in_force if deleg.topic_id == topic_id),
            topic_id
        ))
    return effective
