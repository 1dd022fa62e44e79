'''Detection of delegations that would close a cycle.

Delegation graphs stay acyclic only because every new delegation is checked
here before it is committed.
'''

import datetime
import logging
from typing import List, Iterable, Optional

from liquidvote.delegation.core import Delegation, CircularDelegationError
from liquidvote.delegation.graph import DelegationGraph

logger = logging.getLogger(__name__)


class CycleGuard:
    '''Check candidate delegations against the delegation graph of a scope.

    :param graph: The current delegation graph of the scope.
    '''
    def __init__(self, graph: DelegationGraph):
        self.graph = graph

    def would_create_cycle(self, delegator_id: str, delegatee_id: str) -> bool:
        '''Return True if delegating from delegator to delegatee closes a cycle.

        Follows the effective delegations from the candidate delegatee; if the
        walk reaches the delegator, the new delegation would close a cycle.
        A delegation to oneself is a cycle too. The walk takes at most as
        many steps as there are members in the graph; a longer walk means the
        graph already contains a cycle and is reported as one.
        '''
        if delegator_id == delegatee_id:
            return True
        max_steps = len(self.graph.participants) + 1
        current = delegatee_id
        for step in range(max_steps):
            if current is None:
                return False
            if current == delegator_id:
                logger.debug('cycle found after %d steps', step)
                return True
            current = self.graph.delegatee_of(current)
        if current is None:
            return False
        logger.warning(
            'delegation walk from %s exceeded %d steps in scope %s',
            delegatee_id, max_steps, self.graph.topic_id
        )
        return True

    def check(self, delegator_id: str, delegatee_id: str) -> None:
        '''Check a candidate delegation.

        :raises CircularDelegationError: If the delegation would close
            a cycle.
        '''
        if self.would_create_cycle(delegator_id, delegatee_id):
            logger.info('rejecting delegation %s -> %s in scope %s',
                        delegator_id, delegatee_id, self.graph.topic_id)
            raise CircularDelegationError(
                delegator_id, delegatee_id, self.graph.topic_id
            )


def affected_scopes(delegator_id: str,
                    delegations: Iterable[Delegation],
                    topic_id: Optional[str] = None,
                    at: Optional[datetime.datetime] = None,
                    ) -> List[Optional[str]]:
    '''List the scopes a new delegation of the delegator would be effective in.

    A topic delegation is effective in its topic only. A general delegation
    is effective in the general scope and, as a fallback, in every topic of
    the snapshot where the delegator has no topic delegation in force.
    '''
    if topic_id is not None:
        return [topic_id]
    delegations = list(delegations)
    topics = sorted({
        deleg.topic_id for deleg in delegations
        if deleg.topic_id is not None and deleg.in_force(at)
    })
    overridden = {
        deleg.topic_id for deleg in delegations
        if deleg.delegator_id == delegator_id
        and deleg.topic_id is not None
        and deleg.in_force(at)
    }
    return [None] + [topic for topic in topics if topic not in overridden]


def would_create_cycle(delegator_id: str,
                       delegatee_id: str,
                       delegations: Iterable[Delegation],
                       topic_id: Optional[str] = None,
                       at: Optional[datetime.datetime] = None,
                       ) -> bool:
    '''Return True if the delegation would close a cycle in any scope.

    :param delegator_id: The delegator of the candidate delegation.
    :param delegatee_id: Its delegatee.
    :param delegations: A snapshot of delegation records.
    :param topic_id: Topic of the candidate delegation; None for a general
        delegation, which is checked in all scopes it would be effective in.
    :param at: Time of the snapshot; now by default.
    '''
    delegations = list(delegations)
    for scope in affected_scopes(delegator_id, delegations, topic_id, at):
        graph = DelegationGraph.build(delegations, scope, at)
        if CycleGuard(graph).would_create_cycle(delegator_id, delegatee_id):
            return True
    return False
