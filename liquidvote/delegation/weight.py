'''Transitive voting weight represented by a member.

The represented weight is informational, shown to members to tell them how
many others they speak for. The weight a ballot actually carries in a vote
session also depends on who voted directly; see
:mod:`liquidvote.delegation.expand`.
'''

import datetime
from typing import Set, Iterable, Optional

from liquidvote.delegation.core import Delegation
from liquidvote.delegation.graph import DelegationGraph


class WeightResolver:
    '''Compute represented weights in the delegation graph of a scope.

    :param graph: The delegation graph of the scope.
    '''
    def __init__(self, graph: DelegationGraph):
        self.graph = graph

    def represented_voters(self, user_id: str) -> Set[str]:
        '''Return the members delegating to the member, transitively.'''
        return set(self.graph.subtree(user_id))

    def represented_weight(self, user_id: str) -> float:
        '''Return the weight of the member and all members delegating to them.

        That is 1 for the member plus the nominal weight of the delegation of
        every member in their incoming subtree. In a chain where A delegates
        to B and B to C, C represents a weight of 3.
        '''
        return 1.0 + sum(
            self.graph.outgoing[delegator].weight
            for delegator in self.graph.subtree(user_id)
        )


def represented_weight(user_id: str,
                       delegations: Iterable[Delegation],
                       topic_id: Optional[str] = None,
                       at: Optional[datetime.datetime] = None,
                       ) -> float:
    '''Compute the weight a member represents in a scope.

    :param user_id: Identifier of the member.
    :param delegations: A snapshot of delegation records.
    :param topic_id: The scope; None for the general scope.
    :param at: Time of the snapshot; now by default.
    '''
    graph = DelegationGraph.build(delegations, topic_id, at)
    return WeightResolver(graph).represented_weight(user_id)


def represented_voters(user_id: str,
                       delegations: Iterable[Delegation],
                       topic_id: Optional[str] = None,
                       at: Optional[datetime.datetime] = None,
                       ) -> Set[str]:
    graph = DelegationGraph.build(delegations, topic_id, at)
    return WeightResolver(graph).represented_voters(user_id)
