'''The delegation graph of a scope.

:class:`DelegationGraph` indexes the effective delegations of a scope by
member identifier. Nodes refer to each other only through identifiers, so
all traversals are walks over the index.
'''

from __future__ import annotations

import collections
import datetime
import logging
from typing import List, Dict, Set, Iterable, Optional

from liquidvote.delegation.core import Delegation, DelegationNode, \
    effective_delegations
from liquidvote.member import MemberDirectory

logger = logging.getLogger(__name__)


class DelegationGraph:
    '''Effective delegations of a single scope.

    Use :meth:`build` to construct the graph from delegation records.

    :param outgoing: Delegator identifiers mapped to their effective
        delegations.
    :param topic_id: The scope; None for the general scope.
    :param members: Directory to attach member records to nodes from.
    '''
    def __init__(self,
                 outgoing: Dict[str, Delegation],
                 topic_id: Optional[str] = None,
                 members: Optional[MemberDirectory] = None,
                 ):
        self.outgoing = dict(outgoing)
        self.topic_id = topic_id
        self.members = members
        self.incoming: Dict[str, List[Delegation]] = {}
        for deleg in self.outgoing.values():
            self.incoming.setdefault(deleg.delegatee_id, []).append(deleg)

    @classmethod
    def build(cls,
              delegations: Iterable[Delegation],
              topic_id: Optional[str] = None,
              at: Optional[datetime.datetime] = None,
              members: Optional[MemberDirectory] = None,
              ) -> DelegationGraph:
        '''Build the graph of a scope from a snapshot of delegations.

        Expired and revoked delegations are left out; within a topic, topic
        delegations override general ones.

        :param delegations: Delegation records.
        :param topic_id: The scope; None for the general scope.
        :param at: Time of the snapshot; now by default.
        :param members: Directory to attach member records to nodes from.
        :raises DuplicateDelegationError: If a delegator has two delegations
            in force for the scope.
        '''
        graph = cls(effective_delegations(delegations, topic_id, at),
                    topic_id=topic_id, members=members)
        logger.debug('built delegation graph with %d edges for scope %s',
                     len(graph.outgoing), topic_id)
        return graph

    @property
    def participants(self) -> Set[str]:
        '''All members that take part in any delegation of the scope.'''
        return set(self.outgoing).union(self.incoming)

    def delegatee_of(self, user_id: str) -> Optional[str]:
        deleg = self.outgoing.get(user_id)
        return None if deleg is None else deleg.delegatee_id

    def delegators_of(self, user_id: str) -> List[str]:
        return [deleg.delegator_id for deleg in self.incoming.get(user_id, [])]

    def chain(self, user_id: str) -> List[str]:
        '''Follow effective delegations from a member to the end of its chain.

        :returns: The members of the chain in order, starting with the given
            one. If the data contain a cycle, the walk stops before revisiting
            a member.
        '''
        chain = [user_id]
        visited = {user_id}
        current = self.delegatee_of(user_id)
        while current is not None:
            if current in visited:
                logger.warning('delegation cycle through %s in scope %s',
                               current, self.topic_id)
                break
            chain.append(current)
            visited.add(current)
            current = self.delegatee_of(current)
        return chain

    def subtree(self, user_id: str) -> List[str]:
        '''Return all members that delegate to the member, transitively.

        The member itself is not included. Members are listed in
        breadth-first order.
        '''
        found = []
        visited = {user_id}
        queue = collections.deque([user_id])
        while queue:
            for delegator in self.delegators_of(queue.popleft()):
                if delegator not in visited:
                    visited.add(delegator)
                    found.append(delegator)
                    queue.append(delegator)
        return found

    def node(self, user_id: str, depth: Optional[int] = None
             ) -> DelegationNode:
        '''Create the node view of a member.'''
        return DelegationNode(
            user_id=user_id,
            member=(
                None if self.members is None
                else self.members.get_member(user_id)
            ),
            incoming=list(self.incoming.get(user_id, [])),
            outgoing=self.outgoing.get(user_id),
            depth=depth,
        )

    def rooted(self, root_id: str) -> Dict[str, DelegationNode]:
        '''Collect every member connected to the root by delegations.

        Follows the chain of the root outwards and all delegations into the
        chain inwards, recursively. The depth of each node is its distance
        from the root over delegations in either direction.

        :param root_id: Identifier of the member to start from.
        :returns: Member identifiers mapped to their nodes, the root first.
        :raises UnknownMemberError: If a member directory is attached and
            misses some of the members.
        '''
        depths = {root_id: 0}
        queue = collections.deque([root_id])
        while queue:
            current = queue.popleft()
            neighbours = self.delegators_of(current)
            delegatee = self.delegatee_of(current)
            if delegatee is not None:
                neighbours.insert(0, delegatee)
            for neighbour in neighbours:
                if neighbour not in depths:
                    depths[neighbour] = depths[current] + 1
                    queue.append(neighbour)
        return {
            user_id: self.node(user_id, depth)
            for user_id, depth in depths.items()
        }


def get_delegation_graph(root_id: str,
                         delegations: Iterable[Delegation],
                         topic_id: Optional[str] = None,
                         at: Optional[datetime.datetime] = None,
                         members: Optional[MemberDirectory] = None,
                         ) -> Dict[str, DelegationNode]:
    '''Return the nodes of all members connected to the root in a scope.

    :param root_id: Identifier of the member to start from.
    :param delegations: A snapshot of delegation records.
    :param topic_id: The scope; None for the general scope.
    :param at: Time of the snapshot; now by default.
    :param members: Directory to attach member records to nodes from.
    '''
    graph = DelegationGraph.build(delegations, topic_id, at, members)
    return graph.rooted(root_id)
