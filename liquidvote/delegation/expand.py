'''Expansion of direct ballots into weighted ballots.

Delegation is a default, not a commitment: a member who delegated but voted
directly in a session is counted by their own ballot, and their weight does
not go to their delegatee. The weight of a member who did not vote flows
along their delegation chain to the first member of the chain who did; if
nobody in the chain voted, it is not counted at all.
'''

import logging
import collections
import dataclasses
from typing import List, Dict, Iterable

from liquidvote.vote import Ballot, WeightedBallot, ValidationError
from liquidvote.delegation.graph import DelegationGraph

logger = logging.getLogger(__name__)


def latest_ballots(ballots: Iterable[Ballot]) -> Dict[str, Ballot]:
    '''Keep the last ballot of every voter.

    A ballot supersedes another of the same voter if it was cast later; if
    the casting time of either is unknown, the one coming later in the input
    does.

    :returns: Voter identifiers mapped to their ballots, in the order the
        voters first appear.
    :raises ValidationError: If the ballots belong to more than one session.
    '''
    latest = {}
    session_id = None
    for ballot in ballots:
        if session_id is None:
            session_id = ballot.session_id
        elif ballot.session_id != session_id:
            raise ValidationError(
                f'ballots of different sessions: {session_id!r}'
                f' and {ballot.session_id!r}'
            )
        previous = latest.get(ballot.voter_id)
        if (previous is None
                or previous.cast_at is None
                or ballot.cast_at is None
                or ballot.cast_at >= previous.cast_at):
            latest[ballot.voter_id] = ballot
    return latest


class BallotExpander:
    '''Expand the direct ballots of a session by the weight delegated to them.

    :param graph: The delegation graph of the scope of the session.
    '''
    def __init__(self, graph: DelegationGraph):
        self.graph = graph

    def expand(self, ballots: Iterable[Ballot]) -> List[WeightedBallot]:
        '''Produce one weighted ballot per direct voter.

        The weight of each ballot is 1 for its voter plus the nominal weight
        of every member who reaches the voter through delegations without
        passing another direct voter and did not vote directly.

        :param ballots: Direct ballots of the session.
        :returns: Weighted ballots, in the order their voters first appear
            in the input.
        :raises ValidationError: If the ballots belong to more than one
            session or any of them is already flagged as delegated.
        '''
        direct = latest_ballots(ballots)
        for ballot in direct.values():
            if ballot.is_delegated:
                raise ValidationError(
                    f'ballot of {ballot.voter_id} is already flagged delegated'
                )
        weighted = []
        for voter_id, ballot in direct.items():
            represented = self._represented(voter_id, direct)
            weight = 1.0 + sum(
                self.graph.outgoing[delegator].weight
                for delegator in represented
            )
            if represented:
                logger.debug('%s carries the weight of %s',
                             voter_id, sorted(represented))
            weighted.append(WeightedBallot(
                ballot=dataclasses.replace(
                    ballot, is_delegated=bool(represented)
                ),
                weight=weight,
                represented=frozenset(represented),
            ))
        return weighted

    def _represented(self, voter_id: str, direct: Dict[str, Ballot]
                     ) -> List[str]:
        found = []
        visited = {voter_id}
        queue = collections.deque([voter_id])
        while queue:
            for delegator in self.graph.delegators_of(queue.popleft()):
                if delegator in visited or delegator in direct:
                    continue
                visited.add(delegator)
                found.append(delegator)
                queue.append(delegator)
        return found


def expand_ballots(session_ballots: Iterable[Ballot],
                   delegation_graph: DelegationGraph,
                   ) -> List[WeightedBallot]:
    '''Expand the direct ballots of a session into weighted ballots.

    :param session_ballots: Direct ballots cast in the session.
    :param delegation_graph: The delegation graph of the scope of the
        session.
    '''
    return BallotExpander(delegation_graph).expand(session_ballots)
