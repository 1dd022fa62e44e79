'''The liquid democracy engine: delegation resolution and tabulation together.

:class:`LiquidDemocracyEngine` reads delegations and ballots from their
stores, resolves the delegations of the scope of a vote session and
tabulates the session by its voting method. Every call works on a fresh
snapshot of the stores; nothing is cached between calls.
'''

import datetime
import logging
from typing import Dict, List, Optional, Union, Iterable

import liquidvote.system
import liquidvote.delegation.cycle
from liquidvote.delegation.core import Delegation, DelegationNode, \
    CircularDelegationError
from liquidvote.delegation.graph import DelegationGraph
from liquidvote.delegation.weight import WeightResolver
from liquidvote.delegation.expand import BallotExpander
from liquidvote.delegation.store import DelegationStore, BallotStore
from liquidvote.evaluate.core import Result, VotingMethod
from liquidvote.member import MemberDirectory
from liquidvote.system import VoteSession, VotingSystem
from liquidvote.vote import Ballot, WeightedBallot

logger = logging.getLogger(__name__)


class LiquidDemocracyEngine:
    '''Resolve delegations and tabulate vote sessions.

    :param delegation_store: Source of delegation records, also used to
        commit new delegations.
    :param ballot_store: Source of the ballots of vote sessions.
    :param member_directory: Directory to attach member records to
        delegation graph nodes from.
    :param systems: Registry of voting systems to use instead of the default.
    '''
    def __init__(self,
                 delegation_store: DelegationStore,
                 ballot_store: Optional[BallotStore] = None,
                 member_directory: Optional[MemberDirectory] = None,
                 systems: Optional[Dict[VotingMethod, VotingSystem]] = None,
                 ):
        self.delegation_store = delegation_store
        self.ballot_store = ballot_store
        self.member_directory = member_directory
        self.systems = systems

    def build_graph(self,
                    topic_id: Optional[str] = None,
                    at: Optional[datetime.datetime] = None,
                    ) -> DelegationGraph:
        '''Build the current delegation graph of a scope.'''
        return DelegationGraph.build(
            self.delegation_store.get_active_delegations(topic_id, at),
            topic_id=topic_id,
            at=at,
            members=self.member_directory,
        )

    def get_delegation_graph(self,
                             root_user_id: str,
                             topic_id: Optional[str] = None,
                             at: Optional[datetime.datetime] = None,
                             ) -> Dict[str, DelegationNode]:
        '''Return the nodes of all members connected to the root in a scope.'''
        return self.build_graph(topic_id, at).rooted(root_user_id)

    def represented_weight(self,
                           user_id: str,
                           topic_id: Optional[str] = None,
                           at: Optional[datetime.datetime] = None,
                           ) -> float:
        '''Return the weight the member represents in a scope.'''
        return WeightResolver(
            self.build_graph(topic_id, at)
        ).represented_weight(user_id)

    def would_create_cycle(self,
                           delegator_id: str,
                           delegatee_id: str,
                           topic_id: Optional[str] = None,
                           at: Optional[datetime.datetime] = None,
                           ) -> bool:
        '''Return True if the delegation would close a cycle.

        A general delegation is checked in every scope it would be effective
        in.
        '''
        return liquidvote.delegation.cycle.would_create_cycle(
            delegator_id, delegatee_id,
            self.delegation_store.get_delegations(at),
            topic_id=topic_id,
            at=at,
        )

    def create_delegation(self, delegation: Delegation) -> str:
        '''Validate and commit a new delegation.

        The delegation is checked for cycles against the current snapshot
        first; the store repeats the check atomically with the write.

        :returns: Identifier of the new delegation.
        :raises CircularDelegationError: If the delegation would close
            a cycle. The store is left unchanged.
        '''
        if self.member_directory is not None:
            # both parties must be known members
            self.member_directory.get_member(delegation.delegator_id)
            self.member_directory.get_member(delegation.delegatee_id)
        if self.would_create_cycle(delegation.delegator_id,
                                   delegation.delegatee_id,
                                   delegation.topic_id,
                                   delegation.created_at):
            logger.info('rejecting delegation %s -> %s',
                        delegation.delegator_id, delegation.delegatee_id)
            raise CircularDelegationError(
                delegation.delegator_id,
                delegation.delegatee_id,
                delegation.topic_id,
            )
        return self.delegation_store.create_delegation(delegation)

    def revoke_delegation(self, delegation_id: str, delegator_id: str
                          ) -> Delegation:
        return self.delegation_store.revoke_delegation(
            delegation_id, delegator_id
        )

    def expand_ballots(self,
                       session_ballots: Iterable[Ballot],
                       topic_id: Optional[str] = None,
                       at: Optional[datetime.datetime] = None,
                       ) -> List[WeightedBallot]:
        '''Expand direct ballots by the delegations of a scope.'''
        return BallotExpander(self.build_graph(topic_id, at)).expand(
            session_ballots
        )

    def calculate_results(self,
                          method: Union[VotingMethod, str],
                          weighted_ballots: Iterable[WeightedBallot],
                          options: Iterable[str],
                          ) -> Result:
        return liquidvote.system.calculate_results(
            method, list(weighted_ballots), options, systems=self.systems
        )

    def tally_session(self,
                      session: VoteSession,
                      at: Optional[datetime.datetime] = None,
                      ) -> Result:
        '''Tabulate a vote session from the current state of the stores.

        Fetches the ballots of the session, expands them by the delegations
        of the topic of the session and evaluates them by its voting method.

        :param session: The vote session.
        :param at: Time at which the delegations are resolved; the end of the
            session if it has one, now otherwise.
        '''
        if self.ballot_store is None:
            raise ValueError('no ballot store to tally the session from')
        if at is None:
            at = session.ends_at
        ballots = self.ballot_store.get_ballots_for_session(session.id)
        logger.info('tallying session %s: %d ballots by %s',
                    session.id, len(ballots), session.method.value)
        weighted = self.expand_ballots(ballots, session.topic_id, at)
        return session.calculate_results(weighted, self.systems)
