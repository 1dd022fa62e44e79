"""Liquidvote - delegation resolution and vote tabulation for liquid democracy.

In a liquid democracy, every member of an organization may either vote on a
proposal directly or delegate their voting weight to another member, who may
in turn delegate onwards. Liquidvote covers the two computational parts of
such a system:

-   Resolving the delegations. The ``delegation`` subpackage builds the
    delegation graph for a topic scope (:mod:`delegation.graph`), refuses
    delegations that would close a cycle (:mod:`delegation.cycle`), computes
    the weight a member represents (:mod:`delegation.weight`) and expands the
    direct ballots of a vote session into weighted ballots
    (:mod:`delegation.expand`).
-   Tabulating the weighted ballots. The ``evaluate`` subpackage contains
    evaluators for fifteen voting methods, from plurality to Kemeny-Young;
    the ballot choices they accept are defined and validated in the
    :mod:`vote` module and the :mod:`convert` module reshapes them between
    evaluation stages.

The :class:`system.VotingSystem` objects from the :mod:`system` module bind
each voting method to its evaluator and ballot validator, and
:func:`system.calculate_results` dispatches to them. The :mod:`engine` module
wires everything to the external stores of delegations, ballots and members.
"""
