"""Input/output of vote sessions.

Vote sessions, with their ballots, delegations and members, are stored in
JSON session files; see :mod:`liquidvote.io.session`.
"""
