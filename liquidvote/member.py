'''Organization members and the directory they are looked up in.

Members are owned by an external user directory; Liquidvote only reads them,
to attach them to delegation graph nodes for display. The
:class:`MemberDirectory` abstract class is the interface to that directory
and :class:`MemoryMemberDirectory` is an in-memory implementation of it.
'''

from __future__ import annotations

import abc
import enum
import dataclasses
from typing import Dict, Iterable, Optional


class Role(enum.Enum):
    '''Role of a member in the organization.'''
    ADMIN = 'admin'
    MODERATOR = 'moderator'
    PROPOSER = 'proposer'
    USER = 'user'


class UnknownMemberError(KeyError):
    '''A member with the given identifier is not in the directory.'''
    def __init__(self, user_id: str):
        self.user_id = user_id
        super().__init__(f'unknown member: {user_id}')


@dataclasses.dataclass(frozen=True)
class Member:
    '''A member of the organization.

    :param id: Unique identifier of the member.
    :param name: Display name.
    :param role: Role of the member.
    :param email: Contact address, if known.
    '''
    id: str
    name: str
    role: Role = Role.USER
    email: Optional[str] = None

    def __str__(self) -> str:
        return self.name


class MemberDirectory(metaclass=abc.ABCMeta):
    '''A source of member records.'''
    @abc.abstractmethod
    def get_member(self, user_id: str) -> Member:
        '''Return the member with the given identifier.

        :raises UnknownMemberError: If there is no such member.
        '''
        raise NotImplementedError


class MemoryMemberDirectory(MemberDirectory):
    '''A member directory holding its members in memory.

    :param members: Members to hold.
    '''
    def __init__(self, members: Iterable[Member] = ()):
        self._members: Dict[str, Member] = {
            member.id: member for member in members
        }

    def get_member(self, user_id: str) -> Member:
        try:
            return self._members[user_id]
        except KeyError as err:
            raise UnknownMemberError(user_id) from err

    def __len__(self) -> int:
        return len(self._members)
