"""Plain (non-ORM) domain classes used by berrybuild tests."""
from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Annotated, ClassVar, FrozenSet, List, Optional, Set

from berrybuild import identifier_field, ignore, relation


class Account:
    """Plain annotated class with conventional accessor methods."""

    kind: ClassVar[str] = 'account'

    id: Optional[int]
    owner: Optional[str]
    balance: int
    rate: float
    limit: Decimal
    is_frozen: bool
    tags: List[str]
    _secret: str

    def __init__(self):
        self.id = None
        self.owner = None
        self.balance = -1
        self.rate = -1.0
        self.limit = Decimal('-1')
        self.is_frozen = True
        self.tags = ['preset']
        self._secret = 'hidden'
        self.setter_calls: List[str] = []

    def set_owner(self, value):
        self.setter_calls.append('owner')
        self.owner = value.upper() if value else value

    def get_balance(self):
        return self.balance


class SavingsAccount(Account):
    interest: float

    def __init__(self):
        super().__init__()
        self.interest = -1.0


@dataclass
class Node:
    """Dataclass graph node with a to-one and a to-many relation."""

    name: str = ''
    id: Optional[int] = None
    next: Annotated[Optional[Node], relation()] = None
    children: Annotated[List[Node], relation()] = field(default_factory=list)

    def __hash__(self):
        return id(self)

    def __eq__(self, other):
        return self is other


@dataclass
class Tag:
    """Value-equal by name, like many hand-written domain objects."""

    name: str = ''
    id: Optional[int] = None

    def __eq__(self, other):
        return isinstance(other, Tag) and other.name == self.name

    def __hash__(self):
        return hash(self.name)


@dataclass
class Post:
    id: Optional[int] = None
    tags: Annotated[List[Tag], relation()] = field(default_factory=list)


@dataclass
class Branch:
    """Starts out attached to a preset parent node."""

    id: Optional[int] = None
    parent: Annotated[Optional[Node], relation()] = None

    def __post_init__(self):
        if self.parent is None:
            self.parent = Node(name='preset')


@dataclass
class Department:
    id: Optional[int] = None
    title: str = ''


@dataclass
class Employee:
    id: Optional[int] = None
    name: str = ''
    department: Annotated[Optional[Department], relation(as_id_only=True)] = None
    skills: Set[str] = field(default_factory=set)
    nicknames: FrozenSet[str] = frozenset()
    notes: Annotated[Optional[str], ignore()] = None


@dataclass
class Ticket:
    key: Optional[str] = identifier_field()
    title: str = ''
    done: bool = False


class Gadget:
    """Class whose ``set_id`` rejects every value."""

    id: Optional[int]
    label: str

    def __init__(self):
        self.id = None
        self.label = ''

    def set_id(self, value):
        raise RuntimeError('identifiers are read-only')


class Sealed:
    """No identifier attribute at all."""

    __slots__ = ('name',)

    name: str

    def __init__(self):
        self.name = ''


class NeedsArgs:
    value: int

    def __init__(self, value):
        self.value = value


@dataclass
class Broken:
    """Dataclass flagging a plain scalar as id-only."""

    id: Optional[int] = None
    code: Annotated[str, relation(single=False, as_id_only=True)] = ''
