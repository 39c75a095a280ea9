import logging

from berrybuild.core.identity import IdentifierResolver, identifier_name, marked_identifier_name
from tests.domain import Account, Gadget, Node, Sealed, Ticket
from tests.models import Project, User


class Custom:
    __identifier__ = 'code'
    code: str

    def __init__(self):
        self.code = None


class WithSetter:
    id: int

    def __init__(self):
        self.id = None
        self.calls = []

    def set_id(self, value):
        self.calls.append(value)
        self.id = value * 10


def test_identifier_name_discovery():
    assert identifier_name(User) == 'id'
    assert marked_identifier_name(User) == 'id'  # mapper primary key
    assert identifier_name(Ticket) == 'key'
    assert identifier_name(Custom) == 'code'
    assert marked_identifier_name(Account) is None
    assert identifier_name(Account) == 'id'


def test_read_identifier():
    r = IdentifierResolver()
    acc = Account()
    assert r.read_identifier(acc) is None
    acc.id = 9
    assert r.read_identifier(acc) == 9
    assert r.read_identifier(Ticket(key='T-1')) == 'T-1'
    assert r.read_identifier(Sealed()) is None
    assert r.read_identifier(None) is None
    assert r.read_identifier(Project()) is None


def test_write_prefers_set_id():
    r = IdentifierResolver()
    obj = WithSetter()
    assert r.write_identifier_outcome(obj, 4).ok
    assert obj.calls == [4]
    assert obj.id == 40


def test_write_falls_back_when_set_id_raises(caplog):
    caplog.set_level(logging.DEBUG, logger='berrybuild')
    r = IdentifierResolver()
    g = Gadget()
    r.write_identifier(g, 7)
    assert g.id == 7
    assert 'set_id failed' in caplog.text


def test_write_uses_marked_field_and_sqlalchemy_pk():
    r = IdentifierResolver()
    t = Ticket()
    r.write_identifier(t, 'T-9')
    assert t.key == 'T-9'
    u = User()
    r.write_identifier(u, 3)
    assert u.id == 3
    n = Node()
    r.write_identifier(n, 5)
    assert n.id == 5


def test_write_without_identifier_is_silent():
    r = IdentifierResolver()
    s = Sealed()
    outcome = r.write_identifier_outcome(s, 1)
    assert not outcome.ok
    r.write_identifier(s, 1)  # no exception
    assert not hasattr(s, 'id')
