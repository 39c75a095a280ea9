import abc
import logging
from dataclasses import dataclass
from typing import Optional

import pytest

from berrybuild import Builder, BuilderConfigError, BuilderSchema, FieldPolicy, Mode, field, relation
from tests.domain import Account, NeedsArgs, Node
from tests.models import User
from tests.schema import AccountBuilder, UserBuilder, UserRefBuilder, ref_schema, schema


def test_registry_lookup():
    assert schema.get(Account) is AccountBuilder
    assert schema.get(NeedsArgs) is None
    assert ref_schema.get(User) is UserRefBuilder
    assert AccountBuilder.__berrybuild_spec__.target is Account


def test_fields_for_uses_builder_fields_then_introspection():
    ref_fields = {f.name for f in ref_schema.fields_for(User)}
    assert 'role_id' not in ref_fields
    assert 'role_id' in {f.name for f in schema.fields_for(User)}
    # unregistered type is introspected and cached
    s = BuilderSchema()
    first = s.fields_for(Node)
    assert s.fields_for(Node) is first


def test_generated_methods():
    for name in ('with_name', 'with_active', 'with_role', 'with_role_id', 'add_supervisor',
                 'add_all_supervisors', 'clear_supervisors'):
        assert callable(getattr(UserBuilder, name)), name
    assert UserBuilder.with_name.__name__ == 'with_name'
    assert UserBuilder.with_name.__doc__
    assert not hasattr(UserRefBuilder, 'with_role')
    assert hasattr(UserRefBuilder, 'with_role_id')


def test_builder_options_from_schema_and_decorator():
    s = BuilderSchema(default_mode=Mode.PERSISTENT, auto_relations=False, depth_limit=4)

    @s.builder(Node, depth_limit=1)
    class NodeBuilder(Builder):
        pass

    opts = NodeBuilder.__berrybuild_spec__.options
    assert opts.default_mode is Mode.PERSISTENT
    assert opts.auto_relations is False
    assert opts.depth_limit == 1
    assert opts.field_policy is FieldPolicy.ALL
    assert NodeBuilder().current_mode is Mode.PERSISTENT


def test_missing_no_arg_constructor_is_rejected():
    s = BuilderSchema()
    with pytest.raises(BuilderConfigError, match='without arguments'):
        @s.builder(NeedsArgs)
        class NeedsArgsBuilder(Builder):
            pass


def test_abstract_target_is_rejected():
    class Shape(abc.ABC):
        @abc.abstractmethod
        def area(self):
            ...

    with pytest.raises(BuilderConfigError):
        BuilderSchema().builder_for(Shape)


def test_duplicate_fluent_names_are_rejected():
    s = BuilderSchema()
    with pytest.raises(BuilderConfigError, match='with_balance'):
        @s.builder(Account)
        class Clashing(Builder):
            owner = field('balance')


def test_user_method_clash_is_rejected():
    s = BuilderSchema()
    with pytest.raises(BuilderConfigError, match='already defined'):
        @s.builder(Account)
        class Clashing(Builder):
            def with_owner(self, value):
                return self


def test_id_only_requires_target_class():
    class Plain:
        def __init__(self):
            self.parent = None

    with pytest.raises(BuilderConfigError):
        @BuilderSchema().builder(Plain)
        class PlainBuilder(Builder):
            parent = relation(as_id_only=True)


def test_explicit_field_policy():
    s = BuilderSchema()

    @s.builder(Account, field_policy=FieldPolicy.EXPLICIT)
    class Narrow(Builder):
        owner = field()

    assert [f.name for f in Narrow.__berrybuild_spec__.fields] == ['owner']
    assert not hasattr(Narrow, 'with_balance')
    acc = Narrow().with_owner('z').build()
    # untouched attributes keep their constructor values
    assert acc.owner == 'Z'
    assert acc.balance == -1


def test_descriptors_are_removed_from_builder_class():
    s = BuilderSchema()

    @s.builder(Account)
    class Renamed(Builder):
        owner = field('holder')

    assert 'owner' not in vars(Renamed)
    assert Renamed().with_holder('q').build().owner == 'Q'


def test_defaults_validation_warns(caplog):
    caplog.set_level(logging.WARNING, logger='berrybuild')

    class Provider:
        balance = 5

        def owner(self, extra):
            return extra

        def rate(self):
            return 1.5

    s = BuilderSchema()

    @s.builder(Account, defaults=Provider)
    class WithDefaults(Builder):
        pass

    assert 'Provider.balance is not callable' in caplog.text
    assert 'Provider.owner expects arguments' in caplog.text
    assert 'rate' not in caplog.text
    acc = WithDefaults().build()
    assert acc.rate == 1.5
    assert acc.balance == 0
    assert acc.owner is None


def test_schema_defaults_registered_before_and_after_builder():
    s = BuilderSchema()

    @s.defaults(Account)
    class Before:
        def balance(self):
            return 11

    @s.builder(Account)
    class AccountB(Builder):
        pass

    assert AccountB().build().balance == 11

    @dataclass
    class Item:
        id: Optional[int] = None
        label: str = ''

    ItemB = s.builder_for(Item)
    assert ItemB().build().label == ''

    @s.defaults(Item)
    class After:
        def label(self):
            return 'late'

    assert ItemB().build().label == 'late'


def test_unregistered_builder_cannot_be_constructed():
    class Loose(Builder):
        pass

    with pytest.raises(BuilderConfigError):
        Loose()


def test_non_builder_class_is_mixed_in():
    s = BuilderSchema()

    @s.builder(Node)
    class Plain:
        def named(self, name):
            return self.with_name(name)

    assert issubclass(Plain, Builder)
    assert Plain().named('x').build().name == 'x'


def test_plain_class_method_clash_is_rejected():
    s = BuilderSchema()
    with pytest.raises(BuilderConfigError, match='already defined on Plain'):
        @s.builder(Node)
        class Plain:
            def with_name(self, value):
                return self
