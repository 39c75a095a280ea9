import pytest
from sqlalchemy import func, select
from sqlalchemy.orm import Session

from berrybuild import (
    MemoryPersistAdapter,
    PersistAdapter,
    SQLAlchemyPersistAdapter,
    UnsupportedOperation,
    create_async,
    get_adapter,
)
from berrybuild.persistence import RelationGraphPersister
from tests.models import Role, User
from tests.schema import ProjectBuilder, RoleBuilder, UserBuilder, UserRefBuilder, schema


def test_get_adapter_dispatch(session):
    assert get_adapter(None) is None
    mem = MemoryPersistAdapter()
    assert get_adapter(mem) is mem
    wrapped = get_adapter(session)
    assert isinstance(wrapped, SQLAlchemyPersistAdapter)
    assert wrapped.session is session
    with pytest.raises(TypeError):
        get_adapter('sqlite://')


def test_base_adapter_optional_operations():
    class SaveOnly(PersistAdapter):
        def save(self, entity):
            return entity

    a = SaveOnly()
    assert not a.supports_lookup()
    with pytest.raises(UnsupportedOperation):
        a.find_by_id(User, 1)
    with pytest.raises(UnsupportedOperation):
        a.require(dict)


def test_save_assigns_generated_key(session):
    role = RoleBuilder(session).persistent().with_name('admin').create()
    assert role.id is not None
    assert session.get(Role, role.id) is role


def test_user_with_relations_is_persisted_bottom_up(session):
    boss = User(name='Boss', age=50, is_active=True)
    role = Role(name='dev')
    user = (
        UserBuilder(session)
        .persistent()
        .with_name('Ann')
        .with_age(33)
        .with_role(role)
        .with_manager(boss)
        .add_supervisor(boss)
        .create()
    )
    assert user.id is not None
    assert role.id is not None and boss.id is not None
    session.expire_all()
    loaded = session.get(User, user.id)
    assert loaded.name == 'Ann'
    assert loaded.role_id == role.id
    assert loaded.manager_id == boss.id
    assert [s.id for s in loaded.supervisors] == [boss.id]


def test_supervisor_cycle(session):
    a = UserBuilder().with_name('a').build()
    b = UserBuilder().with_name('b').add_supervisor(a).build()
    a.supervisors = [b]
    adapter = SQLAlchemyPersistAdapter(session)
    RelationGraphPersister(adapter, schema.fields_for).persist_if_needed(a)
    assert a.id is not None and b.id is not None
    assert session.scalar(select(func.count()).select_from(User)) == 2


def test_set_collection_relation(session):
    members = [User(name=f'm{i}', age=i, is_active=False) for i in range(2)]
    project = ProjectBuilder(session).persistent().with_title('P').add_all_members(members).create()
    assert isinstance(project.members, set)
    assert all(m.id is not None for m in members)
    assert project.id is not None


def test_id_only_lookup_returns_managed_entity(session):
    role = RoleBuilder(session).persistent().with_name('ops').create()
    user = UserRefBuilder(session).with_role_id(role.id).create()
    assert user.role is role
    assert user.name == 'Default User'
    assert user.age == 30
    session.flush()
    assert user.role_id == role.id


def test_existing_entity_is_merged(session):
    role = RoleBuilder(session).persistent().with_name('x').create()
    session.expunge(role)
    role.name = 'y'
    merged = SQLAlchemyPersistAdapter(session).save(role)
    assert merged is not role
    assert merged.name == 'y'
    assert merged.id == role.id


def test_require_supplies_session_and_providers(session):
    class Provider:
        pass

    p = Provider()
    adapter = SQLAlchemyPersistAdapter(session, providers={Provider: p})
    assert adapter.require(Session) is session
    assert adapter.require(Provider) is p
    assert adapter.supports_lookup()
    with pytest.raises(UnsupportedOperation):
        adapter.require(dict)


def test_flush_disabled_leaves_key_unassigned(session):
    role = RoleBuilder().with_name('late').build()
    SQLAlchemyPersistAdapter(session, flush=False).save(role)
    assert role.id is None
    session.flush()
    assert role.id is not None


@pytest.mark.asyncio
async def test_create_async(db_session):
    builder = UserBuilder().persistent().with_name('Async').with_role(Role(name='r'))
    user = await create_async(builder, db_session)
    await db_session.commit()
    assert user.id is not None
    count = await db_session.scalar(select(func.count()).select_from(User))
    assert count == 1
    role_count = await db_session.scalar(select(func.count()).select_from(Role))
    assert role_count == 1


def test_foreign_key_overrides_survive_flush(session):
    role = RoleBuilder(session).persistent().with_name('ops').create()
    boss = UserBuilder(session).persistent().with_name('boss').create()
    user = (
        UserBuilder(session)
        .persistent()
        .with_name('a')
        .with_role_id(role.id)
        .with_manager_id(boss.id)
        .create()
    )
    session.expire_all()
    loaded = session.get(User, user.id)
    assert loaded.role_id == role.id
    assert loaded.manager_id == boss.id


@pytest.mark.asyncio
async def test_create_async_restores_previous_adapter(db_session):
    previous = MemoryPersistAdapter()
    builder = RoleBuilder(previous).persistent().with_name('r')
    role = await create_async(builder, db_session)
    assert role.id is not None
    assert builder.adapter is previous
    again = builder.create()
    assert previous.saved == [again]
