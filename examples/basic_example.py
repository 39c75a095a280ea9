"""
Basic example of using berrybuild with SQLAlchemy.

This example demonstrates:
- Declaring builders for mapped models
- Zero values, overrides and a defaults provider
- Referencing an existing row by identifier only
- Persisting a new object together with its unsaved relations
- Running a builder against an AsyncSession
"""

import asyncio
import logging

from sqlalchemy import Column, ForeignKey, Integer, String, create_engine, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase, Session, relationship

from berrybuild import Builder, BuilderSchema, Mode, create_async, relation


class Base(DeclarativeBase):
    pass


class Team(Base):
    __tablename__ = 'teams'

    id = Column(Integer, primary_key=True)
    name = Column(String(100), nullable=True)


class Player(Base):
    __tablename__ = 'players'

    id = Column(Integer, primary_key=True)
    name = Column(String(100), nullable=False)
    number = Column(Integer, nullable=False)
    team_id = Column(Integer, ForeignKey('teams.id'), nullable=True)
    captain_id = Column(Integer, ForeignKey('players.id'), nullable=True)

    team = relationship('Team')
    captain = relationship('Player', remote_side=[id])


schema = BuilderSchema()


@schema.defaults(Player)
class PlayerDefaults:
    def name(self):
        return 'Rookie'

    def number(self):
        return 99


@schema.builder(Team)
class TeamBuilder(Builder):
    pass


@schema.builder(Player)
class PlayerBuilder(Builder):
    pass


# Second schema: players reference their team by id and persist by default
roster = BuilderSchema(default_mode=Mode.PERSISTENT)


@roster.builder(Player, defaults=PlayerDefaults)
class RosterPlayerBuilder(Builder):
    team = relation(as_id_only=True)


def sync_demo():
    engine = create_engine('sqlite://')
    Base.metadata.create_all(engine)
    with Session(engine) as session:
        # in-memory only
        draft = PlayerBuilder().with_name('Draft').build()
        print(f"transient: {draft.name} #{draft.number} id={draft.id}")

        # captain and team are saved first, then the player
        player = (
            PlayerBuilder(session)
            .persistent()
            .with_name('Alex')
            .with_team(Team(name='Blue'))
            .with_captain(Player(name='Sam', number=1))
            .create()
        )
        print(f"persisted: {player.name} id={player.id} team_id={player.team_id} captain_id={player.captain_id}")

        # existing team looked up by id
        red = TeamBuilder(session).persistent().with_name('Red').create()
        squad = RosterPlayerBuilder(session).with_team_id(red.id).create_many(3)
        print(f"squad on {squad[0].team.name}: {[p.id for p in squad]}")
        session.commit()


async def async_demo():
    engine = create_async_engine('sqlite+aiosqlite:///:memory:')
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    async_session = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    async with async_session() as session:
        player = await create_async(PlayerBuilder().persistent().with_name('Async'), session)
        await session.commit()
        names = (await session.scalars(select(Player.name))).all()
        print(f"async: id={player.id} players={names}")
    await engine.dispose()


def main():
    logging.basicConfig(level=logging.INFO)
    logging.getLogger('berrybuild').setLevel(logging.DEBUG)
    sync_demo()
    asyncio.run(async_demo())


if __name__ == "__main__":
    main()
