"""Category store and hierarchy rules against a real database."""

import asyncio
from collections.abc import AsyncGenerator

import pytest
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from linksaver.errors import (
    HasChildrenError,
    InvalidOperationError,
    NotFoundError,
    ValidationError,
)
from linksaver.models import Category, Link
from linksaver.services import categories as category_service
from linksaver.services.categories import load_category_tree
from linksaver.services.tree import CategoryTree


@pytest.fixture
async def db_session(
    session_factory: async_sessionmaker[AsyncSession],
) -> AsyncGenerator[AsyncSession]:
    async with session_factory() as session:
        yield session


async def _add_links(
    db: AsyncSession, owner_id: int, category_id: int | None, count: int
) -> None:
    for index in range(count):
        db.add(
            Link(
                title=f"Link {index}",
                url=f"https://example.com/{index}",
                platform="Other",
                category_id=category_id,
                owner_id=owner_id,
            )
        )
    await db.commit()


@pytest.mark.asyncio
async def test_round_trip_and_color_only_update(
    db_session: AsyncSession, users: tuple[int, int]
) -> None:
    owner_id, _ = users

    created = await category_service.create_category(
        db_session, owner_id, "Videos", color="#ef4444"
    )
    read = await category_service.get_category(db_session, owner_id, created.id)

    assert read["name"] == "Videos"
    assert read["color"] == "#ef4444"
    assert read["parentId"] is None
    created_at = read["createdAt"]

    await category_service.update_category(
        db_session, owner_id, created.id, color="#000000"
    )
    updated = await category_service.get_category(db_session, owner_id, created.id)

    assert updated["color"] == "#000000"
    assert updated["name"] == "Videos"
    assert updated["parentId"] is None
    assert updated["createdAt"] == created_at


@pytest.mark.asyncio
async def test_create_defaults_and_validation(
    db_session: AsyncSession, users: tuple[int, int]
) -> None:
    owner_id, _ = users

    category = await category_service.create_category(db_session, owner_id, "  News ")
    assert category.name == "News"
    assert category.color == "#3b82f6"

    with pytest.raises(ValidationError):
        await category_service.create_category(db_session, owner_id, "   ")
    with pytest.raises(ValidationError):
        await category_service.create_category(
            db_session, owner_id, "Bad", color="blue"
        )


@pytest.mark.asyncio
async def test_create_under_subcategory_is_rejected(
    db_session: AsyncSession, users: tuple[int, int]
) -> None:
    owner_id, _ = users
    parent = await category_service.create_category(db_session, owner_id, "Parent")
    child = await category_service.create_category(
        db_session, owner_id, "Child", parent_id=parent.id
    )

    with pytest.raises(InvalidOperationError):
        await category_service.create_category(
            db_session, owner_id, "Grandchild", parent_id=child.id
        )
    with pytest.raises(NotFoundError):
        await category_service.create_category(
            db_session, owner_id, "Orphan", parent_id=9999
        )


@pytest.mark.asyncio
async def test_scenario_move_child_between_parents(
    db_session: AsyncSession, users: tuple[int, int]
) -> None:
    owner_id, _ = users
    a = await category_service.create_category(db_session, owner_id, "A")
    b = await category_service.create_category(db_session, owner_id, "B")
    c = await category_service.create_category(
        db_session, owner_id, "C", parent_id=a.id
    )

    a_id, b_id, c_id = a.id, b.id, c.id

    moved = await category_service.move_category(db_session, owner_id, c_id, b_id)
    assert moved.parent_id == b_id

    with pytest.raises(InvalidOperationError):
        await category_service.move_category(db_session, owner_id, a_id, c_id)

    tree = await load_category_tree(db_session, owner_id)
    assert tree.violations() == []
    assert tree.get(a_id).parent_id is None


@pytest.mark.asyncio
async def test_parent_with_children_cannot_be_nested(
    db_session: AsyncSession, users: tuple[int, int]
) -> None:
    owner_id, _ = users
    a = await category_service.create_category(db_session, owner_id, "A")
    b = await category_service.create_category(db_session, owner_id, "B")
    await category_service.create_category(db_session, owner_id, "C", parent_id=a.id)
    a_id, b_id = a.id, b.id

    with pytest.raises(InvalidOperationError, match="children"):
        await category_service.update_category(
            db_session, owner_id, a_id, name="Renamed", parent_id=b_id
        )

    # Rejected updates change nothing, not even the name.
    current = await category_service.get_category(db_session, owner_id, a_id)
    assert current["name"] == "A"
    assert current["parentId"] is None


@pytest.mark.asyncio
async def test_self_parent_is_rejected(
    db_session: AsyncSession, users: tuple[int, int]
) -> None:
    owner_id, _ = users
    a = await category_service.create_category(db_session, owner_id, "A")

    with pytest.raises(InvalidOperationError, match="own parent"):
        await category_service.update_category(
            db_session, owner_id, a.id, parent_id=a.id
        )


@pytest.mark.asyncio
async def test_detach_to_top_level(
    db_session: AsyncSession, users: tuple[int, int]
) -> None:
    owner_id, _ = users
    a = await category_service.create_category(db_session, owner_id, "A")
    b = await category_service.create_category(
        db_session, owner_id, "B", parent_id=a.id
    )

    updated = await category_service.update_category(
        db_session, owner_id, b.id, parent_id=None
    )

    assert updated.parent_id is None
    described = await category_service.get_category(db_session, owner_id, a.id)
    assert described["childCount"] == 0


@pytest.mark.asyncio
async def test_list_annotates_parent_children_and_counts(
    db_session: AsyncSession, users: tuple[int, int]
) -> None:
    owner_id, _ = users
    videos = await category_service.create_category(
        db_session, owner_id, "videos", color="#ef4444"
    )
    await category_service.create_category(
        db_session, owner_id, "Tutorials", parent_id=videos.id
    )
    await category_service.create_category(db_session, owner_id, "Articles")
    await _add_links(db_session, owner_id, videos.id, 2)

    listed = await category_service.list_categories(db_session, owner_id)

    assert [item["name"] for item in listed] == ["Articles", "Tutorials", "videos"]
    by_name = {item["name"]: item for item in listed}
    assert by_name["videos"]["childCount"] == 1
    assert by_name["videos"]["linkCount"] == 2
    assert by_name["videos"]["children"][0]["name"] == "Tutorials"
    assert by_name["Tutorials"]["parent"] == {
        "id": videos.id,
        "name": "videos",
        "color": "#ef4444",
    }
    assert by_name["Articles"]["parent"] is None


@pytest.mark.asyncio
async def test_delete_with_children_is_rejected(
    db_session: AsyncSession, users: tuple[int, int]
) -> None:
    owner_id, _ = users
    parent = await category_service.create_category(db_session, owner_id, "Parent")
    parent_id = parent.id
    await category_service.create_category(
        db_session, owner_id, "Child", parent_id=parent_id
    )

    with pytest.raises(HasChildrenError) as excinfo:
        await category_service.delete_category(db_session, owner_id, parent_id)
    assert excinfo.value.details["childCount"] == 1

    still_there = await category_service.get_category(db_session, owner_id, parent_id)
    assert still_there["name"] == "Parent"


@pytest.mark.asyncio
async def test_delete_detaches_exactly_the_referencing_links(
    db_session: AsyncSession, users: tuple[int, int]
) -> None:
    owner_id, _ = users
    doomed = await category_service.create_category(db_session, owner_id, "Doomed")
    kept = await category_service.create_category(db_session, owner_id, "Kept")
    await _add_links(db_session, owner_id, doomed.id, 3)
    await _add_links(db_session, owner_id, kept.id, 2)
    await _add_links(db_session, owner_id, None, 1)

    detached = await category_service.delete_category(db_session, owner_id, doomed.id)

    assert detached == 3
    result = await db_session.execute(
        select(Link.category_id).where(Link.owner_id == owner_id)
    )
    category_ids = [row[0] for row in result.all()]
    assert category_ids.count(None) == 4
    assert category_ids.count(kept.id) == 2
    assert await db_session.get(Category, doomed.id) is None


@pytest.mark.asyncio
async def test_other_owners_categories_are_not_found(
    db_session: AsyncSession, users: tuple[int, int]
) -> None:
    owner_id, other_id = users
    foreign = await category_service.create_category(db_session, other_id, "Theirs")
    mine = await category_service.create_category(db_session, owner_id, "Mine")
    foreign_id, mine_id = foreign.id, mine.id

    with pytest.raises(NotFoundError):
        await category_service.get_category(db_session, owner_id, foreign_id)
    with pytest.raises(NotFoundError):
        await category_service.update_category(
            db_session, owner_id, foreign_id, name="Stolen"
        )
    with pytest.raises(NotFoundError):
        await category_service.delete_category(db_session, owner_id, foreign_id)
    with pytest.raises(NotFoundError):
        await category_service.move_category(db_session, owner_id, mine_id, foreign_id)
    with pytest.raises(NotFoundError):
        await category_service.create_category(
            db_session, owner_id, "Sneaky", parent_id=foreign_id
        )

    listed = await category_service.list_categories(db_session, owner_id)
    assert [item["name"] for item in listed] == ["Mine"]


async def _move_in_own_session(
    session_factory: async_sessionmaker[AsyncSession],
    owner_id: int,
    category_id: int,
    parent_id: int,
) -> Category:
    async with session_factory() as session:
        return await category_service.move_category(
            session, owner_id, category_id, parent_id
        )


@pytest.mark.asyncio
async def test_concurrent_cross_moves_leave_a_valid_tree(
    session_factory: async_sessionmaker[AsyncSession], users: tuple[int, int]
) -> None:
    owner_id, _ = users
    async with session_factory() as session:
        a = await category_service.create_category(session, owner_id, "A")
        b = await category_service.create_category(session, owner_id, "B")

    results = await asyncio.gather(
        _move_in_own_session(session_factory, owner_id, a.id, b.id),
        _move_in_own_session(session_factory, owner_id, b.id, a.id),
        return_exceptions=True,
    )

    failures = [item for item in results if isinstance(item, BaseException)]
    assert len(failures) == 1
    assert isinstance(failures[0], InvalidOperationError)

    async with session_factory() as session:
        tree = await load_category_tree(session, owner_id)
    assert tree.violations() == []
    assert sum(1 for node in tree if node.parent_id is not None) == 1


@pytest.mark.asyncio
async def test_concurrent_create_child_and_nest_parent(
    session_factory: async_sessionmaker[AsyncSession],
    users: tuple[int, int],
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    owner_id, _ = users
    async with session_factory() as session:
        a = await category_service.create_category(session, owner_id, "A")
        b = await category_service.create_category(session, owner_id, "B")
    a_id, b_id = a.id, b.id

    # Pause after every tree read so both requests validate against the
    # same snapshot unless the owner boundary keeps them apart.
    async def slow_load(db: AsyncSession, owner: int) -> CategoryTree:
        tree = await load_category_tree(db, owner)
        await asyncio.sleep(0.05)
        return tree

    monkeypatch.setattr(category_service, "load_category_tree", slow_load)

    async def create_child() -> Category:
        async with session_factory() as session:
            return await category_service.create_category(
                session, owner_id, "C", parent_id=a_id
            )

    results = await asyncio.gather(
        create_child(),
        _move_in_own_session(session_factory, owner_id, a_id, b_id),
        return_exceptions=True,
    )

    failures = [item for item in results if isinstance(item, BaseException)]
    assert len(failures) == 1
    assert isinstance(failures[0], InvalidOperationError)

    async with session_factory() as session:
        tree = await load_category_tree(session, owner_id)
    assert tree.violations() == []
    assert len(tree) == 3
