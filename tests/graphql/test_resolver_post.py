"""
Tests for post GraphQL resolvers
"""

from datetime import UTC, datetime, timedelta
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from sqlalchemy.ext.asyncio import AsyncSession

from repostit.auth.context import AuthContext
from repostit.dbmodels import Posts, Upvotes
from repostit.graphql.mutations.root import PostInput
from repostit.graphql.pagination import InvalidCursorError
from repostit.graphql.resolvers.post import (
    create_post,
    delete_post,
    resolve_post_by_id,
    resolve_posts,
    resolve_vote_status,
    update_post,
    vote,
)

MODULE = "repostit.graphql.resolvers.post"


def make_post(id=1, creator_id=7, minutes_ago=0, points=0):
    created = datetime(2024, 1, 1, tzinfo=UTC) - timedelta(minutes=minutes_ago)
    post = MagicMock(spec=Posts)
    post.id = id
    post.title = f"title {id}"
    post.text = "body"
    post.points = points
    post.creator_id = creator_id
    post.created_at = created
    post.updated_at = created
    return post


@pytest.fixture
def mock_info(make_info):
    return make_info()


@pytest.fixture
def db():
    """Patch the resolver module's session factory and return the mock session."""
    with patch(f"{MODULE}.get_async_session") as mock_session:
        mock_async_session = AsyncMock(spec=AsyncSession)
        mock_session.return_value.__aenter__.return_value = mock_async_session
        yield mock_async_session


@pytest.fixture
def logged_in():
    with patch(f"{MODULE}.require_auth", new_callable=AsyncMock) as mock_auth:
        mock_auth.return_value = AuthContext(user_id=7, session_id="sid")
        yield mock_auth


class TestResolvePosts:
    """Tests for the feed query."""

    @pytest.mark.asyncio
    async def test_has_more_when_extra_row_returned(self, mock_info, db):
        rows = [make_post(id=i, minutes_ago=i) for i in range(1, 4)]
        result = MagicMock()
        result.scalars.return_value.all.return_value = rows
        db.execute.return_value = result

        page = await resolve_posts(mock_info, 2, None)

        assert [p.id for p in page.posts] == [1, 2]
        assert page.has_more is True

    @pytest.mark.asyncio
    async def test_last_page(self, mock_info, db):
        result = MagicMock()
        result.scalars.return_value.all.return_value = [make_post()]
        db.execute.return_value = result

        page = await resolve_posts(mock_info, 10, None)

        assert len(page.posts) == 1
        assert page.has_more is False

    @pytest.mark.asyncio
    async def test_limit_capped_at_fifty(self, mock_info, db):
        result = MagicMock()
        result.scalars.return_value.all.return_value = []
        db.execute.return_value = result

        await resolve_posts(mock_info, 500, None)

        stmt = db.execute.call_args.args[0]
        compiled = str(stmt.compile(compile_kwargs={"literal_binds": True}))
        assert "LIMIT 51" in compiled

    @pytest.mark.asyncio
    async def test_cursor_filters_older_posts(self, mock_info, db):
        result = MagicMock()
        result.scalars.return_value.all.return_value = []
        db.execute.return_value = result

        await resolve_posts(mock_info, 10, "1609459200000")

        stmt = db.execute.call_args.args[0]
        assert stmt.whereclause is not None
        assert "created_at <" in str(stmt.whereclause)

    @pytest.mark.asyncio
    async def test_invalid_cursor(self, mock_info, db):
        with pytest.raises(InvalidCursorError):
            await resolve_posts(mock_info, 10, "yesterday")
        db.execute.assert_not_called()

    @pytest.mark.asyncio
    async def test_created_at_serialized_as_millis(self, mock_info, db):
        result = MagicMock()
        result.scalars.return_value.all.return_value = [make_post()]
        db.execute.return_value = result

        page = await resolve_posts(mock_info, 10, None)

        assert page.posts[0].created_at == "1704067200000"


class TestResolvePostById:
    @pytest.mark.asyncio
    async def test_found(self, mock_info, db):
        db.get.return_value = make_post(id=3)
        post = await resolve_post_by_id(mock_info, 3)
        assert post is not None
        assert post.id == 3

    @pytest.mark.asyncio
    async def test_missing(self, mock_info, db):
        db.get.return_value = None
        assert await resolve_post_by_id(mock_info, 99) is None


class TestVoteStatus:
    @pytest.mark.asyncio
    async def test_logged_out_is_null(self, make_info, session):
        info = make_info(session=session)
        post = MagicMock(id=1)
        assert await resolve_vote_status(post, info) is None

    @pytest.mark.asyncio
    async def test_uses_upvote_loader(self, make_info, session):
        session.user_id = 7
        loaders = MagicMock()
        loaders.upvote_loader.load = AsyncMock(return_value=MagicMock(value=-1))
        info = make_info(session=session, loaders=loaders)
        post = MagicMock(id=1)

        assert await resolve_vote_status(post, info) == -1
        loaders.upvote_loader.load.assert_awaited_once_with((1, 7))


class TestPostMutations:
    @pytest.mark.asyncio
    async def test_create_requires_login(self, make_info, session):
        info = make_info(session=session)
        with pytest.raises(RuntimeError, match="not authenticated"):
            await create_post(info, PostInput(title="t", text="x"))

    @pytest.mark.asyncio
    async def test_create_sets_creator(self, mock_info, db, logged_in):
        async def fill_in(post):
            post.id = 5
            post.points = 0
            post.created_at = post.updated_at = datetime(2024, 1, 1, tzinfo=UTC)

        db.refresh.side_effect = fill_in

        post = await create_post(mock_info, PostInput(title="hello", text="world"))

        added = db.add.call_args.args[0]
        assert isinstance(added, Posts)
        assert added.creator_id == 7
        assert post.id == 5
        assert post.title == "hello"
        assert post.points == 0

    @pytest.mark.asyncio
    async def test_update_not_owned_returns_none(self, mock_info, db, logged_in):
        db.scalar.return_value = None
        assert await update_post(mock_info, 1, "new", "text") is None
        db.flush.assert_not_called()

    @pytest.mark.asyncio
    async def test_update_own_post(self, mock_info, db, logged_in):
        existing = make_post(id=1)
        db.scalar.return_value = existing

        post = await update_post(mock_info, 1, "new title", "new text")

        assert existing.title == "new title"
        assert existing.text == "new text"
        assert post is not None and post.title == "new title"

    @pytest.mark.asyncio
    async def test_delete_always_true(self, mock_info, db, logged_in):
        db.execute.return_value = MagicMock(rowcount=0)
        assert await delete_post(mock_info, 42) is True
        db.execute.assert_awaited_once()


class TestVote:
    """Vote state transitions."""

    @pytest.mark.asyncio
    async def test_first_vote_adds_value(self, mock_info, db, logged_in):
        db.scalar.side_effect = [3, None]

        assert await vote(mock_info, 3, 1) is True

        added = db.add.call_args.args[0]
        assert isinstance(added, Upvotes)
        assert (added.user_id, added.post_id, added.value) == (7, 3, 1)
        update_stmt = db.execute.call_args.args[0]
        params = update_stmt.compile().params
        assert params["points_1"] == 1
        assert params["id_1"] == 3

    @pytest.mark.asyncio
    async def test_switching_vote_moves_two_points(self, mock_info, db, logged_in):
        existing = MagicMock(spec=Upvotes)
        existing.value = 1
        db.scalar.side_effect = [3, existing]

        assert await vote(mock_info, 3, -1) is True

        assert existing.value == -1
        db.add.assert_not_called()
        update_stmt = db.execute.call_args.args[0]
        params = update_stmt.compile().params
        assert params["points_1"] == -2
        assert params["id_1"] == 3

    @pytest.mark.asyncio
    async def test_vote_leaves_updated_at_alone(self, mock_info, db, logged_in):
        db.scalar.side_effect = [3, None]

        await vote(mock_info, 3, 1)

        update_stmt = db.execute.call_args.args[0]
        assert "updated_at=posts.updated_at" in str(update_stmt.compile())

    @pytest.mark.asyncio
    async def test_same_vote_is_noop(self, mock_info, db, logged_in):
        existing = MagicMock(spec=Upvotes)
        existing.value = 1
        db.scalar.side_effect = [1, existing]

        assert await vote(mock_info, 1, 1) is True

        db.add.assert_not_called()
        db.execute.assert_not_called()

    @pytest.mark.asyncio
    async def test_any_non_negative_value_is_upvote(self, mock_info, db, logged_in):
        db.scalar.side_effect = [1, None]

        await vote(mock_info, 1, 10)

        assert db.add.call_args.args[0].value == 1

    @pytest.mark.asyncio
    async def test_missing_post(self, mock_info, db, logged_in):
        db.scalar.side_effect = [None]
        with pytest.raises(RuntimeError, match="post not found"):
            await vote(mock_info, 404, 1)

    @pytest.mark.asyncio
    async def test_requires_login(self, make_info, session, db):
        info = make_info(session=session)
        with pytest.raises(RuntimeError, match="not authenticated"):
            await vote(info, 1, 1)
