"""
Integration tests running the GraphQL schema against a real SQLite database
"""

from datetime import UTC, datetime, timedelta
from unittest.mock import AsyncMock, patch

import pytest

from repostit.auth.session import Session
from repostit.auth.tokens import reset_reset_token_store
from repostit.config import settings
from repostit.database.connection import get_async_session
from repostit.dbmodels import Posts, Upvotes, Users
from repostit.graphql.schema import schema

REGISTER = """
mutation Register($options: UsernamePasswordInput!) {
  register(options: $options) {
    errors { field message }
    user { id username email }
  }
}
"""

LOGIN = """
mutation Login($usernameOrEmail: String!, $password: String!) {
  login(usernameOrEmail: $usernameOrEmail, password: $password) {
    errors { field message }
    user { id username }
  }
}
"""

ME = "query { me { id username email } }"

CREATE_POST = """
mutation CreatePost($input: PostInput!) {
  createPost(input: $input) { id title text points creatorId createdAt }
}
"""

POSTS = """
query Posts($limit: Int!, $cursor: String) {
  posts(limit: $limit, cursor: $cursor) {
    hasMore
    posts { id title textSnippet points voteStatus createdAt creator { id username email } }
  }
}
"""

POST = "query Post($id: Int!) { post(id: $id) { id title text points voteStatus } }"

VOTE = "mutation Vote($postId: Int!, $value: Int!) { vote(postId: $postId, value: $value) }"

UPDATE_POST = """
mutation UpdatePost($id: Int!, $title: String!, $text: String!) {
  updatePost(id: $id, title: $title, text: $text) { id title text }
}
"""

DELETE_POST = "mutation DeletePost($id: Int!) { deletePost(id: $id) }"


@pytest.fixture
def run(make_context, memory_store, fake_redis):
    """Execute an operation as the holder of `session` (a fresh anonymous one by default)."""

    async def _run(query, variables=None, session=None):
        session = session or Session(memory_store)
        return await schema.execute(
            query,
            variable_values=variables,
            context_value=make_context(session, fake_redis),
        )

    return _run


async def sign_up(run, memory_store, username="alice", email=None):
    session = Session(memory_store)
    result = await run(
        REGISTER,
        {
            "options": {
                "username": username,
                "email": email or f"{username}@example.com",
                "password": "hunter2",
            }
        },
        session,
    )
    assert result.errors is None
    assert result.data["register"]["errors"] is None
    return session, result.data["register"]["user"]


async def insert_posts(creator_id, count):
    """Insert posts one minute apart, newest last."""
    start = datetime(2024, 1, 1, tzinfo=UTC)
    async with get_async_session() as db:
        for i in range(count):
            created = start + timedelta(minutes=i)
            db.add(
                Posts(
                    title=f"post {i}",
                    text="x" * 150 if i == 0 else f"text {i}",
                    creator_id=creator_id,
                    created_at=created,
                    updated_at=created,
                )
            )


@pytest.mark.integration
@pytest.mark.requires_db
@pytest.mark.asyncio
class TestAccounts:
    async def test_hello(self, sqlite_db, run):
        result = await run("{ hello }")
        assert result.data == {"hello": "bye"}

    async def test_register_logs_in(self, sqlite_db, run, memory_store):
        session, user = await sign_up(run, memory_store)

        assert user["username"] == "alice"
        assert user["email"] == "alice@example.com"
        assert session.user_id == user["id"]

        me = await run(ME, session=session)
        assert me.data["me"]["username"] == "alice"

    async def test_anonymous_me_is_null(self, sqlite_db, run):
        result = await run(ME)
        assert result.data == {"me": None}

    async def test_duplicate_username(self, sqlite_db, run, memory_store):
        await sign_up(run, memory_store)

        result = await run(
            REGISTER,
            {"options": {"username": "alice", "email": "other@example.com", "password": "pw123"}},
        )

        assert result.data["register"]["errors"] == [
            {"field": "username", "message": "username already taken"}
        ]
        assert result.data["register"]["user"] is None

    async def test_duplicate_email(self, sqlite_db, run, memory_store):
        await sign_up(run, memory_store)

        result = await run(
            REGISTER,
            {"options": {"username": "alice2", "email": "alice@example.com", "password": "pw123"}},
        )

        assert result.data["register"]["errors"] == [
            {"field": "email", "message": "email already taken"}
        ]

    async def test_login_by_username_and_email(self, sqlite_db, run, memory_store):
        await sign_up(run, memory_store)

        for identifier in ("alice", "alice@example.com"):
            session = Session(memory_store)
            result = await run(
                LOGIN, {"usernameOrEmail": identifier, "password": "hunter2"}, session
            )
            assert result.data["login"]["user"]["username"] == "alice"
            assert session.user_id is not None

    async def test_login_errors(self, sqlite_db, run, memory_store):
        await sign_up(run, memory_store)

        missing = await run(LOGIN, {"usernameOrEmail": "bob", "password": "hunter2"})
        wrong = await run(LOGIN, {"usernameOrEmail": "alice", "password": "nope"})

        assert missing.data["login"]["errors"][0]["field"] == "usernameOrEmail"
        assert wrong.data["login"]["errors"] == [
            {"field": "password", "message": "incorrect password"}
        ]

    async def test_email_hidden_from_others(self, sqlite_db, run, memory_store):
        alice_session, alice = await sign_up(run, memory_store)
        bob_session, _ = await sign_up(run, memory_store, username="bob")
        await insert_posts(alice["id"], 1)

        as_bob = await run(POSTS, {"limit": 10}, bob_session)
        as_alice = await run(POSTS, {"limit": 10}, alice_session)

        assert as_bob.data["posts"]["posts"][0]["creator"]["email"] == ""
        assert as_alice.data["posts"]["posts"][0]["creator"]["email"] == "alice@example.com"

    async def test_password_reset_flow(self, sqlite_db, run, memory_store, fake_redis):
        _, alice = await sign_up(run, memory_store)

        with patch(
            "repostit.graphql.resolvers.user.send_email", new_callable=AsyncMock
        ) as mock_send:
            result = await run(
                'mutation { forgotPassword(email: "alice@example.com") }'
            )
        assert result.data == {"forgotPassword": True}
        [key] = fake_redis.data
        token = key.removeprefix("forget-password:")
        assert token in mock_send.call_args.args[1]

        change = """
        mutation Change($token: String!, $newPassword: String!) {
          changePassword(token: $token, newPassword: $newPassword) {
            errors { field message }
            user { id }
          }
        }
        """
        session = Session(memory_store)
        result = await run(change, {"token": token, "newPassword": "brandnew"}, session)
        assert result.data["changePassword"]["user"]["id"] == alice["id"]
        assert session.user_id == alice["id"]

        reused = await run(change, {"token": token, "newPassword": "another"})
        assert reused.data["changePassword"]["errors"] == [
            {"field": "token", "message": "token expired"}
        ]

        login = await run(LOGIN, {"usernameOrEmail": "alice", "password": "brandnew"})
        assert login.data["login"]["errors"] is None


@pytest.mark.integration
@pytest.mark.requires_db
@pytest.mark.asyncio
class TestPosts:
    async def test_create_requires_login(self, sqlite_db, run):
        result = await run(CREATE_POST, {"input": {"title": "t", "text": "x"}})
        assert result.errors is not None
        assert result.errors[0].message == "not authenticated"

    async def test_create_post(self, sqlite_db, run, memory_store):
        session, alice = await sign_up(run, memory_store)

        result = await run(CREATE_POST, {"input": {"title": "hi", "text": "there"}}, session)

        post = result.data["createPost"]
        assert post["title"] == "hi"
        assert post["points"] == 0
        assert post["creatorId"] == alice["id"]
        assert post["createdAt"].isdigit()

    async def test_feed_pages_with_cursor(self, sqlite_db, run, memory_store):
        _, alice = await sign_up(run, memory_store)
        await insert_posts(alice["id"], 5)

        first = await run(POSTS, {"limit": 2})
        page = first.data["posts"]
        assert [p["title"] for p in page["posts"]] == ["post 4", "post 3"]
        assert page["hasMore"] is True
        assert page["posts"][0]["creator"]["username"] == "alice"
        assert page["posts"][0]["voteStatus"] is None

        cursor = page["posts"][-1]["createdAt"]
        second = await run(POSTS, {"limit": 2, "cursor": cursor})
        assert [p["title"] for p in second.data["posts"]["posts"]] == ["post 2", "post 1"]
        assert second.data["posts"]["hasMore"] is True

        cursor = second.data["posts"]["posts"][-1]["createdAt"]
        last = await run(POSTS, {"limit": 2, "cursor": cursor})
        assert [p["title"] for p in last.data["posts"]["posts"]] == ["post 0"]
        assert last.data["posts"]["hasMore"] is False
        assert last.data["posts"]["posts"][0]["textSnippet"] == "x" * 90 + "..."

    async def test_limit_capped(self, sqlite_db, run, memory_store):
        _, alice = await sign_up(run, memory_store)
        await insert_posts(alice["id"], 55)

        result = await run(POSTS, {"limit": 100})

        assert len(result.data["posts"]["posts"]) == 50
        assert result.data["posts"]["hasMore"] is True

    async def test_invalid_cursor_is_error(self, sqlite_db, run):
        result = await run(POSTS, {"limit": 5, "cursor": "not-a-time"})
        assert result.errors is not None

    async def test_vote_transitions(self, sqlite_db, run, memory_store):
        _, alice = await sign_up(run, memory_store)
        bob, _ = await sign_up(run, memory_store, username="bob")
        await insert_posts(alice["id"], 1)

        async def points_and_status():
            result = await run(POST, {"id": 1}, bob)
            return result.data["post"]["points"], result.data["post"]["voteStatus"]

        await run(VOTE, {"postId": 1, "value": 1}, bob)
        assert await points_and_status() == (1, 1)

        await run(VOTE, {"postId": 1, "value": 1}, bob)
        assert await points_and_status() == (1, 1)

        await run(VOTE, {"postId": 1, "value": -1}, bob)
        assert await points_and_status() == (-1, -1)

        async with get_async_session() as db:
            upvote = await db.get(Upvotes, (bob.user_id, 1))
            assert upvote is not None and upvote.value == -1

    async def test_vote_keeps_updated_at(self, sqlite_db, run, memory_store):
        _, alice = await sign_up(run, memory_store)
        bob, _ = await sign_up(run, memory_store, username="bob")
        await insert_posts(alice["id"], 1)
        query = "query { post(id: 1) { points updatedAt } }"
        before = (await run(query)).data["post"]

        await run(VOTE, {"postId": 1, "value": 1}, bob)

        after = (await run(query)).data["post"]
        assert after["points"] == 1
        assert after["updatedAt"] == before["updatedAt"]

    async def test_vote_missing_post(self, sqlite_db, run, memory_store):
        session, _ = await sign_up(run, memory_store)
        result = await run(VOTE, {"postId": 999, "value": 1}, session)
        assert result.errors[0].message == "post not found"

    async def test_only_owner_can_update(self, sqlite_db, run, memory_store):
        alice, alice_user = await sign_up(run, memory_store)
        bob, _ = await sign_up(run, memory_store, username="bob")
        await insert_posts(alice_user["id"], 1)

        denied = await run(UPDATE_POST, {"id": 1, "title": "hacked", "text": "x"}, bob)
        assert denied.data["updatePost"] is None

        updated = await run(UPDATE_POST, {"id": 1, "title": "edited", "text": "new"}, alice)
        assert updated.data["updatePost"] == {"id": 1, "title": "edited", "text": "new"}

    async def test_delete_removes_post_and_votes(self, sqlite_db, run, memory_store):
        alice, alice_user = await sign_up(run, memory_store)
        bob, _ = await sign_up(run, memory_store, username="bob")
        await insert_posts(alice_user["id"], 1)
        await run(VOTE, {"postId": 1, "value": 1}, bob)

        not_owner = await run(DELETE_POST, {"id": 1}, bob)
        assert not_owner.data == {"deletePost": True}
        assert (await run(POST, {"id": 1})).data["post"] is not None

        await run(DELETE_POST, {"id": 1}, alice)
        assert (await run(POST, {"id": 1})).data["post"] is None

        async with get_async_session() as db:
            assert await db.get(Upvotes, (bob.user_id, 1)) is None
            assert await db.get(Users, alice_user["id"]) is not None


@pytest.fixture
def memory_backend(monkeypatch):
    monkeypatch.setattr(settings, "session_backend", "memory")
    reset_reset_token_store()
    yield
    reset_reset_token_store()


@pytest.mark.integration
@pytest.mark.requires_db
@pytest.mark.asyncio
class TestMemoryBackend:
    async def test_password_reset_without_redis(
        self, sqlite_db, memory_backend, make_context, memory_store
    ):
        async def run(query, variables=None, session=None):
            return await schema.execute(
                query,
                variable_values=variables,
                context_value=make_context(session or Session(memory_store), None),
            )

        _, alice = await sign_up(run, memory_store)
        with patch(
            "repostit.graphql.resolvers.user.send_email", new_callable=AsyncMock
        ) as mock_send:
            result = await run('mutation { forgotPassword(email: "alice@example.com") }')
        assert result.errors is None
        token = mock_send.call_args.args[1].split("/change-password/")[1].split('"')[0]

        change = """
        mutation Change($token: String!, $newPassword: String!) {
          changePassword(token: $token, newPassword: $newPassword) { user { id } }
        }
        """
        result = await run(change, {"token": token, "newPassword": "brandnew"})
        assert result.errors is None
        assert result.data["changePassword"]["user"]["id"] == alice["id"]
