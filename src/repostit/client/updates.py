"""
Cache updates applied after mutations.

Each update receives the mutation result, the variables it was sent with and
the cache, and brings cached queries in line with what the server now holds.
"""

from collections.abc import Callable
from typing import Any

from .cache import ROOT, NormalizedCache

Update = Callable[[Any, dict[str, Any], NormalizedCache], None]


def update_query(
    cache: NormalizedCache,
    field_name: str,
    result: Any,
    fn: Callable[[Any, Any], Any],
    arguments: dict[str, Any] | None = None,
) -> None:
    """Rewrite a cached root field from a mutation result via `fn(result, current)`."""
    cache.update_query(field_name, arguments, lambda current: fn(result, current))


def invalidate_all_posts(cache: NormalizedCache) -> None:
    cache.invalidate(ROOT, "posts")


def _user_from_response(result: dict[str, Any], current: Any) -> Any:
    if result.get("errors"):
        return current
    return result.get("user")


def delete_post(result: Any, variables: dict[str, Any], cache: NormalizedCache) -> None:
    cache.invalidate(f"Post:{variables['id']}")


def vote(result: Any, variables: dict[str, Any], cache: NormalizedCache) -> None:
    post_id = variables["postId"]
    value = variables["value"]
    data = cache.read_fragment("Post", post_id, ["id", "points", "voteStatus"])
    if data is None or data["voteStatus"] == value:
        return
    delta = value if data["voteStatus"] is None else 2 * value
    cache.write_fragment(
        "Post", post_id, {"points": data["points"] + delta, "voteStatus": value}
    )


def create_post(result: Any, variables: dict[str, Any], cache: NormalizedCache) -> None:
    invalidate_all_posts(cache)


def logout(result: Any, variables: dict[str, Any], cache: NormalizedCache) -> None:
    update_query(cache, "me", result, lambda _result, _current: None)


def login(result: Any, variables: dict[str, Any], cache: NormalizedCache) -> None:
    update_query(cache, "me", result, _user_from_response)
    invalidate_all_posts(cache)


def register(result: Any, variables: dict[str, Any], cache: NormalizedCache) -> None:
    update_query(cache, "me", result, _user_from_response)


UPDATES: dict[str, Update] = {
    "deletePost": delete_post,
    "vote": vote,
    "createPost": create_post,
    "logout": logout,
    "login": login,
    "register": register,
}
