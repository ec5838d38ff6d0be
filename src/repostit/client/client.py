"""
HTTP GraphQL client with a normalized cache
"""

from http.cookies import SimpleCookie
from typing import Any

import httpx

from ..config import settings
from ..logging import get_logger
from . import documents
from .cache import CacheMiss, NormalizedCache, create_cache
from .errors import GraphQLClientError, raise_for_errors
from .updates import UPDATES

logger = get_logger(__name__)


class RepostitClient:
    """GraphQL client for the Repostit API.

    Queries are answered from the cache when possible; mutations always go to
    the network and then run the matching cache update. The browser's cookie
    header is forwarded, and any `Set-Cookie` headers the API sends back are
    kept in `set_cookie_headers` so the caller can relay them.
    """

    def __init__(
        self,
        url: str | None = None,
        cookie: str | None = None,
        http: httpx.AsyncClient | None = None,
        cache: NormalizedCache | None = None,
        timeout: float = 10.0,
    ):
        self.url = url or settings.api_url
        self.cache = cache or create_cache()
        self.set_cookie_headers: list[str] = []
        self._cookies: dict[str, str] = {}
        if cookie:
            parsed: SimpleCookie = SimpleCookie()
            parsed.load(cookie)
            self._cookies = {name: morsel.value for name, morsel in parsed.items()}
        self._owns_http = http is None
        self._http = http or httpx.AsyncClient(timeout=timeout)

    async def __aenter__(self) -> "RepostitClient":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._owns_http:
            await self._http.aclose()

    @property
    def cookie_header(self) -> str | None:
        if not self._cookies:
            return None
        return "; ".join(f"{name}={value}" for name, value in self._cookies.items())

    def _remember_cookies(self, response: httpx.Response) -> None:
        for header in response.headers.get_list("set-cookie"):
            self.set_cookie_headers.append(header)
            parsed: SimpleCookie = SimpleCookie()
            parsed.load(header)
            for name, morsel in parsed.items():
                if morsel["max-age"] == "0" or not morsel.value:
                    self._cookies.pop(name, None)
                else:
                    self._cookies[name] = morsel.value

    async def execute(
        self, document: str, variables: dict[str, Any] | None = None
    ) -> dict[str, Any]:
        """Send one operation and return its `data`.

        Raises:
            NotAuthenticatedError: The API reported `not authenticated`.
            GraphQLClientError: Any other GraphQL or transport-level failure.
        """
        headers = {"content-type": "application/json"}
        cookie = self.cookie_header
        if cookie:
            headers["cookie"] = cookie

        try:
            response = await self._http.post(
                self.url,
                json={"query": document, "variables": variables or {}},
                headers=headers,
            )
        except httpx.HTTPError as e:
            logger.error("GraphQL request failed", url=self.url, error=str(e))
            raise GraphQLClientError([{"message": str(e)}]) from e

        self._remember_cookies(response)

        try:
            payload = response.json()
        except ValueError as e:
            raise GraphQLClientError(
                [{"message": f"Unexpected response ({response.status_code})"}]
            ) from e

        raise_for_errors(payload.get("errors"))
        if response.is_error:
            raise GraphQLClientError([{"message": f"HTTP {response.status_code}"}])
        return payload.get("data") or {}

    async def query(
        self,
        field_name: str,
        document: str,
        variables: dict[str, Any] | None = None,
        request_policy: str = "cache-first",
    ) -> Any:
        """Run a query with a single root field and return that field's value."""
        if request_policy == "cache-first":
            try:
                return self.cache.read_query(field_name, variables)
            except CacheMiss:
                pass

        data = await self.execute(document, variables)
        value = data.get(field_name)
        self.cache.write_query(field_name, variables, value)
        try:
            return self.cache.read_query(field_name, variables)
        except CacheMiss:
            return value

    async def mutate(
        self, field_name: str, document: str, variables: dict[str, Any] | None = None
    ) -> Any:
        """Run a mutation with a single root field, then update the cache."""
        variables = variables or {}
        data = await self.execute(document, variables)
        result = data.get(field_name)
        self.cache.write_entities(result)
        update = UPDATES.get(field_name)
        if update is not None:
            update(result, variables, self.cache)
        return result

    # Queries

    async def me(self) -> dict[str, Any] | None:
        return await self.query("me", documents.ME_QUERY)

    async def posts(self, limit: int, cursor: str | None = None) -> dict[str, Any]:
        return await self.query(
            "posts", documents.POSTS_QUERY, {"limit": limit, "cursor": cursor}
        )

    async def post(self, id: int) -> dict[str, Any] | None:
        return await self.query("post", documents.POST_QUERY, {"id": id})

    # Mutations

    async def login(self, username_or_email: str, password: str) -> dict[str, Any]:
        return await self.mutate(
            "login",
            documents.LOGIN_MUTATION,
            {"usernameOrEmail": username_or_email, "password": password},
        )

    async def register(self, email: str, username: str, password: str) -> dict[str, Any]:
        return await self.mutate(
            "register",
            documents.REGISTER_MUTATION,
            {"options": {"email": email, "username": username, "password": password}},
        )

    async def logout(self) -> bool:
        return await self.mutate("logout", documents.LOGOUT_MUTATION)

    async def forgot_password(self, email: str) -> bool:
        return await self.mutate(
            "forgotPassword", documents.FORGOT_PASSWORD_MUTATION, {"email": email}
        )

    async def change_password(self, token: str, new_password: str) -> dict[str, Any]:
        return await self.mutate(
            "changePassword",
            documents.CHANGE_PASSWORD_MUTATION,
            {"token": token, "newPassword": new_password},
        )

    async def create_post(self, title: str, text: str) -> dict[str, Any]:
        return await self.mutate(
            "createPost",
            documents.CREATE_POST_MUTATION,
            {"input": {"title": title, "text": text}},
        )

    async def update_post(self, id: int, title: str, text: str) -> dict[str, Any] | None:
        return await self.mutate(
            "updatePost",
            documents.UPDATE_POST_MUTATION,
            {"id": id, "title": title, "text": text},
        )

    async def delete_post(self, id: int) -> bool:
        return await self.mutate("deletePost", documents.DELETE_POST_MUTATION, {"id": id})

    async def vote(self, post_id: int, value: int) -> bool:
        return await self.mutate(
            "vote", documents.VOTE_MUTATION, {"postId": post_id, "value": value}
        )
