"""
Frontend pages.

Every page talks to the GraphQL API through a `RepostitClient` that carries
the visitor's cookie, and any session cookie the API sets is passed back to
the browser on the page response.
"""

from pathlib import Path
from typing import Any
from urllib.parse import quote, urlsplit

import httpx
from fastapi import APIRouter, Depends, Form, Request
from fastapi.responses import HTMLResponse, RedirectResponse, Response
from fastapi.templating import Jinja2Templates

from ..client import (
    GraphQLClientError,
    NotAuthenticatedError,
    RepostitClient,
    to_error_map,
)
from ..config import settings
from ..logging import get_logger

logger = get_logger(__name__)

templates = Jinja2Templates(directory=str(Path(__file__).parent / "templates"))

router = APIRouter()


async def api_client(request: Request):
    """Per-request API client forwarding the browser's cookie."""
    client = RepostitClient(cookie=request.headers.get("cookie"))
    try:
        yield client
    finally:
        await client.aclose()


def safe_next(next: str | None) -> str:
    """Only allow local redirect targets."""
    if next and next.startswith("/") and not next.startswith("//"):
        return next
    return "/"


def login_redirect(path: str) -> RedirectResponse:
    return RedirectResponse(f"/login?next={quote(path)}", status_code=303)


def return_path(request: Request) -> str:
    """Where to go back to after logging in.

    Form posts cannot be replayed with GET, so they return to the page the
    form was on (the Referer) or to the feed.
    """
    if request.method == "GET":
        path = request.url.path
        if request.url.query:
            path += "?" + request.url.query
        return path
    referer = request.headers.get("referer")
    if referer:
        parts = urlsplit(referer)
        if not parts.netloc or parts.netloc == request.url.netloc:
            path = parts.path + ("?" + parts.query if parts.query else "")
            return safe_next(path)
    return "/"


async def not_authenticated_handler(
    request: Request, exc: NotAuthenticatedError
) -> Response:
    """Send visitors to the login page when the API needs a session."""
    target = return_path(request)
    logger.info("Redirecting to login", path=request.url.path, next=target)
    return login_redirect(target)


async def api_error_handler(request: Request, exc: GraphQLClientError) -> Response:
    """Render API failures as an error page instead of a server error."""
    unreachable = isinstance(exc.__cause__, httpx.HTTPError)
    status_code = 502 if unreachable else 400
    logger.warning(
        "API request failed", path=request.url.path, error=str(exc), status=status_code
    )
    return templates.TemplateResponse(
        request,
        "error.html",
        {"message": "the server could not be reached" if unreachable else str(exc)},
        status_code=status_code,
    )


def relay(client: RepostitClient, response: Response) -> Response:
    for header in client.set_cookie_headers:
        response.headers.append("set-cookie", header)
    return response


def render(
    request: Request,
    client: RepostitClient,
    name: str,
    context: dict[str, Any],
    status_code: int = 200,
) -> Response:
    response = templates.TemplateResponse(
        request, name, context, status_code=status_code
    )
    return relay(client, response)


def redirect(client: RepostitClient, url: str) -> Response:
    return relay(client, RedirectResponse(url, status_code=303))


# Feed and posts


@router.get("/", response_class=HTMLResponse)
async def index(
    request: Request,
    cursor: str | None = None,
    client: RepostitClient = Depends(api_client),
):
    me = await client.me()
    page = await client.posts(limit=settings.feed_page_size, cursor=cursor)
    posts = page["posts"]
    next_cursor = posts[-1]["createdAt"] if posts else None
    return render(
        request,
        client,
        "index.html",
        {
            "me": me,
            "posts": posts,
            "has_more": page["hasMore"],
            "next_cursor": next_cursor,
        },
    )


@router.get("/post/{id}", response_class=HTMLResponse)
async def post_detail(
    request: Request, id: int, client: RepostitClient = Depends(api_client)
):
    me = await client.me()
    post = await client.post(id)
    if post is None:
        return render(request, client, "not_found.html", {"me": me}, status_code=404)
    return render(request, client, "post.html", {"me": me, "post": post})


@router.get("/post/edit/{id}", response_class=HTMLResponse)
async def edit_post_form(
    request: Request, id: int, client: RepostitClient = Depends(api_client)
):
    me = await client.me()
    if me is None:
        return login_redirect(request.url.path)
    post = await client.post(id)
    if post is None:
        return render(request, client, "not_found.html", {"me": me}, status_code=404)
    return render(request, client, "edit_post.html", {"me": me, "post": post})


@router.post("/post/edit/{id}")
async def edit_post(
    id: int,
    title: str = Form(...),
    text: str = Form(...),
    client: RepostitClient = Depends(api_client),
):
    await client.update_post(id, title, text)
    return redirect(client, f"/post/{id}")


@router.post("/post/{id}/delete")
async def delete_post(id: int, client: RepostitClient = Depends(api_client)):
    await client.delete_post(id)
    return redirect(client, "/")


@router.post("/post/{id}/vote")
async def vote_post(
    id: int,
    value: int = Form(...),
    next: str | None = Form(None),
    client: RepostitClient = Depends(api_client),
):
    value = -1 if value == -1 else 1
    post = await client.post(id)
    if post is not None and post.get("voteStatus") != value:
        await client.vote(id, value)
    return redirect(client, safe_next(next))


@router.get("/create-post", response_class=HTMLResponse)
async def create_post_form(
    request: Request, client: RepostitClient = Depends(api_client)
):
    me = await client.me()
    if me is None:
        return login_redirect("/create-post")
    return render(request, client, "create_post.html", {"me": me})


@router.post("/create-post")
async def create_post(
    title: str = Form(...),
    text: str = Form(...),
    client: RepostitClient = Depends(api_client),
):
    await client.create_post(title, text)
    return redirect(client, "/")


# Accounts


@router.get("/login", response_class=HTMLResponse)
async def login_form(
    request: Request,
    next: str | None = None,
    client: RepostitClient = Depends(api_client),
):
    return render(
        request, client, "login.html", {"me": None, "errors": {}, "next": safe_next(next)}
    )


@router.post("/login")
async def login(
    request: Request,
    username_or_email: str = Form(..., alias="usernameOrEmail"),
    password: str = Form(...),
    next: str | None = Form(None),
    client: RepostitClient = Depends(api_client),
):
    response = await client.login(username_or_email, password)
    if response.get("errors"):
        return render(
            request,
            client,
            "login.html",
            {
                "me": None,
                "errors": to_error_map(response["errors"]),
                "next": safe_next(next),
                "username_or_email": username_or_email,
            },
        )
    return redirect(client, safe_next(next))


@router.get("/register", response_class=HTMLResponse)
async def register_form(
    request: Request,
    next: str | None = None,
    client: RepostitClient = Depends(api_client),
):
    return render(
        request,
        client,
        "register.html",
        {"me": None, "errors": {}, "next": safe_next(next)},
    )


@router.post("/register")
async def register(
    request: Request,
    username: str = Form(...),
    email: str = Form(...),
    password: str = Form(...),
    next: str | None = Form(None),
    client: RepostitClient = Depends(api_client),
):
    response = await client.register(email, username, password)
    if response.get("errors"):
        return render(
            request,
            client,
            "register.html",
            {
                "me": None,
                "errors": to_error_map(response["errors"]),
                "next": safe_next(next),
                "username": username,
                "email": email,
            },
        )
    return redirect(client, safe_next(next))


@router.post("/logout")
async def logout(client: RepostitClient = Depends(api_client)):
    await client.logout()
    return redirect(client, "/")


@router.get("/forgot-password", response_class=HTMLResponse)
async def forgot_password_form(
    request: Request, client: RepostitClient = Depends(api_client)
):
    return render(request, client, "forgot_password.html", {"me": None, "complete": False})


@router.post("/forgot-password")
async def forgot_password(
    request: Request,
    email: str = Form(...),
    client: RepostitClient = Depends(api_client),
):
    await client.forgot_password(email)
    return render(request, client, "forgot_password.html", {"me": None, "complete": True})


@router.get("/change-password/{token}", response_class=HTMLResponse)
async def change_password_form(
    request: Request, token: str, client: RepostitClient = Depends(api_client)
):
    return render(
        request,
        client,
        "change_password.html",
        {"me": None, "token": token, "errors": {}, "token_error": None},
    )


@router.post("/change-password/{token}")
async def change_password(
    request: Request,
    token: str,
    new_password: str = Form(..., alias="newPassword"),
    client: RepostitClient = Depends(api_client),
):
    response = await client.change_password(token, new_password)
    if response.get("errors"):
        errors = to_error_map(response["errors"])
        return render(
            request,
            client,
            "change_password.html",
            {
                "me": None,
                "token": token,
                "errors": errors,
                "token_error": errors.get("token"),
            },
        )
    return redirect(client, "/")
