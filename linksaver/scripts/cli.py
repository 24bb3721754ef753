"""CLI tool for LinkSaver."""

from __future__ import annotations

import argparse
import asyncio
import getpass
import json
import sys
from typing import Any

import httpx
from sqlalchemy import select

from linksaver.config import config
from linksaver.database import AsyncSessionLocal, init_db
from linksaver.errors import LinkSaverError
from linksaver.models import User
from linksaver.services.categories import list_categories
from linksaver.utils.auth import create_user, get_password_hash, get_user_by_email


async def upsert_user(email: str, password: str, full_name: str | None = None) -> None:
    """Create or update a user with the given credentials."""
    await init_db()
    async with AsyncSessionLocal() as session:
        user = await get_user_by_email(session, email)

        if user:
            user.hashed_password = get_password_hash(password)
            user.is_active = True
            if full_name:
                user.full_name = full_name
            await session.commit()
            print(f"Updated password for existing user {user.email}")
            return

        new_user = await create_user(session, email, password, full_name)
        print(f"Created user {new_user.email}")


async def list_users() -> None:
    """List all users."""
    await init_db()
    async with AsyncSessionLocal() as session:
        result = await session.execute(select(User).order_by(User.id))
        users = result.scalars().all()
        for user in users:
            print(f"ID: {user.id}, Email: {user.email}, Active: {user.is_active}")


async def delete_user(email: str) -> bool:
    """Delete a user together with their categories and links."""
    await init_db()
    async with AsyncSessionLocal() as session:
        user = await get_user_by_email(session, email)
        if not user:
            print(f"User {email} not found.", file=sys.stderr)
            return False
        await session.delete(user)
        await session.commit()
        print(f"Deleted user {email}")
        return True


def render_category_tree(categories: list[dict[str, Any]]) -> list[str]:
    """Format serialized categories as an indented two-level outline."""

    by_id = {item["id"]: item for item in categories}
    lines: list[str] = []
    for category in categories:
        if category["parentId"] is not None:
            continue
        lines.append(
            f"{category['name']} ({category['color']}) "
            f"[id {category['id']}, {category['linkCount']} links]"
        )
        for child in category["children"]:
            link_count = by_id.get(child["id"], {}).get("linkCount", 0)
            lines.append(
                f"  {child['name']} ({child['color']}) "
                f"[id {child['id']}, {link_count} links]"
            )
    return lines


async def show_category_tree(email: str) -> bool:
    """Print the category tree of one user."""
    await init_db()
    async with AsyncSessionLocal() as session:
        user = await get_user_by_email(session, email)
        if not user:
            print(f"User {email} not found.", file=sys.stderr)
            return False
        categories = await list_categories(session, user.id)

    lines = render_category_tree(categories)
    if not lines:
        print(f"No categories for {user.email}.")
    for line in lines:
        print(line)
    return True


async def api_request(
    url: str,
    endpoint: str,
    email: str,
    password: str,
    transport: httpx.AsyncBaseTransport | None = None,
) -> Any | None:
    """Log in with a bearer token and GET ``endpoint``.

    Returns:
        Decoded JSON payload, or ``None`` on failure
    """
    async with httpx.AsyncClient(base_url=url, transport=transport) as client:
        login_resp = await client.post(
            "/auth/login", json={"email": email, "password": password}
        )
        if login_resp.status_code != 200:
            print("Login failed.", file=sys.stderr)
            return None

        token = login_resp.json()["token"]
        resp = await client.get(
            endpoint,
            headers={
                "Authorization": f"Bearer {token}",
                "Accept": "application/json",
            },
        )

    if resp.status_code != 200:
        print(f"Error: {resp.status_code}", file=sys.stderr)
        print(resp.text, file=sys.stderr)
        return None

    payload = resp.json()
    print(json.dumps(payload, indent=2))
    return payload


def prompt_password(confirm: bool = True) -> str:
    """Prompt for a password."""
    first = getpass.getpass("Password: ")
    if not confirm:
        return first

    second = getpass.getpass("Confirm password: ")
    if first != second:
        print("Passwords do not match.", file=sys.stderr)
        sys.exit(1)
    if not first:
        print("Password cannot be empty.", file=sys.stderr)
        sys.exit(1)
    return first


API_ENDPOINTS = {
    "links": "/links",
    "categories": "/categories",
}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="LinkSaver CLI tool.")
    subparsers = parser.add_subparsers(dest="command", required=True)

    # User management
    user_parser = subparsers.add_parser("user", help="Manage users")
    user_subparsers = user_parser.add_subparsers(dest="user_command", required=True)

    create_parser = user_subparsers.add_parser("create", help="Create or update a user")
    create_parser.add_argument("--email", required=True, help="User email")
    create_parser.add_argument("--password", help="Password (omit to prompt)")
    create_parser.add_argument("--name", help="Full name")

    user_subparsers.add_parser("list", help="List all users")

    delete_parser = user_subparsers.add_parser("delete", help="Delete a user")
    delete_parser.add_argument("--email", required=True, help="User email")

    # Category inspection
    categories_parser = subparsers.add_parser("categories", help="Inspect categories")
    categories_subparsers = categories_parser.add_subparsers(
        dest="categories_command", required=True
    )
    tree_parser = categories_subparsers.add_parser(
        "tree", help="Print a user's category tree"
    )
    tree_parser.add_argument("--email", required=True, help="User email")

    # API interaction
    api_parser = subparsers.add_parser("api", help="Interact with the API")
    api_parser.add_argument(
        "--url", default=f"http://localhost:{config.PORT}", help="API URL"
    )
    api_parser.add_argument("--email", required=True, help="User email")
    api_parser.add_argument("--password", help="User password (omit to prompt)")

    api_subparsers = api_parser.add_subparsers(dest="api_command", required=True)
    api_subparsers.add_parser("links", help="List links")
    api_subparsers.add_parser("categories", help="List categories")

    return parser


def main(argv: list[str] | None = None) -> None:
    args = build_parser().parse_args(argv)

    try:
        if args.command == "user":
            if args.user_command == "create":
                password = args.password or prompt_password(confirm=True)
                asyncio.run(upsert_user(args.email, password, args.name))
            elif args.user_command == "list":
                asyncio.run(list_users())
            elif args.user_command == "delete":
                if not asyncio.run(delete_user(args.email)):
                    sys.exit(1)

        elif args.command == "categories":
            if not asyncio.run(show_category_tree(args.email)):
                sys.exit(1)

        elif args.command == "api":
            password = args.password or prompt_password(confirm=False)
            endpoint = API_ENDPOINTS[args.api_command]
            result = asyncio.run(
                api_request(args.url.rstrip("/"), endpoint, args.email, password)
            )
            if result is None:
                sys.exit(1)
    except LinkSaverError as exc:
        print(f"Error: {exc.message}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
