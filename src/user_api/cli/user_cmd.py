"""User management CLI commands."""

import asyncio

import typer
from pydantic import ValidationError

from user_api.core.errors import ErrorKind, Failure
from user_api.models.user import Role

user_app = typer.Typer()


@user_app.command("create")
def create_user(
    email: str = typer.Option(..., prompt=True, help="Email address"),
    name: str = typer.Option(..., prompt=True, help="Display name"),
    password: str = typer.Option(..., prompt=True, hide_input=True, confirmation_prompt=True, help="Password"),
    role: Role = typer.Option(Role.USER, prompt=True, help="User role (ADMIN/USER)"),
    if_not_exists: bool = typer.Option(
        False,
        "--if-not-exists",
        help="Exit successfully if user already exists (idempotent mode)",
    ),
) -> None:
    """Create a new user interactively."""
    asyncio.run(_create_user(email, name, password, role, if_not_exists=if_not_exists))


async def _create_user(
    email: str,
    name: str,
    password: str,
    role: Role,
    *,
    if_not_exists: bool = False,
) -> None:
    """Async implementation of user creation."""
    from user_api.core.config import get_settings
    from user_api.core.container import build_container
    from user_api.schemas.user import UserCreateRequest

    try:
        request = UserCreateRequest(email=email, name=name, password=password, role=role)
    except ValidationError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(code=1) from e

    container = build_container(get_settings())
    try:
        result = await container.users.create_user(request.email, request.name, request.password, request.role)
        if isinstance(result, Failure):
            if if_not_exists and result.kind is ErrorKind.CONFLICT:
                typer.echo(f"User '{email}' already exists, skipping (--if-not-exists)")
                return
            typer.echo(f"Error: {result.message}", err=True)
            raise typer.Exit(code=1)
        typer.echo(f"User '{result.email}' created with role '{result.role}'")
    finally:
        await container.close()


@user_app.command("list")
def list_users(
    include_deleted: bool = typer.Option(False, "--include-deleted", help="Also show soft-deleted users"),
) -> None:
    """List all users."""
    asyncio.run(_list_users(include_deleted=include_deleted))


async def _list_users(*, include_deleted: bool = False) -> None:
    """Async implementation of user listing."""
    from user_api.core.config import get_settings
    from user_api.core.container import build_container
    from user_api.services.user_directory import MAX_PAGE_SIZE, UserFilter

    container = build_container(get_settings())
    try:
        page_number = 1
        while True:
            page = await container.users.list_users(
                UserFilter(page=page_number, limit=MAX_PAGE_SIZE, sort_order="asc", include_deleted=include_deleted)
            )
            if page_number == 1:
                typer.echo(f"{'Email':<30} {'Name':<25} {'Role':<6} {'Deleted':<8}")
                typer.echo("-" * 72)
            for user in page.users:
                typer.echo(f"{user.email:<30} {user.name:<25} {user.role:<6} {user.deleted!s:<8}")
            if page_number >= page.total_pages:
                break
            page_number += 1
        typer.echo(f"\nTotal: {page.total_users}")
    finally:
        await container.close()
