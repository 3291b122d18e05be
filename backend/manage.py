import asyncio
import typer
from pydantic import ValidationError

import cms.db_models # noqa: F401

from cms.config import settings
from cms.database import async_session_factory
from cms.exceptions import AppError
from cms.users.models import UserRole
from cms.users.schema import UserCreate
from cms.users.service import create_user, seed_super_admin

cli = typer.Typer()


@cli.command(name="create-admin")
def createadmin(
    name: str = typer.Option(..., "--name", "-n", help="Operator's full name."),
    email: str = typer.Option(..., "--email", "-e", help="Operator's email address."),
    password: str = typer.Option(..., "--password", "-p", help="Operator's password (min 6 chars)."),
    super_admin: bool = typer.Option(False, "--super", help="Grant the super_admin role."),
):
    """
    Creates a new operator account ('admin' unless --super is given).
    """
    role = UserRole.SUPER_ADMIN if super_admin else UserRole.ADMIN

    async def main():
        async with async_session_factory() as session:
            user_data = UserCreate(name=name, email=email, password=password)
            return await create_user(user_data=user_data, db=session, role=role)

    try:
        user = asyncio.run(main())
    except (AppError, ValidationError) as e:
        print(f"❌ Error creating operator: {e}")
        raise typer.Exit(code=1)

    print("✅ Operator created successfully!")
    print(f"   ID: {user.id}")
    print(f"   Email: {user.email}")
    print(f"   Role: {user.role.value}")


@cli.command(name="seed-super-admin")
def seed():
    """
    Creates or restores the configured super admin (SUPER_ADMIN_* settings).
    """
    async def main():
        async with async_session_factory() as session:
            return await seed_super_admin(session, settings)

    user = asyncio.run(main())
    print(f"✅ Super admin ready: id={user.id} email={user.email}")


if __name__ == "__main__":
    cli()
