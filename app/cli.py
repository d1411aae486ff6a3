"""
FloorPOS administration CLI.

    floorpos create-superadmin
    floorpos db-upgrade
    floorpos runserver --port 8000
"""
import typer
from email_validator import validate_email, EmailNotValidError
from rich.console import Console
from rich.table import Table

from models.user import User, UserRole
from utils.auth import get_password_hash
from utils.database import SessionLocal

MIN_PASSWORD_LENGTH = 6

cli = typer.Typer(
    name="floorpos",
    help="FloorPOS restaurant floor management CLI",
    add_completion=False,
)
console = Console()


def fail(message: str):
    console.print(f"[red]✗ {message}[/red]")
    raise typer.Exit(1)


@cli.command()
def create_superadmin(
    name: str = typer.Option(..., prompt=True, help="Display name"),
    email: str = typer.Option(..., prompt=True, help="Login email"),
    password: str = typer.Option(..., prompt=True, hide_input=True),
    confirm_password: str = typer.Option(..., prompt="Confirm password", hide_input=True),
):
    """Create a super admin account."""
    if password != confirm_password:
        fail("Passwords do not match")
    if len(password) < MIN_PASSWORD_LENGTH:
        fail(f"Password must be at least {MIN_PASSWORD_LENGTH} characters")
    try:
        email = validate_email(email, check_deliverability=False).normalized
    except EmailNotValidError as e:
        fail(f"Invalid email: {e}")

    db = SessionLocal()
    try:
        if db.query(User).filter(User.email == email).first():
            fail(f"A user with email {email} already exists")

        user = User(
            name=name.strip(),
            email=email,
            hashed_password=get_password_hash(password),
            role=UserRole.SUPERADMIN,
            is_active=True,
        )
        db.add(user)
        db.commit()
        db.refresh(user)
    finally:
        db.close()

    table = Table(title="Super admin created")
    table.add_column("ID", style="cyan")
    table.add_column("Name")
    table.add_column("Email", style="green")
    table.add_row(str(user.id), user.name, user.email)
    console.print(table)


@cli.command()
def db_upgrade(
    revision: str = typer.Argument("head", help="Migration revision target"),
):
    """Run database migrations."""
    from alembic import command
    from alembic.config import Config

    console.print(f"[blue]Running migrations to: {revision}[/blue]")
    try:
        command.upgrade(Config("alembic.ini"), revision)
    except Exception as e:
        fail(f"Migration failed: {e}")
    console.print("[green]✓ Migrations complete[/green]")


@cli.command()
def runserver(
    host: str = typer.Option("0.0.0.0", help="Bind address"),
    port: int = typer.Option(8000, help="Bind port"),
    reload: bool = typer.Option(False, "--reload", help="Reload on code changes"),
):
    """Run the API server."""
    import uvicorn

    console.print(f"[blue]Starting FloorPOS API on {host}:{port}[/blue]")
    uvicorn.run("app.main:app", host=host, port=port, reload=reload)


if __name__ == "__main__":
    cli()
