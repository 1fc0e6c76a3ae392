"""
remie-admin: account and maintenance commands run directly against the database.

    remie-admin create-first-admin
    remie-admin create-admin user@example.com
    remie-admin check-admin
    remie-admin mark-overdue-loans
"""
import click
from email_validator import validate_email, EmailNotValidError
from sqlalchemy.exc import SQLAlchemyError
from remie.core.config import get_settings
from remie.core.logging import setup_logging
from remie.database import Base, SessionLocal, engine
from remie.models.user import User, UserRole, UserStatus
from remie.services.loan_service import LoanService
from remie.services.user_service import UserService

MIN_PASSWORD_LENGTH = 8


def fail(message: str) -> None:
    """Print an error and exit non-zero."""
    click.secho(f"Error: {message}", fg="red", err=True)
    raise SystemExit(1)


def normalize_email(email: str) -> str:
    try:
        return validate_email(email.strip(), check_deliverability=False).normalized.lower()
    except EmailNotValidError:
        fail("Invalid email format")


def promote(user: User) -> None:
    user.role = UserRole.ADMIN
    user.status = UserStatus.ACTIVE
    user.email_verified = True


def echo_user(user: User) -> None:
    click.echo("-" * 40)
    click.echo(f"Email:    {user.email}")
    click.echo(f"Name:     {user.full_name}")
    click.echo(f"Role:     {user.role.value}")
    click.echo(f"Status:   {user.status.value}")
    click.echo(f"Verified: {user.email_verified}")
    click.echo("-" * 40)


def create_admin_user(db, email: str, first_name: str, last_name: str, password: str) -> User:
    if len(password) < MIN_PASSWORD_LENGTH:
        fail(f"Password must be at least {MIN_PASSWORD_LENGTH} characters")

    user = UserService.create_user(
        db,
        email=email,
        password=password,
        first_name=first_name,
        last_name=last_name,
        role=UserRole.ADMIN,
        user_status=UserStatus.ACTIVE,
        email_verified=True,
    )
    db.commit()
    return user


@click.group()
def cli():
    """REMIE administration commands."""
    settings = get_settings()
    setup_logging(settings.LOG_LEVEL, structured=settings.LOG_JSON)
    Base.metadata.create_all(bind=engine)


@cli.command("create-first-admin")
def create_first_admin():
    """Create the first admin, or upgrade an existing user to admin."""
    email = normalize_email(click.prompt("Email address"))

    with SessionLocal() as db:
        try:
            user = UserService.get_user_by_email(db, email)

            if user:
                if user.role == UserRole.ADMIN and user.status == UserStatus.ACTIVE:
                    click.echo(f"{email} is already an active admin.")
                    return

                click.echo(f"User {email} already exists (role: {user.role.value}).")
                if not click.confirm("Upgrade this user to ADMIN?", default=False):
                    click.echo("Cancelled.")
                    return

                promote(user)
                db.commit()
                click.secho("User upgraded to admin.", fg="green")
                echo_user(user)
                return

            first_name = click.prompt("First name")
            last_name = click.prompt("Last name")
            password = click.prompt("Password", hide_input=True, confirmation_prompt=True)

            user = create_admin_user(db, email, first_name, last_name, password)
        except SQLAlchemyError as e:
            db.rollback()
            fail(str(e))

        click.secho("Admin created.", fg="green")
        echo_user(user)


@cli.command("create-admin")
@click.argument("email", required=False)
def create_admin(email):
    """Promote an existing user to admin."""
    if not email:
        email = click.prompt("Email of the user to promote")
    email = normalize_email(email)

    with SessionLocal() as db:
        user = UserService.get_user_by_email(db, email)
        if not user:
            fail(f"No user with email {email}. The user must register first.")

        try:
            promote(user)
            db.commit()
        except SQLAlchemyError as e:
            db.rollback()
            fail(str(e))

        click.secho(f"{email} is now an admin.", fg="green")
        echo_user(user)


@cli.command("create-user-direct")
@click.option("--email", prompt="Email address")
@click.option("--password", prompt=True, hide_input=True)
@click.option("--first-name", prompt="First name")
@click.option("--last-name", prompt="Last name")
def create_user_direct(email, password, first_name, last_name):
    """Create an admin with the given credentials, or upgrade the existing user."""
    email = normalize_email(email)
    if not first_name.strip() or not last_name.strip():
        fail("All fields are required")

    with SessionLocal() as db:
        try:
            user = UserService.get_user_by_email(db, email)
            if user:
                click.echo("User already exists. Updating to ADMIN...")
                promote(user)
                db.commit()
            else:
                user = create_admin_user(db, email, first_name.strip(), last_name.strip(), password)
        except SQLAlchemyError as e:
            db.rollback()
            fail(str(e))

        click.secho("Admin user created/updated.", fg="green")
        echo_user(user)


@cli.command("check-admin")
def check_admin():
    """List admins, then every user."""
    with SessionLocal() as db:
        admins = db.query(User).filter(User.role == UserRole.ADMIN).order_by(User.created_at).all()
        users = db.query(User).order_by(User.created_at).all()

        click.echo(f"Admins ({len(admins)}):")
        for user in admins:
            click.echo(f"  {user.email} - {user.role.value} - {user.status.value}")
        if not admins:
            click.echo("  none")

        click.echo(f"All users ({len(users)}):")
        for user in users:
            click.echo(f"  {user.email} - {user.role.value} - {user.status.value}")


@cli.command("verify-admin")
@click.argument("email")
def verify_admin(email):
    """Show how an account is set up for admin login."""
    email = normalize_email(email)

    with SessionLocal() as db:
        user = UserService.get_user_by_email(db, email)
        if not user:
            fail("User not found")

        click.echo(f"Email:                {user.email}")
        click.echo(f"Role:                 {user.role.value}")
        click.echo(f"Status:               {user.status.value}")
        click.echo(f"Email verified:       {user.email_verified}")
        click.echo(f"Password hash exists: {'Yes' if user.password_hash else 'No'}")


@cli.command("mark-overdue-loans")
def mark_overdue_loans():
    """Mark loans past their due date as DEFAULTED. Run daily."""
    with SessionLocal() as db:
        try:
            count = LoanService.mark_overdue_loans(db)
        except SQLAlchemyError as e:
            db.rollback()
            fail(str(e))

    click.echo(f"{count} loan(s) marked as defaulted.")


if __name__ == "__main__":
    cli()
