# vpnstore/cli.py
import click
from flask_mail import Message

from vpnstore.errors import ValidationError
from vpnstore.extensions import db, mail


def register_cli(app):
    @app.cli.command("user-create")
    @click.argument("email")
    @click.argument("password")
    @click.option("--name", default="Admin")
    @click.option("--role", type=click.Choice(["user", "admin"]), default="admin")
    def user_create(email, password, name, role):
        """Create a user with the given credentials."""
        from vpnstore.models import User
        email = email.strip().lower()
        if User.query.filter_by(email=email).first():
            click.echo(f"User already exists: {email}")
            return
        if len(password) < 6:
            raise click.BadParameter("password must be at least 6 characters", param_hint="PASSWORD")
        u = User(name=name, email=email, role=role, is_active=True)
        u.set_password(password)
        db.session.add(u)
        db.session.commit()
        click.echo(f"Created {role}: {email}")

    @app.cli.command("reset-password")
    @click.argument("email")
    @click.argument("password")
    def reset_password(email, password):
        """Set a new password for an existing account."""
        from vpnstore.models import User
        from vpnstore.services.users import set_password
        u = User.query.filter_by(email=email.strip().lower()).first()
        if u is None:
            click.echo(f"No such user: {email}", err=True)
            raise SystemExit(1)
        try:
            set_password(u, password)
        except ValidationError as e:
            click.echo(e.message, err=True)
            raise SystemExit(1)
        click.echo(f"Password reset for {u.email}")

    @app.cli.command("backup-db")
    def backup_db():
        """Write a JSON snapshot to BACKUP_DIR."""
        from vpnstore.services.backup import create_backup
        result = create_backup()
        click.echo(f"Wrote {result['filename']} {result['stats']}")

    @app.cli.command("clear-db")
    @click.option("--yes", is_flag=True, help="Skip the confirmation prompt.")
    def clear_db(yes):
        """Delete orders, payments, products and non-admin users."""
        from vpnstore.services.backup import clear_database, database_counts
        click.echo(f"Current counts: {database_counts()}")
        if not yes:
            click.confirm("Permanently delete everything except admin accounts and settings?", abort=True)
        counts = clear_database(actor="cli")
        click.echo(f"Deleted: {counts}")

    @app.cli.command("mail-test")
    @click.option("--to", "to_addr", default=None, help="Override recipient email. Defaults to MAIL_USERNAME.")
    def mail_test(to_addr):
        """Send a quick test email using current SMTP settings."""
        to = (to_addr or app.config.get("MAIL_USERNAME") or "").strip()
        if not to:
            click.echo("No recipient found. Use --to or set MAIL_USERNAME in .env.", err=True)
            return
        msg = Message(
            subject="VPN Key Store mail test",
            recipients=[to],
            body="If you see this, SMTP is working.",
        )
        mail.send(msg)
        click.echo(f"Sent test email to {to} via {app.config.get('MAIL_SERVER')}:{app.config.get('MAIL_PORT')}")
