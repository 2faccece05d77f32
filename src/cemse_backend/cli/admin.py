import click
from cemse_backend.database import SessionLocal, init_db
from cemse_backend.services.accounts import ensure_super_admin
from cemse_backend.settings import settings

@click.command()
def init_database():
    """Create all database tables."""
    init_db()
    click.echo("Database initialized")

@click.command()
@click.option("--email", "-e", "email", default=lambda: settings.SEED_SUPER_ADMIN_EMAIL, show_default="SEED_SUPER_ADMIN_EMAIL")
@click.option("--name", "-n", "name", default=lambda: settings.SEED_SUPER_ADMIN_NAME, show_default="SEED_SUPER_ADMIN_NAME")
@click.option("--password", "-p", "password", default=lambda: settings.SEED_SUPER_ADMIN_PASSWORD, prompt=True, hide_input=True)
def seed(email, name, password):
    """Create the super admin account."""

    db = SessionLocal()
    try:
        profile = ensure_super_admin(db, email=email, password=password, name=name)
        click.echo(f"Super admin account: {profile.email} ({profile.role})")
    finally:
        db.close()

@click.command()
@click.option("--host", "host", default="0.0.0.0")
@click.option("--port", "port", default=8000, type=int)
@click.option("--reload", "reload", is_flag=True, default=False)
def serve(host, port, reload):
    """Run the API server."""
    import uvicorn
    uvicorn.run("cemse_backend.server:app", host=host, port=port, reload=reload)
