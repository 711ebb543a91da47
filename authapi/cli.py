"""Auth API CLI tool (authapi)."""

import typer

app = typer.Typer(name="authapi", help="Auth API CLI")
db_app = typer.Typer(help="Database management commands")
tokens_app = typer.Typer(help="Token maintenance commands")
app.add_typer(db_app, name="db")
app.add_typer(tokens_app, name="tokens")


@db_app.command("init")
def db_init():
    """Create all tables that don't exist yet."""
    import authapi.models  # noqa: F401  registers every table on Base.metadata
    from authapi.db.base import Base
    from authapi.db.session import engine

    Base.metadata.create_all(bind=engine)
    typer.echo(f"✅ Tables created ({len(Base.metadata.tables)} defined)")


@db_app.command("seed")
def db_seed():
    """Seed permissions, roles and the super-admin."""
    from authapi.db.session import SessionLocal
    from authapi.db.seeds.seed_roles import seed_permissions, seed_roles
    from authapi.db.seeds.seed_super_admin import seed_super_admin

    db = SessionLocal()
    try:
        seed_permissions(db)
        seed_roles(db)
        seed_super_admin(db)
    finally:
        db.close()
    typer.echo("✅ All seeds applied")


@db_app.command("reset")
def db_reset(
    yes: bool = typer.Option(False, "--yes", "-y", help="Skip the confirmation prompt"),
):
    """Drop and recreate every table (DANGER)."""
    if not yes:
        confirm = typer.confirm("⚠️  This will DROP all tables. Continue?")
        if not confirm:
            raise typer.Abort()
    import authapi.models  # noqa: F401
    from authapi.db.base import Base
    from authapi.db.session import engine

    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    typer.echo("✅ Database reset")


@tokens_app.command("purge")
def tokens_purge():
    """Delete every expired persisted token now."""
    from authapi.core.config import settings
    from authapi.db.session import SessionLocal
    from authapi.services.token_service import TokenService

    db = SessionLocal()
    try:
        deleted = TokenService(settings).purge_all_expired(db)
    finally:
        db.close()
    typer.echo(f"✅ Removed {deleted} expired tokens")


@app.command("serve")
def serve(
    host: str = typer.Option("0.0.0.0", help="Host"),
    port: int = typer.Option(8000, help="Port"),
    reload: bool = typer.Option(False, help="Auto-reload"),
):
    """Start the FastAPI server."""
    import uvicorn
    uvicorn.run("authapi.main:app", host=host, port=port, reload=reload)


if __name__ == "__main__":
    app()
