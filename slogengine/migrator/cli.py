"""CLI for one-off blog migrations."""

import logging
from pathlib import Path
from typing import Annotated, Optional

import typer

from slogengine.migrator.hashnode import HashnodeMigrator
from slogengine.migrator.storage import BlogMigrationService
from slogengine.repos.posts_repo import create_posts_repo
from slogengine.settings import settings

app = typer.Typer(
    name="slogengine-migrate",
    help="Import Hashnode exports and convert blog storage formats.",
)


@app.callback()
def main(
    log_level: Annotated[
        str, typer.Option("--log-level", help="Logging level.")
    ] = settings.LOG_LEVEL,
) -> None:
    """SlogEngine migration tools."""
    logging.basicConfig(
        level=getattr(logging, log_level.upper(), logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )


@app.command("hashnode")
def hashnode_cmd(
    source: Annotated[
        Path,
        typer.Argument(
            help="Directory with Hashnode markdown exports.",
            exists=True,
            file_okay=False,
            dir_okay=True,
            resolve_path=True,
        ),
    ],
    username: Annotated[str, typer.Option("--username", "-u", help="Target blog user.")],
    blogs: Annotated[
        Path, typer.Option("--blogs", "-b", help="Blogs storage directory.")
    ] = settings.BLOGS_PATH,
    post_format: Annotated[
        str, typer.Option("--format", "-f", help="Post file format: json or md.")
    ] = "json",
) -> None:
    """Import Hashnode posts into a user's blog."""
    repo = create_posts_repo(blogs, post_format)
    with HashnodeMigrator(repo, timeout=settings.IMPORT_HTTP_TIMEOUT) as migrator:
        posts = migrator.migrate(source, username)
    typer.echo(f"Imported {len(posts)} post(s) into {repo.posts_dir(username)}")


@app.command("convert")
def convert_cmd(
    blogs: Annotated[
        Path, typer.Option("--blogs", "-b", help="Blogs storage directory.")
    ] = settings.BLOGS_PATH,
    username: Annotated[
        Optional[str],
        typer.Option("--username", "-u", help="Only convert this user."),
    ] = None,
) -> None:
    """Convert JSON posts to markdown and move images into post folders."""
    service = BlogMigrationService(blogs, url_prefix=settings.BLOGS_URL_PREFIX)
    if username:
        converted = service.migrate_user_posts(username)
        moved = service.migrate_user_images(username)
        typer.echo(f"{username}: converted {converted} post(s), moved {moved} image(s)")
    else:
        service.migrate_all()
        typer.echo("Converted all users")
