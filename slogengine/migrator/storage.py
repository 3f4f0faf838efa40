"""
Convert a blog directory from the JSON post layout to the markdown layout.

Old layout: ``posts/{id}.json`` with images in ``images/{id}_{name}``.
New layout: ``posts/{id}.md`` with images in ``posts/{id}/{name}``.
"""

import logging
import re
import shutil
import uuid
from pathlib import Path
from typing import Dict, List, Optional

from slogengine.repos.posts_repo import JsonPostsRepo, MarkdownPostsRepo
from slogengine.utils import ensure_safe_name

logger = logging.getLogger(__name__)


def update_image_urls(
    text: Optional[str], username: str, post_id: str, url_prefix: str = "/blogs"
) -> Optional[str]:
    """Rewrite ``/blogs/{u}/images/{id}_x`` references to ``/blogs/{u}/posts/{id}/x``."""
    if not text:
        return text
    pattern = re.compile(
        rf"{re.escape(url_prefix)}/{re.escape(username)}/images/{re.escape(post_id)}_([^)\s\"']+)"
    )
    return pattern.sub(lambda m: f"{url_prefix}/{username}/posts/{post_id}/{m.group(1)}", text)


def group_images_by_post_id(image_files: List[Path]) -> Dict[str, List[Path]]:
    """Group ``{uuid}_{name}`` files by their uuid prefix; other files are ignored."""
    groups: Dict[str, List[Path]] = {}
    for path in image_files:
        prefix, sep, _ = path.stem.partition("_")
        if not sep:
            continue
        try:
            uuid.UUID(prefix)
        except ValueError:
            continue
        groups.setdefault(prefix, []).append(path)
    return groups


class BlogMigrationService:
    def __init__(self, blogs_path: Path, url_prefix: str = "/blogs"):
        self.blogs_path = Path(blogs_path)
        self.url_prefix = url_prefix.rstrip("/")
        self.json_repo = JsonPostsRepo(self.blogs_path)
        self.markdown_repo = MarkdownPostsRepo(self.blogs_path)

    def migrate_all(self) -> None:
        if not self.blogs_path.is_dir():
            logger.warning(f"Blogs directory does not exist: {self.blogs_path}")
            return

        user_dirs = sorted(p for p in self.blogs_path.iterdir() if p.is_dir())
        logger.info(f"Found {len(user_dirs)} user(s), starting migration")
        for user_dir in user_dirs:
            username = user_dir.name
            try:
                self.migrate_user_posts(username)
                self.migrate_user_images(username)
            except Exception as e:
                logger.error(f"Migration failed for {username}: {e}")
        logger.info("Migration of all users finished")

    def migrate_user_posts(self, username: str) -> int:
        """Convert every JSON post of a user to markdown. Returns the count converted."""
        posts_dir = self.json_repo.posts_dir(username)
        if not posts_dir.is_dir():
            logger.warning(f"No posts directory for {username}: {posts_dir}")
            return 0

        json_files = sorted(posts_dir.glob("*.json"))
        logger.info(f"{username}: converting {len(json_files)} JSON post(s)")

        converted = 0
        for json_file in json_files:
            post = self.json_repo.load_post(json_file)
            if post is None:
                continue
            try:
                post.content = update_image_urls(post.content, username, post.id, self.url_prefix)
                post.cover = update_image_urls(post.cover, username, post.id, self.url_prefix)
                self.markdown_repo.save_post(username, post)
                json_file.unlink()
            except OSError as e:
                logger.error(f"Failed to convert {json_file}: {e}")
                continue
            converted += 1
            logger.info(f"Converted {json_file.name} -> {post.id}.md")

        return converted

    def migrate_user_images(self, username: str) -> int:
        """Move ``images/{id}_{name}`` files into their post folders. Returns the count moved."""
        user_dir = self.blogs_path / ensure_safe_name(username)
        images_dir = user_dir / "images"
        if not images_dir.is_dir():
            logger.warning(f"No images directory for {username}: {images_dir}")
            return 0

        # only top-level files; the temp pool is a subdirectory and stays put
        image_files = sorted(p for p in images_dir.iterdir() if p.is_file())
        moved = 0
        for post_id, files in group_images_by_post_id(image_files).items():
            post_dir = user_dir / "posts" / post_id
            post_dir.mkdir(parents=True, exist_ok=True)
            for path in files:
                new_name = path.name.removeprefix(f"{post_id}_")
                try:
                    shutil.move(str(path), str(post_dir / new_name))
                except OSError as e:
                    logger.error(f"Failed to move {path.name}: {e}")
                    continue
                moved += 1
                logger.info(f"Moved {path.name} -> posts/{post_id}/{new_name}")

        logger.info(f"{username}: moved {moved} image(s)")
        return moved
