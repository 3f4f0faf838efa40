import json
import logging
import os
import re
from pathlib import Path
from typing import Any, Dict, List, Optional

from frontmatter.default_handlers import YAMLHandler

from slogengine.schemas.blog import BlogPost
from slogengine.utils import coerce_datetime, coerce_str, ensure_safe_name, format_datetime

logger = logging.getLogger(__name__)

# Header between "---" lines; the body after the closing line is kept verbatim.
FRONT_MATTER_PATTERN = re.compile(
    r"\A---[ \t]*\r?\n(.*?)^---[ \t]*(?:\r?\n|\Z)(.*)\Z", re.DOTALL | re.MULTILINE
)


class FilePostsRepo:
    """
    Stores one file per post under ``{blogs_path}/{username}/posts``.
    Subclasses decide the file format.
    """

    extension = ""

    def __init__(self, blogs_path: Path):
        self.blogs_path = Path(blogs_path)

    def posts_dir(self, username: str) -> Path:
        return self.blogs_path / ensure_safe_name(username) / "posts"

    def post_path(self, username: str, post_id: str) -> Path:
        return self.posts_dir(username) / f"{ensure_safe_name(post_id)}{self.extension}"

    def list_posts(self, username: str) -> List[BlogPost]:
        posts_dir = self.posts_dir(username)
        if not posts_dir.is_dir():
            return []

        posts = []
        for path in sorted(posts_dir.glob(f"*{self.extension}")):
            post = self.load_post(path)
            if post:
                posts.append(post)
        return posts

    def get_post(self, username: str, post_id: str) -> Optional[BlogPost]:
        path = self.post_path(username, post_id)
        if not path.is_file():
            return None
        return self.load_post(path)

    def post_exists(self, username: str, post_id: str) -> bool:
        return self.post_path(username, post_id).is_file()

    def save_post(self, username: str, post: BlogPost) -> Path:
        path = self.post_path(username, post.id)
        path.parent.mkdir(parents=True, exist_ok=True)
        _atomic_write(path, self.render(post))
        return path

    def delete_post(self, username: str, post_id: str) -> bool:
        path = self.post_path(username, post_id)
        try:
            path.unlink()
        except FileNotFoundError:
            return False
        return True

    def load_post(self, path: Path) -> Optional[BlogPost]:
        """Read a post file; any failure is logged and reported as None."""
        try:
            post = self.parse(path.read_text(encoding="utf-8"))
        except Exception as e:
            logger.warning(f"Failed to parse post file {path}: {e}")
            return None
        if post is None:
            logger.warning(f"No post header found in {path}")
            return None
        post.id = path.stem
        return post

    def parse(self, text: str) -> Optional[BlogPost]:
        raise NotImplementedError

    def render(self, post: BlogPost) -> str:
        raise NotImplementedError


class MarkdownPostsRepo(FilePostsRepo):
    """Front matter header followed by the raw markdown body."""

    extension = ".md"
    handler = YAMLHandler()

    def parse(self, text: str) -> Optional[BlogPost]:
        match = FRONT_MATTER_PATTERN.match(text)
        if not match:
            return None
        header, content = match.groups()
        metadata = self.handler.load(header) if header.strip() else {}
        if not isinstance(metadata, dict):
            return None
        return post_from_metadata(metadata, content)

    def render(self, post: BlogPost) -> str:
        header = self.handler.export(metadata_from_post(post), sort_keys=False)
        return f"---\n{header}\n---\n{post.content or ''}"


class JsonPostsRepo(FilePostsRepo):
    extension = ".json"

    def parse(self, text: str) -> Optional[BlogPost]:
        raw = json.loads(text)
        if not isinstance(raw, dict):
            return None
        # Files written by other tools may use PascalCase keys.
        normalized = {_camel(key): value for key, value in raw.items()}
        content = normalized.pop("content", None)
        return post_from_metadata(normalized, content or "")

    def render(self, post: BlogPost) -> str:
        return post.model_dump_json(indent=2)


def create_posts_repo(blogs_path: Path, post_format: str = "md") -> FilePostsRepo:
    if post_format.lower().lstrip(".") == "json":
        return JsonPostsRepo(blogs_path)
    return MarkdownPostsRepo(blogs_path)


def post_from_metadata(metadata: Dict[str, Any], content: str) -> BlogPost:
    return BlogPost(
        title=coerce_str(metadata.get("title")),
        content=content,
        date=coerce_datetime(metadata.get("date")),
        summary=coerce_str(metadata.get("summary")),
        author=coerce_str(metadata.get("author")),
        originalId=coerce_str(metadata.get("originalId")),
        slug=coerce_str(metadata.get("slug")),
        cover=coerce_str(metadata.get("cover")),
        tags=coerce_str(metadata.get("tags")),
        datePublished=coerce_datetime(metadata.get("datePublished")),
    )


def metadata_from_post(post: BlogPost) -> Dict[str, str]:
    metadata = {
        "title": post.title or "",
        "date": format_datetime(post.date) if post.date else "",
        "summary": post.summary or "",
        "author": post.author or "",
        "originalId": post.originalId or "",
        "slug": post.slug or "",
        "cover": post.cover or "",
        "tags": post.tags or "",
    }
    if post.datePublished:
        metadata["datePublished"] = format_datetime(post.datePublished)
    return metadata


def _camel(key: str) -> str:
    return key[:1].lower() + key[1:] if key else key


def _atomic_write(path: Path, text: str) -> None:
    tmp_path = path.with_name(f".{path.name}.tmp")
    tmp_path.write_text(text, encoding="utf-8")
    os.replace(tmp_path, path)
