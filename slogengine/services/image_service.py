import datetime
import logging
import re
import shutil
import time
import uuid
from pathlib import Path
from typing import Callable, Iterable, List, Optional

from slogengine.utils import ensure_safe_name

logger = logging.getLogger(__name__)

MANAGED_URL_PREFIX = "/blogs/"
TEMP_PREFIX = "temp_"

MARKDOWN_IMAGE_PATTERN = re.compile(r"!\[.*?\]\((.*?)\)")
HTML_IMAGE_PATTERN = re.compile(r"""<img[^>]+src=["']([^"']+)["']""")


def extract_image_urls(content: str, prefix: str = MANAGED_URL_PREFIX) -> List[str]:
    """
    Return image URLs referenced by markdown or <img> markup that point into
    the managed /blogs/ namespace. External URLs are ignored.
    """
    if not content:
        return []

    urls = [m.group(1) for m in MARKDOWN_IMAGE_PATTERN.finditer(content)]
    urls.extend(m.group(1) for m in HTML_IMAGE_PATTERN.finditer(content))
    return [url for url in urls if url.startswith(prefix)]


def adopted_file_name(temp_name: str) -> str:
    return temp_name[len(TEMP_PREFIX) :] if temp_name.startswith(TEMP_PREFIX) else temp_name


def get_content_type_from_filename(filename: str) -> str:
    """
    Determine content type from file extension
    """
    filename = filename.lower()
    if filename.endswith((".jpg", ".jpeg")):
        return "image/jpeg"
    elif filename.endswith(".png"):
        return "image/png"
    elif filename.endswith(".gif"):
        return "image/gif"
    elif filename.endswith(".svg"):
        return "image/svg+xml"
    elif filename.endswith(".webp"):
        return "image/webp"
    else:
        return "application/octet-stream"


def _file_name(url: str) -> str:
    return url.rsplit("/", 1)[-1]


class ImageService:
    """
    Owns the on-disk image lifecycle of a blog:

    - uploads land in ``{user}/images/temp`` with a ``temp_`` prefix,
    - saving a post moves the temp images its body references into
      ``{user}/posts/{post_id}/`` and rewrites the URLs,
    - images in a post folder that the body no longer references are deleted,
    - temp uploads older than the retention window are swept.
    """

    def __init__(
        self,
        blogs_path: Path,
        url_prefix: str = "/blogs",
        temp_retention: datetime.timedelta = datetime.timedelta(hours=24),
        clock: Optional[Callable[[], float]] = None,
    ):
        self.blogs_path = Path(blogs_path)
        self.url_prefix = url_prefix.rstrip("/")
        self.temp_retention = temp_retention
        self.clock = clock or time.time

    def temp_dir(self, username: str) -> Path:
        return self.blogs_path / ensure_safe_name(username) / "images" / "temp"

    def post_images_dir(self, username: str, post_id: str) -> Path:
        return (
            self.blogs_path
            / ensure_safe_name(username)
            / "posts"
            / ensure_safe_name(post_id)
        )

    def temp_url_prefix(self, username: str) -> str:
        return f"{self.url_prefix}/{username}/images/temp/"

    def post_url_prefix(self, username: str, post_id: str) -> str:
        return f"{self.url_prefix}/{username}/posts/{post_id}/"

    def save_temp_image(self, username: str, filename: str, data: bytes) -> str:
        """Store an uploaded image in the temp pool and return its URL."""
        temp_dir = self.temp_dir(username)
        temp_dir.mkdir(parents=True, exist_ok=True)

        stamp = datetime.datetime.now(datetime.timezone.utc).strftime("%Y%m%d%H%M%S")
        extension = Path(filename).suffix.lower()
        name = f"{TEMP_PREFIX}{stamp}_{uuid.uuid4().hex}{extension}"
        (temp_dir / name).write_bytes(data)

        logger.info(f"Saved temp image {name} ({len(data)} bytes) for {username}")
        return f"{self.temp_url_prefix(username)}{name}"

    def adopt_image(self, username: str, post_id: str, url: Optional[str]) -> Optional[str]:
        """
        Move a single temp image into the post folder. Returns the new URL,
        or the input unchanged when it is not a temp reference or the file
        is gone. A temp URL whose file already sits in the post folder maps
        to its adopted URL.
        """
        if not url or not url.startswith(self.temp_url_prefix(username)):
            return url

        temp_name = _file_name(url)
        source = self.temp_dir(username) / temp_name
        new_name = adopted_file_name(temp_name)
        target_dir = self.post_images_dir(username, post_id)
        new_url = f"{self.post_url_prefix(username, post_id)}{new_name}"

        if not source.is_file():
            # Already moved for another reference to the same upload.
            if (target_dir / new_name).is_file():
                return new_url
            logger.debug(f"Temp image missing, leaving reference as-is: {source}")
            return url

        try:
            target_dir.mkdir(parents=True, exist_ok=True)
            shutil.move(str(source), str(target_dir / new_name))
        except OSError as e:
            logger.error(f"Failed to move {source} into {target_dir}: {e}")
            return url

        logger.debug(f"Adopted image {url} -> {new_url}")
        return new_url

    def reconcile(
        self,
        username: str,
        post_id: str,
        content: str,
        keep: Iterable[Optional[str]] = (),
    ) -> str:
        """
        Make the post's image folder match the images its content references.

        ``keep`` holds extra references (e.g. the cover) that count as used
        without being part of the body. Returns the rewritten content.
        """
        content = content or ""
        temp_prefix = self.temp_url_prefix(username)
        post_prefix = self.post_url_prefix(username, post_id)

        managed_prefix = f"{self.url_prefix}/"
        temp_urls = [
            url
            for url in extract_image_urls(content, managed_prefix)
            if url.startswith(temp_prefix)
        ]
        for url in dict.fromkeys(temp_urls):
            new_url = self.adopt_image(username, post_id, url)
            if new_url != url:
                content = content.replace(url, new_url)

        referenced = extract_image_urls(content, managed_prefix) + [url for url in keep if url]
        used_names = {
            _file_name(url) for url in referenced if url.startswith(post_prefix)
        }
        self._remove_orphans(self.post_images_dir(username, post_id), used_names)
        self.cleanup_old_temp_images(username)
        return content

    def _remove_orphans(self, post_dir: Path, used_names: set) -> None:
        if not post_dir.is_dir():
            return

        try:
            files = [path for path in post_dir.iterdir() if path.is_file()]
        except OSError as e:
            logger.error(f"Failed to list images in {post_dir}: {e}")
            return

        for path in files:
            if path.name in used_names:
                continue
            try:
                path.unlink()
                logger.info(f"Deleted unused image {path}")
            except OSError as e:
                logger.error(f"Failed to delete unused image {path}: {e}")

        try:
            if not any(post_dir.iterdir()):
                post_dir.rmdir()
        except OSError as e:
            logger.error(f"Failed to remove empty image folder {post_dir}: {e}")

    def cleanup_old_temp_images(self, username: str) -> int:
        """Delete temp uploads older than the retention window."""
        temp_dir = self.temp_dir(username)
        if not temp_dir.is_dir():
            return 0

        cutoff = self.clock() - self.temp_retention.total_seconds()
        removed = 0
        try:
            files = [path for path in temp_dir.iterdir() if path.is_file()]
        except OSError as e:
            logger.error(f"Failed to list temp images in {temp_dir}: {e}")
            return 0

        for path in files:
            try:
                # mtime stands in for creation time; shutil.move keeps it.
                if path.stat().st_mtime < cutoff:
                    path.unlink()
                    removed += 1
            except OSError as e:
                logger.error(f"Failed to delete stale temp image {path}: {e}")

        if removed:
            logger.info(f"Removed {removed} stale temp image(s) for {username}")
        return removed

    def delete_post_images(self, username: str, post_id: str) -> None:
        post_dir = self.post_images_dir(username, post_id)
        if post_dir.is_dir():
            shutil.rmtree(post_dir, ignore_errors=True)

    def resolve_public_path(self, relative_path: str) -> Optional[Path]:
        """Map a path below the /blogs URL prefix to a file under the storage root."""
        root = self.blogs_path.resolve()
        candidate = (root / relative_path.lstrip("/")).resolve()
        if not candidate.is_relative_to(root) or not candidate.is_file():
            return None
        return candidate
