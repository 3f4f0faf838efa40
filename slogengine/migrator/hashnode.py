"""
Import posts exported from Hashnode (markdown files with a YAML header).

Each post gets a new id, its remote images are downloaded next to the blog
and the posts are written, oldest first, through a posts repo.
"""

import datetime
import logging
import re
import uuid
from pathlib import Path, PurePosixPath
from typing import Any, List, Optional, Tuple
from urllib.parse import urlparse

import httpx
import yaml

from slogengine.migrator.retry import RetryPolicy
from slogengine.repos.posts_repo import FilePostsRepo
from slogengine.schemas.blog import BlogPost
from slogengine.utils import MIN_DATE, coerce_str, ensure_aware, ensure_safe_name

logger = logging.getLogger(__name__)

UNTITLED = "제목 없음"
SUMMARY_MAX_LENGTH = 200
HASHNODE_DATE_FORMAT = "%a %b %d %Y %H:%M:%S GMT%z"
FALLBACK_DATE_FORMATS = (
    "%Y-%m-%d %H:%M:%S",
    "%Y/%m/%d %H:%M:%S",
    "%Y/%m/%d",
    "%a %b %d %Y %H:%M:%S",
    "%b %d %Y",
)

DEFAULT_HEADERS = {
    "User-Agent": (
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
        "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
    ),
    "Accept": "image/webp,image/apng,image/*,*/*;q=0.8",
    "Accept-Language": "ko-KR,ko;q=0.9,en-US;q=0.8,en;q=0.7",
    "Cache-Control": "no-cache",
    "Pragma": "no-cache",
}

# Hosts that refuse hotlinked downloads without a matching Referer.
REFERERS = (
    ("discourse-dotnetdev-upload", "https://hashnode.com/"),
    ("ndepend.com", "https://hashnode.com/"),
    ("claudiobernasconi.ch", "https://www.claudiobernasconi.ch/"),
)

CONTENT_TYPE_EXTENSIONS = {
    "image/jpeg": ".jpg",
    "image/jpg": ".jpg",
    "image/png": ".png",
    "image/gif": ".gif",
    "image/webp": ".webp",
    "image/svg+xml": ".svg",
}

MARKDOWN_IMAGE_PATTERN = re.compile(r"!\[([^\]]*)\]\(([^)]+)\)")
TOP_LEVEL_KEY_PATTERN = re.compile(r"^[^\s:#-][^:]*:")
IMAGE_ATTRIBUTE_PATTERNS = [
    re.compile(r'\s+align="[^"]*"', re.IGNORECASE),
    re.compile(r'\s+width="[^"]*"', re.IGNORECASE),
    re.compile(r'\s+height="[^"]*"', re.IGNORECASE),
    re.compile(r'\s+class="[^"]*"', re.IGNORECASE),
    re.compile(r'\s+style="[^"]*"', re.IGNORECASE),
    re.compile(r"""\s+[a-zA-Z-]+=(["'])[^"']*\1""", re.IGNORECASE),
]


def extract_front_matter(text: str) -> Optional[Tuple[str, str]]:
    """Split a Hashnode export into (cleaned YAML header, body)."""
    if not text.startswith("---"):
        return None

    end = text.find("---", 3)
    if end == -1:
        return None

    header = clean_yaml_content(text[3:end].strip())
    body = text[end + 3 :].strip()
    return header, body


def clean_yaml_content(yaml_content: str) -> str:
    """
    Repair quoting that Hashnode exports get wrong so the header parses.

    A double-quoted value that does not end on its line is joined with the
    following lines until one ends with a quote; it is closed by force before
    the next top-level key or at the end of the block. A quoted value with
    an odd number of quotes gets a closing quote.
    """
    lines = yaml_content.split("\n")
    cleaned = []
    i = 0
    while i < len(lines):
        line = lines[i].rstrip()
        i += 1

        if ":" not in line or line.lstrip().startswith("-"):
            cleaned.append(line)
            continue

        key, _, value = line.partition(":")
        key = key.strip()
        value = value.strip()

        if value.startswith('"') and not value.endswith('"'):
            parts = [value]
            while i < len(lines):
                next_line = lines[i].rstrip()
                if TOP_LEVEL_KEY_PATTERN.match(next_line):
                    break
                parts.append(next_line.strip())
                i += 1
                if next_line.endswith('"'):
                    break

            joined = " ".join(part for part in parts if part)
            if not joined.endswith('"'):
                joined += '"'
            cleaned.append(f"{key}: {joined}")
        elif value.startswith('"') and value.count('"') % 2 != 0:
            cleaned.append(f'{key}: {value}"')
        else:
            cleaned.append(line)

    return "\n".join(cleaned)


def extract_summary(content: str) -> str:
    """First plain paragraph line, skipping headings, images and code fences."""
    for raw_line in content.split("\n"):
        line = raw_line.strip()
        if not line or line.startswith(("#", "![", "```")):
            continue
        if len(line) > SUMMARY_MAX_LENGTH:
            return line[:SUMMARY_MAX_LENGTH] + "..."
        return line
    return ""


def parse_hashnode_date(value: Any) -> Optional[datetime.datetime]:
    """
    Parse Hashnode's ``Sun May 23 2021 03:28:51 GMT+0000 (Coordinated
    Universal Time)`` format, falling back to ISO and a few common formats.
    """
    if value is None or value == "":
        return None
    if isinstance(value, datetime.datetime):
        return ensure_aware(value)
    if isinstance(value, datetime.date):
        return datetime.datetime.combine(
            value, datetime.time.min, tzinfo=datetime.timezone.utc
        )

    text = str(value).strip()
    without_zone_name = re.sub(r"\s*\([^)]*\)\s*$", "", text)
    try:
        return datetime.datetime.strptime(without_zone_name, HASHNODE_DATE_FORMAT)
    except ValueError:
        pass

    try:
        return ensure_aware(datetime.datetime.fromisoformat(text))
    except ValueError:
        pass

    for fmt in FALLBACK_DATE_FORMATS:
        try:
            return ensure_aware(datetime.datetime.strptime(without_zone_name, fmt))
        except ValueError:
            continue

    logger.warning(f"Unrecognized date format: {text}")
    return None


def clean_image_url(image_url: str) -> str:
    """Strip HTML-style attributes Hashnode appends inside image targets."""
    if not image_url:
        return image_url
    for pattern in IMAGE_ATTRIBUTE_PATTERNS:
        image_url = pattern.sub("", image_url)
    return image_url.strip()


def get_image_extension(content_type: Optional[str], image_url: str) -> str:
    extension = CONTENT_TYPE_EXTENSIONS.get((content_type or "").lower())
    if extension:
        return extension
    suffix = PurePosixPath(urlparse(image_url).path).suffix
    return suffix or ".jpg"


def _referer_headers(image_url: str) -> dict:
    for marker, referer in REFERERS:
        if marker in image_url:
            return {"Referer": referer}
    return {}


class HashnodeMigrator:
    def __init__(
        self,
        repo: FilePostsRepo,
        client: Optional[httpx.Client] = None,
        retry_policy: Optional[RetryPolicy] = None,
        timeout: float = 30.0,
        url_prefix: str = "/blogs",
    ):
        self.repo = repo
        self.client = client or httpx.Client(
            headers=DEFAULT_HEADERS, timeout=timeout, follow_redirects=True
        )
        self.retry_policy = retry_policy or RetryPolicy()
        self.url_prefix = url_prefix.rstrip("/")

    def __enter__(self):
        return self

    def __exit__(self, *exc_info):
        self.close()

    def close(self) -> None:
        self.client.close()

    def images_dir(self, username: str) -> Path:
        return self.repo.blogs_path / ensure_safe_name(username) / "images"

    def migrate(self, source_dir: Path, username: str) -> List[BlogPost]:
        """Import every ``*.md`` file in ``source_dir`` for ``username``."""
        source_dir = Path(source_dir)
        if not source_dir.is_dir():
            raise FileNotFoundError(f"Source directory does not exist: {source_dir}")

        images_dir = self.images_dir(username)
        images_dir.mkdir(parents=True, exist_ok=True)
        self.repo.posts_dir(username).mkdir(parents=True, exist_ok=True)

        files = sorted(source_dir.glob("*.md"))
        logger.info(f"Found {len(files)} markdown file(s) in {source_dir}")

        posts = []
        for path in files:
            logger.info(f"Processing {path.name}")
            try:
                post = self.process_markdown_file(path, username)
            except Exception as e:
                logger.error(f"Failed to process {path.name}: {e}")
                continue
            if post:
                posts.append(post)

        posts.sort(key=lambda p: p.datePublished or p.date or MIN_DATE)

        for index, post in enumerate(posts, start=1):
            self.repo.save_post(username, post)
            logger.info(f"Saved ({index}/{len(posts)}): {post.title}")

        logger.info(f"Migration finished: {len(posts)} post(s) imported")
        return posts

    def process_markdown_file(self, path: Path, username: str) -> Optional[BlogPost]:
        split = extract_front_matter(path.read_text(encoding="utf-8"))
        if split is None:
            logger.warning(f"No front matter found in {path.name}")
            return None

        header, body = split
        metadata = yaml.safe_load(header) or {}
        if not isinstance(metadata, dict):
            logger.warning(f"Front matter of {path.name} is not a mapping")
            return None

        published = parse_hashnode_date(metadata.get("datePublished"))
        post = BlogPost(
            id=str(uuid.uuid4()),
            originalId=coerce_str(metadata.get("cuid")) or path.stem,
            title=coerce_str(metadata.get("title")) or UNTITLED,
            content=body,
            slug=coerce_str(metadata.get("slug")),
            tags=coerce_str(metadata.get("tags")),
            author=username,
            summary=extract_summary(body),
            date=published,
            datePublished=published,
        )

        cover_url = coerce_str(metadata.get("cover"))
        if cover_url:
            post.cover = self._localize(cover_url, username, post.id, "cover")

        post.content = self.process_content_images(body, username, post.id)
        return post

    def process_content_images(self, content: str, username: str, post_id: str) -> str:
        """Download remote inline images and point the markup at the local copies."""
        for counter, match in enumerate(MARKDOWN_IMAGE_PATTERN.finditer(content), start=1):
            alt_text = match.group(1)
            image_url = clean_image_url(match.group(2))
            if not image_url.startswith("http"):
                continue

            local_url = self._localize(image_url, username, post_id, f"img_{counter:03d}")
            if local_url != image_url:
                content = content.replace(match.group(0), f"![{alt_text}]({local_url})")

        return content

    def _localize(self, image_url: str, username: str, post_id: str, role: str) -> str:
        if not image_url.startswith("http"):
            return image_url
        local_path = self.download_image(image_url, self.images_dir(username), post_id, role)
        if local_path is None:
            return image_url
        return f"{self.url_prefix}/{username}/images/{local_path.name}"

    def download_image(
        self, image_url: str, images_dir: Path, post_id: str, role: str
    ) -> Optional[Path]:
        """
        Download one image as ``{post_id}_{role}{ext}``. Returns None when the
        download gives up; the caller keeps the remote URL in that case.
        """
        policy = self.retry_policy
        for attempt in range(1, policy.max_attempts + 1):
            try:
                response = self.client.get(image_url, headers=_referer_headers(image_url))
                if not policy.is_retryable_status(response.status_code):
                    logger.warning(
                        f"Image download failed ({image_url}): {response.status_code}, not retrying"
                    )
                    return None
                response.raise_for_status()

                content_type = response.headers.get("content-type", "").split(";")[0].strip()
                file_name = f"{post_id}_{role}{get_image_extension(content_type, image_url)}"
                images_dir.mkdir(parents=True, exist_ok=True)
                file_path = images_dir / file_name
                file_path.write_bytes(response.content)

                logger.info(f"Downloaded image {file_name}")
                return file_path
            except httpx.TimeoutException as e:
                logger.warning(f"Image download timed out ({image_url}): {e}")
                return None
            except httpx.HTTPError as e:
                if attempt >= policy.max_attempts:
                    logger.error(
                        f"Image download gave up after {attempt} attempts ({image_url}): {e}"
                    )
                    return None
                logger.warning(
                    f"Image download attempt {attempt}/{policy.max_attempts} failed ({image_url}): {e}"
                )
                policy.wait(attempt)
            except OSError as e:
                logger.error(f"Failed to store image from {image_url}: {e}")
                return None

        return None
