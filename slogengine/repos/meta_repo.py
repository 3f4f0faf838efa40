import logging
from pathlib import Path

from slogengine.schemas.blog import BlogMeta
from slogengine.utils import ensure_safe_name

logger = logging.getLogger(__name__)

META_FILENAME = "meta.json"


class FileMetaRepo:
    def __init__(self, blogs_path: Path, default_title: str = "{username} 블로그"):
        self.blogs_path = Path(blogs_path)
        self.default_title = default_title

    def meta_path(self, username: str) -> Path:
        return self.blogs_path / ensure_safe_name(username) / META_FILENAME

    def default_meta(self, username: str) -> BlogMeta:
        return BlogMeta(title=self.default_title.format(username=username))

    def get_meta(self, username: str) -> BlogMeta:
        """
        Return the stored meta for a user. A missing file is created with
        the default title on first read.
        """
        path = self.meta_path(username)
        if not path.exists():
            meta = self.default_meta(username)
            self.save_meta(username, meta)
            logger.info(f"Created default blog meta for {username}")
            return meta

        try:
            meta = BlogMeta.model_validate_json(path.read_text(encoding="utf-8"))
        except Exception as e:
            logger.warning(f"Failed to read blog meta for {username}: {e}")
            return self.default_meta(username)

        if not meta.title:
            meta.title = self.default_meta(username).title
        return meta

    def save_meta(self, username: str, meta: BlogMeta) -> None:
        path = self.meta_path(username)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(meta.model_dump_json(indent=2), encoding="utf-8")
