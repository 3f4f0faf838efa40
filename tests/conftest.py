import datetime
import os
import time
from pathlib import Path

import pytest

from slogengine.repos.posts_repo import MarkdownPostsRepo
from slogengine.schemas.blog import BlogPost
from slogengine.services.image_service import ImageService
from slogengine.services.posts_service import PostsService

UTC = datetime.timezone.utc
FIXED_NOW = datetime.datetime(2024, 6, 1, 12, 0, 0, tzinfo=UTC)


def make_post(**overrides) -> BlogPost:
    fields = {
        "id": "post-1",
        "title": "Hello",
        "content": "Hello body",
        "date": FIXED_NOW,
        "author": "alice",
    }
    fields.update(overrides)
    return BlogPost(**fields)


def write_file(path: Path, data: bytes = b"IMG") -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(data)
    return path


def age_file(path: Path, hours: float) -> None:
    """Push a file's modification time into the past."""
    stamp = time.time() - hours * 3600
    os.utime(path, (stamp, stamp))


class FakeClock:
    """
    Datetime source for services. Each call advances by ``step`` so that
    consecutive saves get distinct timestamps.
    """

    def __init__(self, start=FIXED_NOW, step=datetime.timedelta(seconds=1)):
        self.current = start
        self.step = step
        self.calls = 0

    def __call__(self) -> datetime.datetime:
        value = self.current
        self.current += self.step
        self.calls += 1
        return value


class FakePostsService:
    """
    Minimal posts service stand-in for router tests.
    """

    def __init__(
        self,
        list_posts_return=None,
        get_post_return=None,
        paged_return=None,
        error=None,
    ):
        self._list_posts_return = list_posts_return or []
        self._paged_return = paged_return
        self._get_post_return = get_post_return
        self._error = error

    def _maybe_raise(self):
        if self._error:
            raise self._error

    def list_posts(self, username):
        self._maybe_raise()
        return self._list_posts_return

    def list_paged_posts(self, username, request):
        self._maybe_raise()
        self.last_paged_request = request
        return self._paged_return

    def get_post(self, username, post_id):
        self._maybe_raise()
        return self._get_post_return

    def create_post(self, username, post):
        self._maybe_raise()
        return post


@pytest.fixture
def blogs_path(tmp_path) -> Path:
    return tmp_path / "blogs"


@pytest.fixture
def posts_repo(blogs_path) -> MarkdownPostsRepo:
    return MarkdownPostsRepo(blogs_path)


@pytest.fixture
def image_service(blogs_path) -> ImageService:
    return ImageService(blogs_path)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def posts_service(posts_repo, image_service, clock) -> PostsService:
    return PostsService(repo=posts_repo, image_service=image_service, now=clock)
