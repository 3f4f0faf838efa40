import datetime
import logging
import uuid
from typing import Callable, Dict, Iterable, List, Optional

from slogengine.errors import PostNotFoundError, PostValidationError
from slogengine.repos.posts_repo import FilePostsRepo
from slogengine.schemas.blog import BlogPost, PagedRequest, PagedResult
from slogengine.services.image_service import ImageService
from slogengine.utils import MIN_DATE, utcnow

logger = logging.getLogger(__name__)


class PostsService:
    def __init__(
        self,
        repo: FilePostsRepo,
        image_service: ImageService,
        now: Callable[[], datetime.datetime] = utcnow,
    ):
        self.repo = repo
        self.image_service = image_service
        self.now = now

    def list_posts(self, username: str) -> List[BlogPost]:
        return sort_by_date_desc(self.repo.list_posts(username))

    def list_paged_posts(
        self, username: str, request: PagedRequest
    ) -> PagedResult[BlogPost]:
        posts = deduplicate_by_original_id(self.repo.list_posts(username))
        posts = filter_posts(posts, search=request.search, tag=request.tag)
        posts = sort_by_date_desc(posts)

        start = (request.page - 1) * request.pageSize
        return PagedResult[BlogPost](
            items=posts[start : start + request.pageSize],
            totalCount=len(posts),
            currentPage=request.page,
            pageSize=request.pageSize,
        )

    def get_post(self, username: str, post_id: str) -> Optional[BlogPost]:
        return self.repo.get_post(username, post_id)

    def create_post(self, username: str, post: BlogPost) -> BlogPost:
        validate_post(post)
        post = post.model_copy(update={"id": str(uuid.uuid4()), "date": self.now()})
        post = self._process_images(username, post)
        self.repo.save_post(username, post)
        logger.info(f"Created post {post.id} for {username}")
        return post

    def update_post(self, username: str, post: BlogPost) -> BlogPost:
        validate_post(post)
        if not post.id or not self.repo.post_exists(username, post.id):
            raise PostNotFoundError(username, post.id)

        post = post.model_copy(update={"date": self.now()})
        post = self._process_images(username, post)
        self.repo.save_post(username, post)
        logger.info(f"Updated post {post.id} for {username}")
        return post

    def delete_post(self, username: str, post_id: str) -> None:
        deleted = self.repo.delete_post(username, post_id)
        self.image_service.delete_post_images(username, post_id)
        if deleted:
            logger.info(f"Deleted post {post_id} for {username}")

    def _process_images(self, username: str, post: BlogPost) -> BlogPost:
        cover = self.image_service.adopt_image(username, post.id, post.cover)
        content = self.image_service.reconcile(
            username, post.id, post.content or "", keep=[cover]
        )
        return post.model_copy(update={"cover": cover, "content": content})


def validate_post(post: BlogPost) -> None:
    if not post.title or not post.title.strip():
        raise PostValidationError("Post title is required")
    if not post.content or not post.content.strip():
        raise PostValidationError("Post content is required")


def _date_key(post: BlogPost) -> datetime.datetime:
    return post.date or MIN_DATE


def sort_by_date_desc(posts: Iterable[BlogPost]) -> List[BlogPost]:
    return sorted(posts, key=_date_key, reverse=True)


def deduplicate_by_original_id(posts: Iterable[BlogPost]) -> List[BlogPost]:
    """
    Keep the most recent post per original id (falling back to the post id).
    Repeated imports of the same source post produce several files.
    """
    latest: Dict[str, BlogPost] = {}
    for post in posts:
        key = post.originalId or post.id
        current = latest.get(key)
        if current is None or _date_key(post) > _date_key(current):
            latest[key] = post
    return list(latest.values())


def filter_posts(
    posts: Iterable[BlogPost],
    search: Optional[str] = None,
    tag: Optional[str] = None,
) -> List[BlogPost]:
    result = list(posts)

    if search and search.strip():
        term = search.lower()
        result = [
            p
            for p in result
            if any(term in (field or "").lower() for field in (p.title, p.content, p.summary))
        ]

    if tag and tag.strip():
        tag_filter = tag.lower()
        result = [p for p in result if p.tags and tag_filter in p.tags.lower()]

    return result
