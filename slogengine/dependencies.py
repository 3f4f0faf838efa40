import datetime

from fastapi import Depends

from slogengine.repos.meta_repo import FileMetaRepo
from slogengine.repos.posts_repo import create_posts_repo
from slogengine.services.image_service import ImageService
from slogengine.services.posts_service import PostsService
from slogengine.settings import Settings, get_settings


def get_posts_repo(current_settings: Settings = Depends(get_settings)):
    return create_posts_repo(current_settings.BLOGS_PATH, current_settings.POST_FORMAT)


def get_meta_repo(current_settings: Settings = Depends(get_settings)):
    return FileMetaRepo(
        current_settings.BLOGS_PATH, default_title=current_settings.DEFAULT_BLOG_TITLE
    )


def get_image_service(current_settings: Settings = Depends(get_settings)):
    return ImageService(
        current_settings.BLOGS_PATH,
        url_prefix=current_settings.BLOGS_URL_PREFIX,
        temp_retention=datetime.timedelta(
            hours=current_settings.TEMP_IMAGE_RETENTION_HOURS
        ),
    )


def get_posts_service(
    repo=Depends(get_posts_repo),
    image_service=Depends(get_image_service),
):
    return PostsService(repo=repo, image_service=image_service)
