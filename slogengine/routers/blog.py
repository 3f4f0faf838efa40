import logging
from pathlib import Path
from typing import List, Optional

from fastapi import APIRouter, Depends, File, HTTPException, Query, Response, UploadFile
from starlette.status import HTTP_201_CREATED, HTTP_204_NO_CONTENT

from slogengine import dependencies as deps
from slogengine.errors import PostNotFoundError, PostValidationError
from slogengine.repos.meta_repo import FileMetaRepo
from slogengine.schemas.blog import BlogMeta, BlogPost, PagedRequest, PagedResult, UploadedImage
from slogengine.services.image_service import ImageService
from slogengine.services.posts_service import PostsService
from slogengine.settings import Settings, get_settings

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/blog")


@router.get("/{username}", response_model=List[BlogPost])
def list_posts(username: str, service: PostsService = Depends(deps.get_posts_service)):
    """Get all posts of a user, newest first."""
    try:
        return service.list_posts(username)
    except PostValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except Exception as e:
        logger.error(f"Unexpected error listing posts for {username}: {e}")
        raise HTTPException(status_code=500, detail="Failed to retrieve posts")


@router.get("/{username}/paged", response_model=PagedResult[BlogPost])
def list_paged_posts(
    username: str,
    page: int = Query(1, ge=1),
    pageSize: int = Query(10, ge=1, le=100),
    search: Optional[str] = Query(None),
    tag: Optional[str] = Query(None),
    service: PostsService = Depends(deps.get_posts_service),
):
    """Get one page of posts, de-duplicated by original id and filtered."""
    request = PagedRequest(page=page, pageSize=pageSize, search=search, tag=tag)
    try:
        return service.list_paged_posts(username, request)
    except PostValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except Exception as e:
        logger.error(f"Unexpected error paging posts for {username}: {e}")
        raise HTTPException(status_code=500, detail="Failed to retrieve posts")


@router.get("/{username}/meta", response_model=BlogMeta)
def get_blog_meta(username: str, repo: FileMetaRepo = Depends(deps.get_meta_repo)):
    try:
        return repo.get_meta(username)
    except PostValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except Exception as e:
        logger.error(f"Unexpected error reading meta for {username}: {e}")
        raise HTTPException(status_code=500, detail="Failed to retrieve blog meta")


@router.put("/{username}/meta", status_code=HTTP_204_NO_CONTENT)
def update_blog_meta(
    username: str,
    meta: BlogMeta,
    repo: FileMetaRepo = Depends(deps.get_meta_repo),
):
    try:
        repo.save_meta(username, meta)
    except PostValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except Exception as e:
        logger.error(f"Unexpected error saving meta for {username}: {e}")
        raise HTTPException(status_code=500, detail="Failed to save blog meta")
    return Response(status_code=HTTP_204_NO_CONTENT)


@router.get("/{username}/{post_id}", response_model=BlogPost)
def get_post(
    username: str,
    post_id: str,
    service: PostsService = Depends(deps.get_posts_service),
):
    """Get a single post by id."""
    try:
        post = service.get_post(username, post_id)
        if not post:
            raise HTTPException(status_code=404, detail="Post not found")
        return post
    except HTTPException:
        raise
    except PostValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except Exception as e:
        logger.error(f"Unexpected error retrieving post {post_id}: {e}")
        raise HTTPException(status_code=500, detail="Failed to retrieve post")


@router.post("/{username}", response_model=BlogPost, status_code=HTTP_201_CREATED)
def create_post(
    username: str,
    post: BlogPost,
    response: Response,
    service: PostsService = Depends(deps.get_posts_service),
):
    post.author = username
    try:
        created = service.create_post(username, post)
    except PostValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except Exception as e:
        logger.error(f"Unexpected error creating post for {username}: {e}")
        raise HTTPException(status_code=500, detail="Failed to create post")

    response.headers["Location"] = f"/blog/{username}/{created.id}"
    return created


@router.put("/{username}/{post_id}", status_code=HTTP_204_NO_CONTENT)
def update_post(
    username: str,
    post_id: str,
    post: BlogPost,
    service: PostsService = Depends(deps.get_posts_service),
):
    if post.id != post_id:
        raise HTTPException(status_code=400, detail="Post id does not match the URL")

    post.author = username
    try:
        service.update_post(username, post)
    except PostNotFoundError:
        raise HTTPException(status_code=404, detail="Post not found")
    except PostValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except Exception as e:
        logger.error(f"Unexpected error updating post {post_id}: {e}")
        raise HTTPException(status_code=500, detail="Failed to update post")
    return Response(status_code=HTTP_204_NO_CONTENT)


@router.delete("/{username}/{post_id}", status_code=HTTP_204_NO_CONTENT)
def delete_post(
    username: str,
    post_id: str,
    service: PostsService = Depends(deps.get_posts_service),
):
    try:
        if not service.get_post(username, post_id):
            raise HTTPException(status_code=404, detail="Post not found")
        service.delete_post(username, post_id)
    except HTTPException:
        raise
    except PostValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except Exception as e:
        logger.error(f"Unexpected error deleting post {post_id}: {e}")
        raise HTTPException(status_code=500, detail="Failed to delete post")
    return Response(status_code=HTTP_204_NO_CONTENT)


@router.post("/{username}/images/upload", response_model=UploadedImage)
async def upload_image(
    username: str,
    image: Optional[UploadFile] = File(None),
    service: ImageService = Depends(deps.get_image_service),
    current_settings: Settings = Depends(get_settings),
):
    """Store an image in the user's temp pool until a post adopts it."""
    if image is None:
        raise HTTPException(status_code=400, detail="An image file is required")

    extension = Path(image.filename or "").suffix.lower()
    if extension not in current_settings.ALLOWED_IMAGE_EXTENSIONS:
        allowed = ", ".join(ext.lstrip(".") for ext in current_settings.ALLOWED_IMAGE_EXTENSIONS)
        raise HTTPException(
            status_code=400, detail=f"Unsupported image type (allowed: {allowed})"
        )

    data = await image.read()
    if not data:
        raise HTTPException(status_code=400, detail="An image file is required")
    if len(data) > current_settings.MAX_IMAGE_UPLOAD_BYTES:
        raise HTTPException(status_code=400, detail="Image exceeds the upload size limit")

    try:
        url = service.save_temp_image(username, image.filename, data)
    except PostValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except Exception as e:
        logger.error(f"Image upload failed for {username}: {e}")
        raise HTTPException(status_code=500, detail="Failed to store image")

    return UploadedImage(url=url)
