"""Profile and image-library endpoints. Every route requires a bearer token."""
import logging

from fastapi import APIRouter, Depends, File, Response, UploadFile
from sqlalchemy.orm import Session

from picvault.config import Config
from picvault.core.auth import get_current_identity
from picvault.core.errors import NotFoundError, ValidationError
from picvault.database import get_db
from picvault.dependencies import get_config, get_object_store
from picvault.schemas.user import (
    ImageUrlsResponse,
    MultipleUploadResponse,
    SingleUploadResponse,
    UploadedFile,
    UserDetailsResponse,
)
from picvault.services.entitlements import require_upload_entitlement
from picvault.services.images import append_image_urls, get_image_urls
from picvault.services.object_store import ObjectStore, public_url_for, read_upload
from picvault.services.users import require_user, user_profile

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/api/users",
    tags=["users"],
    dependencies=[Depends(get_current_identity)],
)

UPLOAD_USER_NOT_FOUND = "User not found in the db, try again later..."


@router.get("/fetch-user-details/{user_id}", response_model=UserDetailsResponse)
def fetch_user_details(user_id: str, db: Session = Depends(get_db)):
    user = require_user(db, user_id)
    return UserDetailsResponse(message="User details fetched successfully!", **user_profile(user))


@router.get("/images/{user_id}", response_model=ImageUrlsResponse)
def get_images(user_id: str, response: Response, db: Session = Depends(get_db)):
    urls = get_image_urls(db, user_id)
    if urls is None:
        raise NotFoundError("Image Library not found in the db, try again later...")
    response.headers["Cache-Control"] = "no-cache"
    return ImageUrlsResponse(image_urls=urls)


@router.post("/image-upload/{user_id}", response_model=SingleUploadResponse)
def upload_single_image(
    user_id: str,
    upload: UploadFile = File(..., alias="UploadFiles"),
    db: Session = Depends(get_db),
    cfg: Config = Depends(get_config),
    store: ObjectStore = Depends(get_object_store),
):
    require_user(db, user_id, UPLOAD_USER_NOT_FOUND)

    image = read_upload(upload.filename, upload.content_type, upload.file, cfg.MAX_UPLOAD_BYTES)
    stored = store.put_image(user_id, image)
    public_url = public_url_for(cfg.R2_PUBLIC_URL, user_id, stored.location)
    append_image_urls(db, user_id, [public_url])
    logger.info("image uploaded user_id=%s key=%s", user_id, stored.key)

    return SingleUploadResponse(
        message="Uploaded!",
        public_url=public_url,
        name=stored.key,
        type=stored.mimetype,
        size=stored.size,
    )


@router.post("/image-upload-multiple/{user_id}", response_model=MultipleUploadResponse)
def upload_multiple_images(
    user_id: str,
    uploads: list[UploadFile] = File(..., alias="UploadFiles"),
    db: Session = Depends(get_db),
    cfg: Config = Depends(get_config),
    store: ObjectStore = Depends(get_object_store),
):
    """Batch upload for subscribers.

    The entitlement gate runs before anything is written to the bucket, and
    all URLs are appended to the library in one transaction.
    """
    user = require_user(db, user_id, UPLOAD_USER_NOT_FOUND)
    require_upload_entitlement(user)
    if len(uploads) > cfg.MAX_UPLOAD_FILES:
        raise ValidationError(f"Too many files, at most {cfg.MAX_UPLOAD_FILES} per upload.")

    images = [
        read_upload(u.filename, u.content_type, u.file, cfg.MAX_UPLOAD_BYTES)
        for u in uploads
    ]
    stored = [store.put_image(user_id, image) for image in images]
    public_urls = [public_url_for(cfg.R2_PUBLIC_URL, user_id, s.location) for s in stored]
    append_image_urls(db, user_id, public_urls)
    logger.info("images uploaded user_id=%s count=%d", user_id, len(stored))

    return MultipleUploadResponse(
        message="Uploaded!",
        public_urls=public_urls,
        files=[UploadedFile(name=s.key, type=s.mimetype, size=s.size) for s in stored],
    )
