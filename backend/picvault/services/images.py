"""Image library persistence.

Appends insert one ``LibraryImage`` row per URL in a single transaction, so
two concurrent uploads for the same user both land.
"""
import logging

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from picvault.models.image_library import ImageLibrary, LibraryImage

logger = logging.getLogger(__name__)


def get_image_library(db: Session, user_id: str) -> ImageLibrary | None:
    return db.query(ImageLibrary).filter(ImageLibrary.user_id == user_id).first()


def get_image_urls(db: Session, user_id: str) -> list[str] | None:
    """Get a user's image URLs in upload order.

    Returns:
        The URLs, or None if the user has never uploaded.
    """
    if get_image_library(db, user_id) is None:
        return None
    rows = db.query(LibraryImage.url).filter(
        LibraryImage.user_id == user_id
    ).order_by(LibraryImage.id).all()
    return [r.url for r in rows]


def append_image_urls(db: Session, user_id: str, urls: list[str]) -> None:
    """Append ``urls`` to the user's library, creating the library lazily.

    The library row and the URL rows are committed together, so a failed
    append never leaves an empty library behind. If a concurrent upload
    creates the library first, the append is retried once against it.
    """
    for attempt in range(2):
        if get_image_library(db, user_id) is None:
            db.add(ImageLibrary(user_id=user_id))
            # Library row first; the URL rows reference it
            try:
                db.flush()
            except IntegrityError:
                db.rollback()
                if attempt:
                    raise
                logger.debug("image library for %s created concurrently", user_id)
                continue
        db.add_all([LibraryImage(user_id=user_id, url=url) for url in urls])
        try:
            db.commit()
        except IntegrityError:
            db.rollback()
            raise
        return
