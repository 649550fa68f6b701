"""Service layer for portfolio queries and image management."""

import logging
from typing import Any, Dict, List

from fastapi import status
from prometheus_client import Counter
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from .database import Category, Image
from .errors import AppError
from .storage import ImageStorage, StorageError

logger = logging.getLogger(__name__)

UPLOAD_COUNTER = Counter("portfolio_images_uploaded_total", "Total portfolio images uploaded")
DELETE_COUNTER = Counter("portfolio_images_deleted_total", "Total portfolio images deleted")


def _handle_service_error(session: Session, exc: Exception, code: str, message: str) -> None:
    """Rollback the transaction and raise a server error for service failures."""
    session.rollback()
    logger.exception("service layer error", exc_info=exc)
    raise AppError(status.HTTP_500_INTERNAL_SERVER_ERROR, code, message) from exc


def list_categories(session: Session, parent_section: str | None = None) -> List[Category]:
    """Return categories in display order, optionally within one parent section."""

    query = session.query(Category)
    if parent_section:
        query = query.filter(Category.parent_section == parent_section)
    try:
        return query.order_by(Category.display_order, Category.id).all()
    except SQLAlchemyError as exc:
        _handle_service_error(session, exc, "SERVER_ERROR", "Chyba při načítání kategorií")


def _fits_integer_column(value: int) -> bool:
    return -(2**31) <= value < 2**31


def get_category(session: Session, category_id: int) -> Category | None:
    if not _fits_integer_column(category_id):
        return None
    return session.get(Category, category_id)


def get_image(session: Session, image_id: int) -> Image | None:
    if not _fits_integer_column(image_id):
        return None
    return session.get(Image, image_id)


def get_images_by_category(session: Session, category_id: int) -> List[Image]:
    """Return a category's images ordered for display, newest first within a slot."""

    try:
        return (
            session.query(Image)
            .filter(Image.category_id == category_id)
            .order_by(Image.display_order.asc(), Image.uploaded_at.desc(), Image.id.desc())
            .all()
        )
    except SQLAlchemyError as exc:
        _handle_service_error(session, exc, "SERVER_ERROR", "Chyba při načítání obrázků")


def get_all_images(session: Session) -> List[Dict[str, Any]]:
    """Return every image joined with its category's name and slug."""

    try:
        rows = (
            session.query(Image, Category)
            .join(Category, Image.category_id == Category.id)
            .order_by(
                Category.display_order.asc(),
                Image.display_order.asc(),
                Image.uploaded_at.desc(),
                Image.id.desc(),
            )
            .all()
        )
    except SQLAlchemyError as exc:
        _handle_service_error(session, exc, "SERVER_ERROR", "Chyba při načítání obrázků")

    items: List[Dict[str, Any]] = []
    for image, category in rows:
        item = image_to_dict(image)
        item["category_name"] = category.name_cs
        item["category_slug"] = category.slug
        items.append(item)
    return items


def image_to_dict(image: Image) -> Dict[str, Any]:
    return {
        "id": image.id,
        "category_id": image.category_id,
        "filename": image.filename,
        "original_filename": image.original_filename,
        "file_path": image.file_path,
        "file_size": image.file_size,
        "mime_type": image.mime_type,
        "uploaded_by": image.uploaded_by,
        "display_order": image.display_order,
        "uploaded_at": image.uploaded_at,
    }


def upload_image(
    session: Session,
    storage: ImageStorage,
    category: Category,
    original_filename: str,
    content: bytes,
    mime_type: str,
    uploaded_by: int,
) -> Image:
    """Store an image file for ``category`` and record its metadata.

    The file write and the insert are not one transaction. A failed insert
    removes the written file again; a crash in between leaves it orphaned.
    """

    logger.info(
        "upload image category=%s file=%s user=%s", category.slug, original_filename, uploaded_by
    )
    try:
        stored = storage.save(category.slug, original_filename, content, mime_type)
    except StorageError as exc:
        raise AppError(
            status.HTTP_500_INTERNAL_SERVER_ERROR, "UPLOAD_FAILED", "Nahrávání obrázku selhalo"
        ) from exc

    try:
        image = Image(
            category_id=category.id,
            filename=stored.filename,
            original_filename=stored.original_filename,
            file_path=stored.file_path,
            file_size=stored.file_size,
            mime_type=stored.mime_type,
            uploaded_by=uploaded_by,
        )
        session.add(image)
        session.commit()
        session.refresh(image)
    except SQLAlchemyError as exc:
        storage.remove(stored.file_path)
        _handle_service_error(session, exc, "UPLOAD_FAILED", "Nahrávání obrázku selhalo")

    UPLOAD_COUNTER.inc()
    logger.info("created image id=%s category=%s", image.id, category.slug)
    return image


def delete_image(session: Session, storage: ImageStorage, image: Image, user_id: int) -> None:
    """Remove an image's file and its row; the row goes even if the file cannot."""

    image_id = image.id
    if not storage.remove(image.file_path):
        logger.warning("continuing delete of image id=%s without its file", image_id)
    try:
        session.delete(image)
        session.commit()
    except SQLAlchemyError as exc:
        _handle_service_error(session, exc, "DELETE_FAILED", "Mazání obrázku selhalo")

    DELETE_COUNTER.inc()
    logger.info("image %s deleted by user %s", image_id, user_id)
