from fastapi import APIRouter, Depends, File, Form, Request, UploadFile, status
from sqlalchemy.orm import Session

from ..auth import get_current_user
from ..context import AppContext, get_db
from ..errors import (
    AppError,
    category_not_found,
    image_not_found,
    invalid_category_id,
    invalid_image_id,
)
from ..models.user import User
from ..schemas import (
    AdminImageListResponse,
    AdminImageOut,
    ImageOut,
    ImageUploadResponse,
    MessageResponse,
    UserInfo,
    VerifyData,
    VerifyResponse,
)
from ..services import delete_image, get_all_images, get_category, get_image, upload_image
from .util import parse_id


def build_router(ctx: AppContext) -> APIRouter:
    router = APIRouter()

    @router.get("/verify", response_model=VerifyResponse)
    @ctx.api_limit()
    def verify(request: Request, current_user: User = Depends(get_current_user)):
        """Confirm the bearer token is still valid and echo its user."""
        return VerifyResponse(data=VerifyData(user=UserInfo.model_validate(current_user)))

    @router.post(
        "/images",
        response_model=ImageUploadResponse,
        status_code=status.HTTP_201_CREATED,
    )
    @ctx.api_limit()
    def post_image(
        request: Request,
        image: UploadFile | None = File(None),
        categoryId: str | None = Form(None),
        current_user: User = Depends(get_current_user),
        db: Session = Depends(get_db),
    ):
        """Store one uploaded image in a category."""
        if image is None or not image.filename:
            raise AppError(status.HTTP_400_BAD_REQUEST, "NO_FILE", "Nebyl nahrán žádný soubor")
        content = ctx.storage.read_upload(image)

        if not categoryId:
            raise AppError(
                status.HTTP_400_BAD_REQUEST, "MISSING_CATEGORY", "ID kategorie je povinné"
            )
        category_id = parse_id(categoryId)
        if category_id is None:
            raise invalid_category_id()
        category = get_category(db, category_id)
        if category is None:
            raise category_not_found()

        record = upload_image(
            db,
            ctx.storage,
            category,
            original_filename=image.filename,
            content=content,
            mime_type=image.content_type,
            uploaded_by=current_user.id,
        )
        return ImageUploadResponse(data=ImageOut.model_validate(record))

    @router.get("/images", response_model=AdminImageListResponse)
    @ctx.api_limit()
    def list_images(
        request: Request,
        current_user: User = Depends(get_current_user),
        db: Session = Depends(get_db),
    ):
        """Return every image with its category, for the admin panel."""
        items = get_all_images(db)
        return AdminImageListResponse(data=[AdminImageOut(**item) for item in items])

    @router.delete("/images/{image_id}", response_model=MessageResponse)
    @ctx.api_limit()
    def remove_image(
        request: Request,
        image_id: str,
        current_user: User = Depends(get_current_user),
        db: Session = Depends(get_db),
    ):
        """Delete an image's file and its record."""
        image_id_num = parse_id(image_id)
        if image_id_num is None:
            raise invalid_image_id()
        image = get_image(db, image_id_num)
        if image is None:
            raise image_not_found()

        delete_image(db, ctx.storage, image, current_user.id)
        return MessageResponse(message="Obrázek byl úspěšně smazán")

    return router
