from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session

from ..context import AppContext, get_db
from ..errors import category_not_found, invalid_category_id
from ..services import get_category, get_images_by_category, list_categories
from ..schemas import CategoryListResponse, CategoryOut, ImageListResponse, ImageOut
from .util import parse_id


def build_router(ctx: AppContext) -> APIRouter:
    router = APIRouter()

    @router.get("/categories", response_model=CategoryListResponse)
    @ctx.api_limit()
    def get_categories(
        request: Request, parent_section: str | None = None, db: Session = Depends(get_db)
    ):
        """Return all categories, or only those of one parent section."""
        categories = list_categories(db, parent_section)
        return CategoryListResponse(data=[CategoryOut.model_validate(c) for c in categories])

    @router.get("/images/{category_id}", response_model=ImageListResponse)
    @ctx.api_limit()
    def get_category_images(request: Request, category_id: str, db: Session = Depends(get_db)):
        """Return the images of one category in display order."""
        category_id_num = parse_id(category_id)
        if category_id_num is None:
            raise invalid_category_id()
        if get_category(db, category_id_num) is None:
            raise category_not_found()
        images = get_images_by_category(db, category_id_num)
        return ImageListResponse(data=[ImageOut.model_validate(i) for i in images])

    return router
