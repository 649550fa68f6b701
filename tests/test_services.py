import os

import pytest

from glowfolio.errors import AppError
from glowfolio.services import delete_image, get_category, get_image, upload_image


def test_failed_insert_removes_written_file(db_session, ctx, categories, settings):
    with pytest.raises(AppError) as excinfo:
        upload_image(
            db_session,
            ctx.storage,
            categories[0],
            original_filename="photo.jpg",
            content=b"bytes",
            mime_type="image/jpeg",
            uploaded_by=4242,  # no such user, the foreign key rejects the row
        )

    assert excinfo.value.status_code == 500
    assert excinfo.value.code == "UPLOAD_FAILED"
    category_dir = os.path.join(settings.upload_dir, categories[0].slug)
    assert not os.path.exists(category_dir) or os.listdir(category_dir) == []


def test_upload_and_delete(db_session, ctx, categories, admin):
    image = upload_image(
        db_session,
        ctx.storage,
        categories[2],
        original_filename="look.webp",
        content=b"webp",
        mime_type="image/webp",
        uploaded_by=admin.id,
    )
    image_id, path = image.id, image.file_path
    assert get_image(db_session, image_id) is image
    assert os.path.exists(path)

    delete_image(db_session, ctx.storage, image, admin.id)
    assert get_image(db_session, image_id) is None
    assert not os.path.exists(path)


def test_lookups_outside_integer_range(db_session):
    assert get_category(db_session, 2**40) is None
    assert get_image(db_session, -(2**40)) is None
