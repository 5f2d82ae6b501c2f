"""Helpers for multipart form endpoints."""

from __future__ import annotations

from typing import TypeVar

import pydantic
from fastapi import UploadFile

from rescuehub.services.errors import ValidationError
from rescuehub.services.image_store import Upload

M = TypeVar("M", bound=pydantic.BaseModel)


def parse_form(model: type[M], **data) -> M:
    """Validate form fields through a schema; the first error becomes a 400."""
    try:
        return model(**data)
    except pydantic.ValidationError as e:
        err = e.errors()[0]
        field = ".".join(str(p) for p in err["loc"]) or "body"
        raise ValidationError(f"{field}: {err['msg']}") from e


async def read_uploads(files: list[UploadFile]) -> list[Upload]:
    uploads = []
    for f in files:
        if not f.filename:
            continue
        uploads.append(Upload(filename=f.filename, data=await f.read()))
    return uploads
