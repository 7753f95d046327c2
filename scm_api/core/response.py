"""Response envelopes: `{ data: ... }` for single items, `{ data: [...], meta: {...} }` for pages."""


import math
from typing import Generic, TypeVar

from pydantic import BaseModel
from pydantic.alias_generators import to_camel

from scm_api.core.pagination import PageMeta, PaginationParams

T = TypeVar("T")

_ENVELOPE_CONFIG = {"populate_by_name": True, "alias_generator": to_camel}


class DataResponse(BaseModel, Generic[T]):
    data: T

    model_config = _ENVELOPE_CONFIG


class ListResponse(BaseModel, Generic[T]):
    data: list[T]
    meta: PageMeta

    model_config = _ENVELOPE_CONFIG


def page_of(items: list, total: int, pagination: PaginationParams) -> dict:
    """Wrap one page of already-serialized items for use with ListResponse."""
    limit = pagination.limit
    return {
        "data": items,
        "meta": PageMeta(
            total=total,
            page=pagination.page,
            limit=limit,
            pages=max(math.ceil(total / limit), 1),
        ),
    }
