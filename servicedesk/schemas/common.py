from typing import Generic, List, Optional, TypeVar

from pydantic import BaseModel

from servicedesk.core.i18n import translate

T = TypeVar("T")


class MessageResponse(BaseModel):
    """Bilingual confirmation body."""
    message: str
    message_ar: str


class Page(BaseModel, Generic[T]):
    items: List[T]
    total: int
    page: int
    per_page: int
    pages: int

    @classmethod
    def build(cls, items: List[T], total: int, page: int, per_page: int) -> "Page[T]":
        pages = (total + per_page - 1) // per_page if per_page else 0
        return cls(items=items, total=total, page=page, per_page=per_page, pages=pages)


class PersonSummary(BaseModel):
    id: str
    name: str
    name_ar: Optional[str] = None
    email: str

    class Config:
        from_attributes = True


def bilingual(message: str) -> MessageResponse:
    """MessageResponse with the Arabic text looked up from the catalog."""
    return MessageResponse(message=message, message_ar=translate(message))
