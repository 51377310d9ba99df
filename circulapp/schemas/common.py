"""Schémas communs / Common schemas (pagination, partial updates)."""

from typing import ClassVar

from pydantic import BaseModel, model_validator


class PartialUpdate(BaseModel):
    """
    Mise à jour partielle / Partial update.
    Un champ omis reste inchangé ; `null` n'est accepté que pour les colonnes nullables.
    An omitted field stays unchanged; `null` is only accepted for nullable columns.
    """
    required_fields: ClassVar[tuple[str, ...]] = ()

    @model_validator(mode="after")
    def _reject_null_required(self):
        nulls = sorted(
            name for name in self.model_fields_set
            if name in self.required_fields and getattr(self, name) is None
        )
        if nulls:
            raise ValueError(f"Fields cannot be null: {', '.join(nulls)}")
        return self


class Pagination(BaseModel):
    current_page: int
    total_pages: int
    total_items: int
    has_next: bool
    has_prev: bool


def make_pagination(page: int, limit: int, total: int) -> Pagination:
    """Construire le bloc de pagination / Build the pagination block."""
    total_pages = (total + limit - 1) // limit if limit > 0 else 0
    return Pagination(
        current_page=page,
        total_pages=total_pages,
        total_items=total,
        has_next=page < total_pages,
        has_prev=page > 1,
    )


class MessageResponse(BaseModel):
    message: str
