from __future__ import annotations

from typing import List, Tuple

from pydantic import BaseModel, Field, field_validator, model_validator


class FieldCategory(BaseModel):
    name: str
    fragments: List[str] = Field(default_factory=list)

    @field_validator("name")
    @classmethod
    def _name_non_empty(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("category name must be a non-empty string")
        return v

    @field_validator("fragments")
    @classmethod
    def _fragments_lower_unique(cls, v: List[str]) -> List[str]:
        out: List[str] = []
        for frag in v:
            normed = " ".join(str(frag).strip().split()).lower()
            if normed and normed not in out:
                out.append(normed)
        if not out:
            raise ValueError("fragments must contain at least one non-empty term")
        return out

    def matches(self, header: str) -> bool:
        text = str(header).lower()
        return any(frag in text for frag in self.fragments)


class CategoryCatalog(BaseModel):
    """Ordered category table; earlier categories win headers first."""

    categories: List[FieldCategory]

    @model_validator(mode="after")
    def _validate_names(self) -> "CategoryCatalog":
        if not self.categories:
            raise ValueError("categories must be a non-empty list")
        names = [c.name for c in self.categories]
        if len(set(names)) != len(names):
            raise ValueError("category names must be unique")
        return self

    def names(self) -> Tuple[str, ...]:
        return tuple(c.name for c in self.categories)


DEFAULT_CATEGORIES = CategoryCatalog(
    categories=[
        FieldCategory(
            name="invoice",
            fragments=["invoice no", "invoice number", "bill no", "bill number", "document number"],
        ),
        FieldCategory(name="gstin", fragments=["gstin", "gst no", "gst number"]),
        FieldCategory(name="date", fragments=["invoice date", "bill date", "document date"]),
        FieldCategory(name="value", fragments=["taxable value", "invoice value", "value", "amount"]),
        FieldCategory(name="vendor", fragments=["vendor", "supplier", "party name", "customer"]),
    ]
)
