"""Recipe catalog models."""

from __future__ import annotations

from datetime import datetime
from typing import Any, Optional

from pydantic import AliasChoices, BaseModel, Field, field_validator

from .planning import SlotKey, normalize_slot_key

UNTITLED_RECIPE = "（無題）"


class Ingredient(BaseModel):
    """One ingredient (or seasoning) line: free-text name and quantity."""

    name: str
    quantity: str = ""
    raw_text: Optional[str] = None

    @classmethod
    def from_raw(cls, raw: Any) -> Optional["Ingredient"]:
        """
        Read an ingredient row in any of the stored shapes.

        Plain strings are both name and raw text. Dicts may spell the name
        `name`/`ingredient`/`title` and the amount `quantity`/`qty`/`amount`
        with an optional `unit`. Rows without a name yield None.
        """
        if raw is None:
            return None
        if isinstance(raw, Ingredient):
            return raw if raw.name.strip() else None
        if isinstance(raw, str):
            text = raw.strip()
            return cls(name=text, raw_text=text) if text else None
        if not isinstance(raw, dict):
            return None

        name = str(raw.get("name") or raw.get("ingredient") or raw.get("title") or "").strip()
        if not name:
            return None

        quantity = raw.get("quantity")
        if quantity is None:
            quantity = raw.get("qty")
        if quantity is None:
            quantity = raw.get("amount")
        unit = raw.get("unit") or ""
        amount = f"{quantity if quantity is not None else ''}{unit}".strip()

        raw_text = raw.get("raw_text") or raw.get("rawText") or raw.get("text")
        return cls(name=name, quantity=amount, raw_text=str(raw_text).strip() if raw_text else None)

    @property
    def display_text(self) -> str:
        """Text shown as the source line of a shopping entry."""
        if self.raw_text:
            return self.raw_text
        if self.quantity:
            return f"{self.name} {self.quantity}".strip()
        return self.name


def _read_ingredient_rows(value) -> list[Ingredient]:
    if not isinstance(value, list):
        return []
    rows = []
    for raw in value:
        ingredient = Ingredient.from_raw(raw)
        if ingredient is not None:
            rows.append(ingredient)
    return rows


class Recipe(BaseModel):
    """A recipe. Written by its author, readable by everyone."""

    id: str
    user_id: Optional[str] = Field(None, validation_alias=AliasChoices("user_id", "author_id"))
    recipe_name: str = Field("", validation_alias=AliasChoices("recipe_name", "title"))
    image_url: Optional[str] = None
    category: Optional[SlotKey] = None
    ingredients: list[Ingredient] = Field(default_factory=list)
    seasonings: list[Ingredient] = Field(default_factory=list)
    cooking_time: Optional[str] = None
    calories: Optional[float] = None
    tags: list[str] = Field(default_factory=list)
    memo: str = ""
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @field_validator("ingredients", "seasonings", mode="before")
    @classmethod
    def _read_rows(cls, v):
        return _read_ingredient_rows(v)

    @field_validator("category", mode="before")
    @classmethod
    def _normalize_category(cls, v):
        return normalize_slot_key(v)

    @field_validator("tags", mode="before")
    @classmethod
    def _tags(cls, v):
        return list(v) if v else []

    @field_validator("cooking_time", mode="before")
    @classmethod
    def _cooking_time(cls, v):
        return None if v is None else str(v)

    @field_validator("memo", "recipe_name", mode="before")
    @classmethod
    def _none_to_empty(cls, v):
        return "" if v is None else v

    @property
    def display_name(self) -> str:
        return self.recipe_name or UNTITLED_RECIPE


class RecipeCreate(BaseModel):
    """Request to create a recipe."""

    recipe_name: str = Field(..., min_length=1, validation_alias=AliasChoices("recipe_name", "title"))
    image_url: Optional[str] = None
    category: Optional[str] = None
    ingredients: list[Ingredient] = Field(default_factory=list)
    seasonings: list[Ingredient] = Field(default_factory=list)
    cooking_time: Optional[str] = None
    calories: Optional[float] = None
    tags: list[str] = Field(default_factory=list)
    memo: str = ""

    @field_validator("ingredients", "seasonings", mode="before")
    @classmethod
    def _read_rows(cls, v):
        return _read_ingredient_rows(v)


class RecipeUpdate(BaseModel):
    """Partial update; unset fields are left alone."""

    recipe_name: Optional[str] = Field(None, validation_alias=AliasChoices("recipe_name", "title"))
    image_url: Optional[str] = None
    category: Optional[str] = None
    ingredients: Optional[list[Ingredient]] = None
    seasonings: Optional[list[Ingredient]] = None
    cooking_time: Optional[str] = None
    calories: Optional[float] = None
    tags: Optional[list[str]] = None
    memo: Optional[str] = None

    @field_validator("ingredients", "seasonings", mode="before")
    @classmethod
    def _read_rows(cls, v):
        return None if v is None else _read_ingredient_rows(v)
