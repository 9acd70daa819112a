# catalog/models.py
from pydantic import BaseModel, Field
from typing import List, Optional, Union

PLACEHOLDER_IMAGE = "https://via.placeholder.com/400x300"
PLACEHOLDER_TITLE = "Untitled product"
DEFAULT_STATUS = "active"
CANONICAL_SIZES = ("P", "M", "G", "GG")


class Size(BaseModel):
    name: str = "M"
    stock: int = Field(0, ge=0)


class Color(BaseModel):
    name: str = "Default"
    image: str = PLACEHOLDER_IMAGE
    sizes: List[Size] = Field(..., min_length=1)


class Product(BaseModel):
    id: Optional[Union[int, str]] = None
    title: str = PLACEHOLDER_TITLE
    category: str = ""
    price: float = Field(0.0, ge=0)
    description: str = ""
    status: str = DEFAULT_STATUS
    colors: List[Color] = Field(..., min_length=1)

    def to_row(self) -> dict:
        """Column values for an insert; the store assigns the id."""
        return self.model_dump(exclude={"id"})


class Category(BaseModel):
    id: str = Field(..., min_length=1)
    name: str
    description: str


def canonical_sizes() -> List[Size]:
    return [Size(name=name, stock=0) for name in CANONICAL_SIZES]
