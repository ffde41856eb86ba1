from pydantic import AliasChoices, BaseModel, Field
from typing import Optional, List

class Rating(BaseModel):
    average: float = 0.0
    count: int = 0

    model_config = {"frozen": True}

class Product(BaseModel):
    """
    Catalog entry. Reference data loaded once per process; never mutated.
    Accepts both snake_case and the camelCase keys of the storefront catalog
    (originalPrice, inStock).
    """
    id: str = Field(validation_alias=AliasChoices("id", "product_id"))
    name: str
    category: str = ""
    subcategory: str = ""
    brand: str = ""
    price: float = 0.0
    original_price: Optional[float] = Field(default=None, validation_alias=AliasChoices("original_price", "originalPrice"))
    in_stock: bool = Field(default=True, validation_alias=AliasChoices("in_stock", "inStock"))
    description: str = ""
    features: List[str] = []
    tags: List[str] = []
    ratings: Rating = Field(default_factory=Rating)

    model_config = {"frozen": True, "coerce_numbers_to_str": True}  # immuable = safe
