from pydantic import BaseModel
from typing import Dict, Any, List

# Request bodies are deliberately loose: shape repair happens in the normalizer,
# so only the envelope is validated here.


class SaveProductsIn(BaseModel):
    products: Any = None


class SaveCategoriesIn(BaseModel):
    categories: Any = None


class AddCategoryIn(BaseModel):
    category: Any = None


class WriteResult(BaseModel):
    success: bool = True
    message: str
    count: int


def _saved_message(count: int, noun: str) -> str:
    return f"{count} {noun} saved"


def _make_write_result(count: int, noun: str, items: List[BaseModel], key: str) -> Dict[str, Any]:
    body = WriteResult(message=_saved_message(count, noun), count=count).model_dump()
    body[key] = [item.model_dump() for item in items]
    return body
