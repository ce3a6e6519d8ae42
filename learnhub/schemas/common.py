# schemas/common.py
from pydantic import BaseModel, ConfigDict, constr
from pydantic.alias_generators import to_camel

# Keep IDs as str at the API boundary. Convert to ObjectId in the repo.
ID = constr(strip_whitespace=True, min_length=1)

class CamelModel(BaseModel):
    """snake_case in Python, camelCase on the wire; both accepted on input."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

class Pagination(CamelModel):
    page: int
    limit: int
    total: int
    pages: int
