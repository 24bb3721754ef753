"""HTTP route modules."""

from typing import Annotated

from fastapi import Path

from linksaver.schemas import ID_MAX, ID_MIN

RowIdPath = Annotated[int, Path(ge=ID_MIN, le=ID_MAX)]
