from pydantic import BaseModel, Field


class IngestTextRequest(BaseModel):
    """JSON body of ``POST /documents`` for already extracted text."""

    name: str = Field(min_length=1)
    text: str = Field(min_length=1)
    images: list[str] = []
