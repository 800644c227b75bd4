from pydantic import BaseModel

class PageText(BaseModel):
    page_number: int                 # 1-based
    text: str

class Passage(BaseModel):
    id: str                          # uuid5(doc_id, page_number)
    document_id: str
    page_number: int
    text: str
    embedding: list[float] | None = None    # None before embedding step

class RetrievedPassage(BaseModel):
    text: str
    score: float
    page_number: int | None = None
