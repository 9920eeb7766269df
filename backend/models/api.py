"""Request and response models for the viewer API."""
from typing import List, Literal, Optional
from pydantic import BaseModel, Field, model_validator


class ViewportModel(BaseModel):
    """Viewport size reported by the presentation shell."""
    width: float = Field(..., ge=0, example=1280)
    height: float = Field(..., ge=0, example=800)


class PointModel(BaseModel):
    """A touch coordinate in viewport pixels."""
    x: float
    y: float


class CreateSessionRequest(BaseModel):
    """Open a document for viewing, either by URL or by magazine id."""
    reference: Optional[str] = Field(
        default=None,
        example="https://example.com/magazines/issue-12.pdf",
        description="URL of the PDF to view"
    )
    magazine_id: Optional[str] = Field(
        default=None,
        description="Magazine record id; its file_url is used as the reference"
    )
    viewport: Optional[ViewportModel] = None

    @model_validator(mode="after")
    def check_exactly_one_source(self):
        if bool(self.reference) == bool(self.magazine_id):
            raise ValueError("Provide exactly one of 'reference' or 'magazine_id'")
        return self


class NavigateRequest(BaseModel):
    """Move the current page."""
    action: Literal["next", "prev", "goto"]
    index: Optional[int] = Field(default=None, description="0-based target for 'goto'")

    @model_validator(mode="after")
    def check_index_for_goto(self):
        if self.action == "goto" and self.index is None:
            raise ValueError("'index' is required when action is 'goto'")
        return self


class SwipeRequest(BaseModel):
    """Endpoints of a completed touch drag."""
    start: PointModel
    end: PointModel


class DimensionsModel(BaseModel):
    width: float
    height: float


class ProgressModel(BaseModel):
    current: int
    total: int
    ratio: float
    can_go_prev: bool
    can_go_next: bool


class ErrorModel(BaseModel):
    code: str
    message: str
    details: dict = Field(default_factory=dict)


class SessionStateResponse(BaseModel):
    """Snapshot of a viewing session for the presentation shell."""
    session_id: str
    reference: str
    status: str
    message: Optional[str] = None
    total_pages: Optional[int] = None
    produced_pages: int = 0
    failed_pages: List[int] = Field(default_factory=list)
    current_index: Optional[int] = None
    progress: ProgressModel
    dimensions: Optional[DimensionsModel] = None
    navigation_hint: Optional[str] = None
    error: Optional[ErrorModel] = None


class SwipeResponse(SessionStateResponse):
    action: Optional[str] = None


class PageResponse(BaseModel):
    """One produced page."""
    session_id: str
    position: int  # index into the produced sequence
    page_index: int  # index into the source document
    data_url: str
    width: int
    height: int


class LayoutResponse(BaseModel):
    is_compact: bool
    dimensions: DimensionsModel
    navigation_hint: str
