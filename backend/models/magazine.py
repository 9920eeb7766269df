"""Magazine record model."""
from dataclasses import dataclass
from typing import Optional


@dataclass
class Magazine:
    """A magazine record read from the document store."""
    id: str
    title: str
    description: Optional[str]
    category: str
    file_name: str
    file_size: Optional[int]
    file_url: Optional[str]
    cover_image_url: Optional[str]
    created_at: str  # ISO-8601
    user_id: str
    is_readable_online: bool
