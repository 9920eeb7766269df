"""Reads magazine records from the Supabase document store."""
import logging
from datetime import datetime, timezone
from typing import Any, Dict, Optional
from supabase import create_client, Client

from config import MAGAZINES_TABLE, SUPABASE_KEY, SUPABASE_URL
from models.magazine import Magazine
from services.errors import MagazineNotFound, MagazineNotReadable, SourceUnavailable
from services.source_fetcher import is_valid_url

logger = logging.getLogger(__name__)


class MagazineRepository:
    """Read-only access to magazine records."""

    def __init__(
        self,
        supabase_url: Optional[str] = SUPABASE_URL,
        supabase_key: Optional[str] = SUPABASE_KEY,
        table_name: str = MAGAZINES_TABLE
    ):
        """
        Initialize the repository with a Supabase client.

        Raises:
            ValueError: If Supabase credentials are missing
        """
        if not supabase_url or not supabase_key:
            raise ValueError("SUPABASE_URL and SUPABASE_KEY must be set in environment variables")

        self.table_name = table_name
        self.client: Client = create_client(supabase_url, supabase_key)
        logger.info(f"MagazineRepository initialized with table: {table_name}")

    def get_magazine(self, magazine_id: str) -> Magazine:
        """
        Fetch one magazine record.

        Raises:
            MagazineNotFound: If no record has this id
        """
        if not magazine_id:
            raise MagazineNotFound("No magazine ID provided", {"magazine_id": magazine_id})

        logger.info(f"Fetching magazine with ID: {magazine_id}")
        result = self.client.table(self.table_name).select("*").eq("id", magazine_id).limit(1).execute()

        if not result.data:
            logger.error(f"Magazine not found for ID: {magazine_id}")
            raise MagazineNotFound(
                "The requested magazine could not be found",
                {"magazine_id": magazine_id}
            )

        magazine = self._to_magazine(result.data[0])
        logger.info(
            f"Magazine found: title={magazine.title!r}, category={magazine.category}, "
            f"readable_online={magazine.is_readable_online}, file_size={magazine.file_size or 'unknown'}"
        )
        return magazine

    def get_readable_file_url(self, magazine_id: str) -> str:
        """
        Resolve the PDF URL of a magazine that may be read online.

        Raises:
            MagazineNotFound: If no record has this id
            MagazineNotReadable: If the magazine is not set for online reading
            SourceUnavailable: If the record has no usable file URL
        """
        magazine = self.get_magazine(magazine_id)

        if not magazine.is_readable_online:
            logger.warning(f"Magazine {magazine_id} is not set for online reading")
            raise MagazineNotReadable(
                "This magazine is not available for online reading",
                {"magazine_id": magazine_id}
            )

        if not magazine.file_url:
            logger.warning(f"No file URL available for magazine {magazine_id}")
            raise SourceUnavailable(
                "This magazine doesn't have a file available for viewing",
                {"magazine_id": magazine_id}
            )

        if not is_valid_url(magazine.file_url):
            logger.error(f"Invalid file URL for magazine {magazine_id}: {magazine.file_url}")
            raise SourceUnavailable(
                "The magazine file URL appears to be invalid",
                {"magazine_id": magazine_id, "file_url": magazine.file_url}
            )

        return magazine.file_url

    def _to_magazine(self, row: Dict[str, Any]) -> Magazine:
        file_size = row.get("file_size")
        readable = row.get("is_readable_online")
        return Magazine(
            id=str(row["id"]),
            title=row.get("title") or "Untitled",
            description=row.get("description") or None,
            category=row.get("category") or "Uncategorized",
            file_name=row.get("file_name") or "",
            file_size=file_size if isinstance(file_size, int) and not isinstance(file_size, bool) else None,
            file_url=row.get("file_url") or None,
            cover_image_url=row.get("cover_image_url") or None,
            created_at=self._created_at(row.get("created_at")),
            user_id=row.get("user_id") or "",
            is_readable_online=readable if isinstance(readable, bool) else False
        )

    def _created_at(self, value: Any) -> str:
        if isinstance(value, datetime):
            return value.isoformat()
        if isinstance(value, str) and value:
            try:
                return self._parse_timestamp(value).isoformat()
            except ValueError:
                logger.warning(f"Unparseable created_at timestamp: {value}")
                return value
        return datetime.now(timezone.utc).isoformat()

    def _parse_timestamp(self, timestamp_str: str) -> datetime:
        """
        Parse a Supabase timestamp.

        Supabase can return more than six fractional digits, which
        fromisoformat() rejects, so the fraction is normalized first.
        """
        timestamp_str = timestamp_str.replace("Z", "+00:00")

        # Format: 2026-02-21T02:08:26.18976+00:00
        if "." in timestamp_str:
            head, tail = timestamp_str.split(".", 1)
            for sign in ("+", "-"):
                if sign in tail:
                    fraction, tz = tail.split(sign, 1)
                    timestamp_str = f"{head}.{fraction[:6].ljust(6, '0')}{sign}{tz}"
                    break
            else:
                timestamp_str = f"{head}.{tail[:6].ljust(6, '0')}"

        return datetime.fromisoformat(timestamp_str)
