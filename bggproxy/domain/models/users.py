"""Domain model for upstream user profiles."""

from dataclasses import dataclass, asdict
from typing import Any, Dict, Optional


@dataclass
class User:
    """Entity representing a public user profile."""
    id: str
    username: str
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    avatar_link: Optional[str] = None
    year_registered: Optional[int] = None
    last_login: Optional[str] = None
    state_or_province: Optional[str] = None
    country: Optional[str] = None
    web_address: Optional[str] = None
    trade_rating: Optional[int] = None
    support_years: int = 0
    designer_id: Optional[str] = None
    publisher_id: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "User":
        return cls(**data)
