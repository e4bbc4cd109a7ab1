"""
directory/models.py -- Domain dataclasses for the advocate directory.

Pure data containers with zero logic. Persistence lives in directory/store.py;
access control lives in auth/, which this package never imports.
"""

from dataclasses import dataclass, field
from typing import Optional


@dataclass
class Advocate:
    """A healthcare advocate listed in the directory.

    phone_number is stored as an integer (digits only), matching the source
    data feed. id is None before the record is written to the database.
    """

    first_name: str
    last_name: str
    city: str
    degree: str
    years_of_experience: int
    phone_number: int
    specialties: list[str] = field(default_factory=list)
    id: Optional[int] = None
    created_at: str = ""  # ISO 8601, set by store on insert
