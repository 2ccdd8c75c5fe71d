"""
External signals that can seed idea generation.

No news or events feed is wired up yet, so the default source returns
nothing. Subclass SignalSource to plug one in.
"""

from dataclasses import dataclass
from typing import List, Optional


@dataclass
class CompanyNews:
    title: str
    url: Optional[str] = None
    published: Optional[str] = None


@dataclass
class UpcomingEvent:
    name: str
    date: str
    type: Optional[str] = None


class SignalSource:

    def company_news(self, domain: str) -> List[CompanyNews]:
        return []

    def upcoming_events(self) -> List[UpcomingEvent]:
        return []
